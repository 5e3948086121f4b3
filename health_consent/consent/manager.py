from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

from ..config import ConsentFlowConfig
from ..exceptions import SessionNotFoundError, ValidationError
from ..migration.gate import MigrationStatusLoader
from ..permissions.classifier import classify
from ..permissions.models import Category
from ..platform.base import HealthPermissionPlatform
from ..utils.ids import generate_session_id, validate_id
from .flow import ConsentFlow
from .sequencing import (
    Allow,
    Cancel,
    DontAllow,
    Finish,
    FlowEvent,
    NextAction,
    ProceedDespiteMigration,
    ScreenReshown,
    ShowMigrationPrompt,
    ShowScreen,
    ToggleAll,
    TogglePermission,
    WaitForMigration,
)


logger = structlog.get_logger(__name__)


class PermissionRequest(BaseModel):
    target_package: Optional[str] = None
    requested_permissions: List[str] = Field(default_factory=list)


class FlowEventRequest(BaseModel):
    type: str
    category: Optional[Category] = None
    permission: Optional[str] = None
    granted: Optional[bool] = None


def describe_action(action: Optional[NextAction]) -> Dict[str, Any]:
    match action:
        case ShowScreen(category=category):
            return {"type": "show_screen", "category": category.value}
        case ShowMigrationPrompt():
            return {"type": "show_migration_prompt"}
        case Finish(result_code=result_code):
            return {"type": "finish", "result_code": result_code.value}
    return {"type": "none"}


def parse_event(payload: FlowEventRequest) -> FlowEvent:
    """Turn an HTTP event payload into a reducer event"""

    def _category() -> Category:
        if payload.category is None:
            raise ValidationError("category is required", field="category")
        return payload.category

    def _granted() -> bool:
        if payload.granted is None:
            raise ValidationError("granted is required", field="granted")
        return payload.granted

    match payload.type:
        case "toggle_permission":
            if not payload.permission:
                raise ValidationError("permission is required", field="permission")
            return TogglePermission(classify(payload.permission), _granted())
        case "toggle_all":
            return ToggleAll(_category(), _granted())
        case "allow":
            return Allow(_category())
        case "dont_allow":
            return DontAllow(_category())
        case "screen_reshown":
            return ScreenReshown()
        case "proceed_despite_migration":
            return ProceedDespiteMigration()
        case "wait_for_migration":
            return WaitForMigration()
        case "cancel":
            return Cancel()
    raise ValidationError(f"Unknown event type: {payload.type}", field="type")


class ConsentFlowManager:
    """Keeps running permission requests by id"""

    def __init__(
        self,
        platform: HealthPermissionPlatform,
        migration_loader: Optional[MigrationStatusLoader] = None,
        config: Optional[ConsentFlowConfig] = None,
    ):
        self.platform = platform
        self.migration_loader = migration_loader
        self.config = config
        self.flows: Dict[str, ConsentFlow] = {}

    async def start_request(self, target_package: Optional[str],
                            requested_permissions: List[str]) -> Dict[str, Any]:
        session_id = generate_session_id()
        flow = ConsentFlow(self.platform, self.migration_loader, self.config)
        self.flows[session_id] = flow

        await flow.start(target_package, requested_permissions)
        logger.info("Permission request registered", session_id=session_id,
                    package_name=target_package, finished=flow.finished)
        return self._summary(session_id, flow)

    def get_flow(self, session_id: str) -> ConsentFlow:
        flow = self.flows.get(session_id) if validate_id(session_id) else None
        if flow is None:
            raise SessionNotFoundError(session_id)
        return flow

    async def get_state(self, session_id: str) -> Dict[str, Any]:
        flow = self.get_flow(session_id)
        state = self._summary(session_id, flow)

        session = flow.session
        if session is not None and session.screen is not None:
            screen = session.screen
            state["screen"] = {
                "category": screen.value,
                "permissions": [str(p) for p in session.pending[screen]],
                "local_grants": sorted(str(p) for p in session.local_grants[screen]),
                "allow_enabled": session.allow_enabled(screen),
                "all_granted": session.all_locally_granted(screen),
            }
        if session is not None and session.app_metadata is not None:
            state["app"] = session.app_metadata.model_dump()
        return state

    async def dispatch(self, session_id: str, payload: FlowEventRequest) -> Dict[str, Any]:
        flow = self.get_flow(session_id)
        event = parse_event(payload)
        flow.dispatch(event)
        return self._summary(session_id, flow)

    async def close(self, session_id: str) -> bool:
        return self.flows.pop(session_id, None) is not None

    def _summary(self, session_id: str, flow: ConsentFlow) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "session_id": session_id,
            "action": describe_action(flow.action),
            "short_circuited": flow.short_circuited,
            "screens_shown": [c.value for c in flow.screens_shown],
        }
        if flow.result is not None:
            summary["result"] = flow.result.model_dump(mode="json")
        return summary
