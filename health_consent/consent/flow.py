"""
Consent flow coordinator
Owns one ConsentSession from request intake to the final result
"""

from typing import List, Optional, Sequence

import structlog

from ..config import ConsentFlowConfig, get_consent_config
from ..exceptions import (
    InvalidFlowEventError,
    MigrationBlockedError,
    UnsupportedEnvironmentError,
    ValidationError,
)
from ..migration.gate import GateDecision, MigrationGate, MigrationStatusLoader
from ..permissions.classifier import classify_all
from ..permissions.eligibility import EligibilityReport, filter_eligible, hidden_permissions
from ..permissions.models import Category
from ..permissions.user_fixed import UserFixedGuard
from ..platform.base import HealthPermissionPlatform
from ..utils.validators import validate_package_name
from .committer import GrantCommitter
from .results import PermissionResult, ResultCode
from .sequencing import (
    Finish,
    FlowEvent,
    NextAction,
    SequencingController,
    ShowScreen,
    Transition,
)
from .session import ConsentSession

logger = structlog.get_logger(__name__)


class ConsentFlow:
    """
    Drives a single permission request.

    ``start`` loads everything the session needs, then every ``dispatch``
    runs the reducer and commits the categories it names before the next
    action is exposed.
    """

    def __init__(
        self,
        platform: HealthPermissionPlatform,
        migration_loader: Optional[MigrationStatusLoader] = None,
        config: Optional[ConsentFlowConfig] = None,
    ):
        self.platform = platform
        self.migration_loader = migration_loader or MigrationStatusLoader()
        self.config = config or get_consent_config()
        self.controller = SequencingController()
        self.committer = GrantCommitter(platform)
        self.gate = MigrationGate()

        self.package_name: Optional[str] = None
        self.session: Optional[ConsentSession] = None
        self.eligibility: Optional[EligibilityReport] = None
        self.action: Optional[NextAction] = None
        self.result: Optional[PermissionResult] = None
        self.short_circuited = False
        self.screens_shown: List[Category] = []

    @property
    def finished(self) -> bool:
        return self.result is not None

    async def start(self, package_name: Optional[str], identifiers: Optional[Sequence[str]]) -> NextAction:
        """Build the session and return the first action"""
        if self.action is not None:
            raise InvalidFlowEventError("start", "flow already started")

        identifiers = list(identifiers or [])
        try:
            self.package_name = self._check_environment(package_name)
        except UnsupportedEnvironmentError as e:
            logger.warning("Permission request rejected", package_name=package_name, reason=e.reason)
            return self._cancel()

        logger.info("Permission request started", package_name=self.package_name,
                    requested=len(identifiers))

        session = self._build_session(self.package_name, identifiers)

        state = await self.migration_loader.load()
        try:
            decision = self.gate.check(state)
        except MigrationBlockedError:
            return self._apply(self.controller.start(session, GateDecision.BLOCK))

        if UserFixedGuard(self.platform).is_any_user_fixed(self.package_name, identifiers):
            self.short_circuited = True
            return self._apply(self.controller.short_circuit(session))

        return self._apply(self.controller.start(session, decision))

    def dispatch(self, event: FlowEvent) -> NextAction:
        """
        Apply a user event.

        Raises:
            InvalidFlowEventError: If the flow is finished or the event does not fit
        """
        if self.session is None or self.finished:
            raise InvalidFlowEventError(type(event).__name__, "flow is not waiting for user input")
        return self._apply(self.controller.handle(self.session, event))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_environment(self, package_name: Optional[str]) -> str:
        if not self.platform.is_health_platform_available():
            raise UnsupportedEnvironmentError("health platform unavailable", package_name)
        try:
            package_name = validate_package_name(package_name)
        except ValidationError as e:
            raise UnsupportedEnvironmentError(e.message, None)
        if not self.platform.declares_rationale(package_name):
            raise UnsupportedEnvironmentError("rationale intent not declared", package_name)
        return package_name

    def _build_session(self, package_name: str, identifiers: List[str]) -> ConsentSession:
        permissions = classify_all(identifiers)
        self.eligibility = filter_eligible(
            permissions,
            self.platform.declared_permissions(package_name),
            hidden_permissions(self.config),
        )
        return ConsentSession.create(
            package_name,
            self.eligibility.eligible,
            self.platform.granted_permissions(package_name),
            self.platform.app_metadata(package_name),
        )

    def _apply(self, transition: Transition) -> NextAction:
        self.session = transition.session
        if transition.commit:
            self.committer.commit(self.session, transition.commit)

        action = transition.action
        if isinstance(action, ShowScreen) and self.action != action:
            self.screens_shown.append(action.category)
        self.action = action

        if transition.finished:
            if action.result_code == ResultCode.OK:
                self.result = PermissionResult.from_grants(self.session.permission_grants())
            else:
                self.result = PermissionResult.canceled()
            logger.info("Permission request result ready", package_name=self.package_name,
                        result_code=action.result_code.value,
                        short_circuited=self.short_circuited)
        return action

    def _cancel(self) -> NextAction:
        self.action = Finish(ResultCode.CANCELED)
        self.result = PermissionResult.canceled()
        return self.action
