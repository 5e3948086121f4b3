"""
Grant committer
Turns a session's final decisions into grant/revoke calls on the platform
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

import structlog

from ..exceptions import PermissionSecurityError
from ..permissions.models import Category, HealthPermission, PermissionState
from ..platform.base import HealthPermissionPlatform
from .session import ConsentSession

logger = structlog.get_logger(__name__)


@dataclass
class CommitReport:
    """Outcome of one commit batch"""
    outcomes: Dict[HealthPermission, PermissionState] = field(default_factory=dict)

    @property
    def errors(self) -> List[HealthPermission]:
        return [p for p, state in self.outcomes.items() if state == PermissionState.ERROR]


class GrantCommitter:
    """
    Applies decisions one permission at a time.

    Calls are sequential, never retried and never rolled back: a failure
    half way through a batch leaves the earlier calls in place.
    """

    def __init__(self, platform: HealthPermissionPlatform):
        self.platform = platform

    def commit(self, session: ConsentSession, categories: Iterable[Category]) -> CommitReport:
        """Commit every uncommitted permission of the given categories"""
        pairs: List[Tuple[HealthPermission, bool]] = []
        for category in categories:
            pairs.extend((p, session.desired_grant(p)) for p in session.uncommitted(category))
        return self.commit_pairs(session, pairs)

    def commit_pairs(self, session: ConsentSession,
                     pairs: Iterable[Tuple[HealthPermission, bool]]) -> CommitReport:
        report = CommitReport()
        for permission, desired in pairs:
            if permission in session.committed_grants:
                continue
            state = self._apply(session.package_name, permission, desired)
            session.record_commit(permission, state)
            report.outcomes[permission] = state

        if report.outcomes:
            logger.info("Committed permission decisions", package_name=session.package_name,
                        outcomes={str(p): s.value for p, s in report.outcomes.items()})
        return report

    def _apply(self, package_name: str, permission: HealthPermission, desired: bool) -> PermissionState:
        identifier = str(permission)
        try:
            if desired:
                self.platform.grant(package_name, identifier)
                return PermissionState.GRANTED
            self.platform.revoke(package_name, identifier)
            return PermissionState.NOT_GRANTED
        except PermissionSecurityError as e:
            logger.warning("Permission change refused", package_name=package_name,
                           permission=identifier, error=str(e))
            return PermissionState.NOT_GRANTED
        except Exception as e:
            logger.error("Permission change failed", package_name=package_name,
                         permission=identifier, error=str(e))
            return PermissionState.ERROR
