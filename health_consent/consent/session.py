"""
Consent session
Per-request state: original grants, local toggles, concluded categories
and committed decisions
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import AbstractSet, Dict, Iterable, List, Mapping, Optional, Set

import structlog

from ..constants import HealthPermissions
from ..permissions.classifier import classify
from ..permissions.models import (
    AdditionalPermission,
    Category,
    FitnessPermission,
    HealthPermission,
    PermissionState,
    category_of,
)
from ..platform.base import AppMetadata
from ..exceptions import PermissionClassificationError

logger = structlog.get_logger(__name__)


def _is_read_permission(identifier: str) -> bool:
    try:
        permission = classify(identifier)
    except PermissionClassificationError:
        return False
    return isinstance(permission, FitnessPermission) and permission.is_read


def _shown_on_screen(permission: HealthPermission) -> bool:
    # Exercise routes are requested from their own route screen
    match permission:
        case AdditionalPermission():
            return not permission.is_exercise_routes()
        case _:
            return True


@dataclass
class Concluded:
    """Categories whose screen the user has already confirmed"""
    medical: bool = False
    fitness: bool = False

    def conclude(self, category: Category) -> None:
        # Flags only ever go from False to True
        if category == Category.MEDICAL:
            self.medical = True
        elif category == Category.FITNESS:
            self.fitness = True


@dataclass
class ConsentSession:
    """
    State of one permission request.

    The original grant state is captured once at creation and exposed
    read-only through ``requested_permissions``. ``committed_grants``
    holds final decisions; an entry is never overwritten.
    """
    package_name: str
    _requested: Dict[HealthPermission, PermissionState] = field(repr=False)
    pending: Dict[Category, List[HealthPermission]]
    any_read_permission_already_granted: bool = False
    history_access_already_granted: bool = False
    app_metadata: Optional[AppMetadata] = None
    local_grants: Dict[Category, Set[HealthPermission]] = field(
        default_factory=lambda: {category: set() for category in Category})
    concluded: Concluded = field(default_factory=Concluded)
    committed_grants: Dict[HealthPermission, PermissionState] = field(default_factory=dict)
    screen: Optional[Category] = None
    awaiting_migration_choice: bool = False

    @classmethod
    def create(
        cls,
        package_name: str,
        eligible: Iterable[HealthPermission],
        granted: AbstractSet[str],
        app_metadata: Optional[AppMetadata] = None,
    ) -> "ConsentSession":
        """Build a session from the eligible permissions and the already-granted snapshot"""
        requested: Dict[HealthPermission, PermissionState] = {}
        pending: Dict[Category, List[HealthPermission]] = {category: [] for category in Category}

        for permission in eligible:
            if permission in requested:
                continue
            if str(permission) in granted:
                requested[permission] = PermissionState.GRANTED
                continue
            requested[permission] = PermissionState.NOT_GRANTED
            if _shown_on_screen(permission):
                pending[category_of(permission)].append(permission)

        session = cls(
            package_name=package_name,
            _requested=requested,
            pending=pending,
            any_read_permission_already_granted=any(_is_read_permission(p) for p in granted),
            history_access_already_granted=HealthPermissions.READ_HEALTH_DATA_HISTORY in granted,
            app_metadata=app_metadata,
        )
        logger.info("Consent session created", package_name=package_name,
                    requested=len(requested),
                    pending={c.value: len(p) for c, p in pending.items()})
        return session

    @property
    def requested_permissions(self) -> Mapping[HealthPermission, PermissionState]:
        return MappingProxyType(self._requested)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def has(self, category: Category) -> bool:
        """Whether the category has anything to show on its screen"""
        return bool(self.pending[category])

    def permissions_in(self, category: Category) -> List[HealthPermission]:
        """Every requested permission of a category, shown or not"""
        return [p for p in self._requested if category_of(p) == category]

    def uncommitted(self, category: Category) -> List[HealthPermission]:
        """
        Permissions of a category the committer may still write.

        Permissions with no screen here keep their platform state and are
        reported from ``requested_permissions``.
        """
        return [p for p in self.permissions_in(category)
                if _shown_on_screen(p) and p not in self.committed_grants]

    def is_concluded(self, category: Category) -> bool:
        if category == Category.MEDICAL:
            return self.concluded.medical
        if category == Category.FITNESS:
            return self.concluded.fitness
        return not self.uncommitted(Category.ADDITIONAL)

    def conclude(self, category: Category) -> None:
        self.concluded.conclude(category)

    def conclude_all(self) -> None:
        for category in Category:
            self.conclude(category)

    # ------------------------------------------------------------------
    # Local toggles
    # ------------------------------------------------------------------

    def is_single_additional(self) -> bool:
        return len(self.pending[Category.ADDITIONAL]) == 1

    def reset_local_grants(self, category: Category) -> None:
        """Restore a screen's toggles when it is (re)shown"""
        shown = self.pending[category]
        if category == Category.ADDITIONAL and self.is_single_additional():
            self.local_grants[category] = set(shown)
            return
        self.local_grants[category] = {
            p for p in shown if self.committed_grants.get(p) == PermissionState.GRANTED
        }

    def set_local_grant(self, permission: HealthPermission, granted: bool) -> None:
        category = category_of(permission)
        if granted:
            self.local_grants[category].add(permission)
        else:
            self.local_grants[category].discard(permission)

    def set_all_local_grants(self, category: Category, granted: bool) -> None:
        self.local_grants[category] = set(self.pending[category]) if granted else set()

    def is_locally_granted(self, permission: HealthPermission) -> bool:
        return permission in self.local_grants[category_of(permission)]

    def all_locally_granted(self, category: Category) -> bool:
        shown = self.pending[category]
        return bool(shown) and set(shown) <= self.local_grants[category]

    def allow_enabled(self, category: Category) -> bool:
        """Mirror of the Allow button's enabled state"""
        if category == Category.ADDITIONAL and self.is_single_additional():
            return True
        return bool(self.local_grants[category])

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def desired_grant(self, permission: HealthPermission) -> bool:
        return (self.is_locally_granted(permission)
                or self._requested[permission] == PermissionState.GRANTED)

    def record_commit(self, permission: HealthPermission, state: PermissionState) -> bool:
        """Store a final decision; returns False if one was already stored"""
        if permission in self.committed_grants:
            logger.debug("Ignoring second commit for permission", permission=str(permission))
            return False
        self.committed_grants[permission] = state
        return True

    def permission_grants(self) -> Dict[HealthPermission, PermissionState]:
        """Original states overlaid with committed decisions, in request order"""
        grants = dict(self._requested)
        grants.update(self.committed_grants)
        return grants
