"""
Eligibility filtering
Removes permissions that are hidden from the UI or not declared by the app
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Dict, Iterable, List, Optional, Set

import structlog

from ..config import ConsentFlowConfig, get_consent_config
from ..constants import HealthPermissions
from .models import HealthPermission, MedicalPermission, MedicalPermissionType

logger = structlog.get_logger(__name__)


class DropReason(str, Enum):
    """Why a classified permission was not eligible"""
    HIDDEN = "hidden"
    UNDECLARED = "undeclared"


@dataclass
class EligibilityReport:
    """Result of filtering: eligible permissions plus what was dropped"""
    eligible: List[HealthPermission] = field(default_factory=list)
    dropped: Dict[str, DropReason] = field(default_factory=dict)


def hidden_permissions(config: Optional[ConsentFlowConfig] = None) -> Set[str]:
    """Identifiers whose feature is switched off in configuration"""
    config = config or get_consent_config()
    hidden: Set[str] = set()

    if not config.session_types_enabled:
        hidden.update(HealthPermissions.SESSION_TYPES)
    if not config.background_read_enabled:
        hidden.add(HealthPermissions.READ_HEALTH_DATA_IN_BACKGROUND)
    if not config.skin_temperature_enabled:
        hidden.update(HealthPermissions.SKIN_TEMPERATURE)
    if not config.planned_exercise_enabled:
        hidden.update(HealthPermissions.PLANNED_EXERCISE)
    if not config.history_read_enabled:
        hidden.add(HealthPermissions.READ_HEALTH_DATA_HISTORY)
    if not config.personal_health_records_enabled:
        hidden.update(str(MedicalPermission(t)) for t in MedicalPermissionType)

    return hidden


def filter_eligible(
    permissions: Iterable[HealthPermission],
    declared: AbstractSet[str],
    hidden: AbstractSet[str],
) -> EligibilityReport:
    """
    Keep permissions that are visible and declared by the target app.

    Hidden permissions are removed first, then undeclared ones. Both steps
    are set intersections so the order only shows up in the report.
    Output keeps input order and drops duplicates.
    """
    report = EligibilityReport()
    seen: Set[HealthPermission] = set()

    for permission in permissions:
        identifier = str(permission)
        if identifier in hidden:
            report.dropped[identifier] = DropReason.HIDDEN
            continue
        if identifier not in declared:
            report.dropped[identifier] = DropReason.UNDECLARED
            continue
        if permission in seen:
            continue
        seen.add(permission)
        report.eligible.append(permission)

    if report.dropped:
        logger.info("Ineligible permissions dropped",
                    dropped={k: v.value for k, v in report.dropped.items()})
    return report
