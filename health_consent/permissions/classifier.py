"""
Permission classification
Parses raw permission identifiers into the typed permission union
"""

from typing import Iterable, List

import structlog

from ..constants import HealthPermissions
from ..exceptions import PermissionClassificationError
from .models import (
    AccessType,
    AdditionalPermission,
    AdditionalPermissionKind,
    FitnessPermission,
    FitnessPermissionType,
    HealthPermission,
    MedicalPermission,
    MedicalPermissionType,
)

logger = structlog.get_logger(__name__)


def _is_medical_identifier(identifier: str) -> bool:
    return (identifier == HealthPermissions.WRITE_MEDICAL_DATA
            or identifier.startswith(HealthPermissions.READ_MEDICAL_DATA_PREFIX))


def _classify_medical(identifier: str) -> MedicalPermission:
    if identifier == HealthPermissions.WRITE_MEDICAL_DATA:
        return MedicalPermission(MedicalPermissionType.ALL_MEDICAL_DATA)

    suffix = identifier[len(HealthPermissions.READ_MEDICAL_DATA_PREFIX):]
    try:
        medical_type = MedicalPermissionType(suffix)
    except ValueError:
        raise PermissionClassificationError(identifier, reason="unknown medical type")

    # ALL_MEDICAL_DATA only exists as the write permission
    if medical_type == MedicalPermissionType.ALL_MEDICAL_DATA:
        raise PermissionClassificationError(identifier, reason="unknown medical type")
    return MedicalPermission(medical_type)


def _classify_fitness(identifier: str) -> FitnessPermission:
    if identifier.startswith(HealthPermissions.READ_PREFIX):
        access_type = AccessType.READ
        suffix = identifier[len(HealthPermissions.READ_PREFIX):]
    elif identifier.startswith(HealthPermissions.WRITE_PREFIX):
        access_type = AccessType.WRITE
        suffix = identifier[len(HealthPermissions.WRITE_PREFIX):]
    else:
        raise PermissionClassificationError(identifier, reason="not a health permission")

    try:
        fitness_type = FitnessPermissionType(suffix)
    except ValueError:
        raise PermissionClassificationError(identifier, reason="unknown data type")
    return FitnessPermission(fitness_type, access_type)


def classify(identifier: str) -> HealthPermission:
    """
    Classify a raw permission identifier.

    Raises:
        PermissionClassificationError: If the identifier is not a health permission
    """
    if not isinstance(identifier, str) or not identifier:
        raise PermissionClassificationError(str(identifier), reason="empty identifier")

    if identifier in HealthPermissions.ADDITIONAL:
        return AdditionalPermission(AdditionalPermissionKind(identifier))
    if _is_medical_identifier(identifier):
        return _classify_medical(identifier)
    return _classify_fitness(identifier)


def classify_all(identifiers: Iterable[str]) -> List[HealthPermission]:
    """Classify identifiers in order, dropping the ones that cannot be parsed"""
    permissions: List[HealthPermission] = []
    for identifier in identifiers:
        try:
            permissions.append(classify(identifier))
        except PermissionClassificationError as e:
            logger.warning("Unrecognised health permission dropped",
                           identifier=e.identifier, reason=e.details.get("reason"))
    return permissions
