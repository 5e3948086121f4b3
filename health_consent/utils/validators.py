"""
Input validators for permission requests

Package names and permission identifier lists arrive from untrusted
callers and are checked before any platform lookup.
"""

import re
from typing import Any, List, Optional

from ..exceptions import ValidationError

# =============================================================================
# REGEX PATTERNS
# =============================================================================

# Android application id: two or more dot separated segments
PACKAGE_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z][A-Za-z0-9_]*)+$")

MAX_PACKAGE_NAME_LENGTH = 255
MAX_REQUESTED_PERMISSIONS = 500

# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_package_name(
    package_name: Any,
    field_name: str = "target_package",
    required: bool = True
) -> Optional[str]:
    """
    Validate the package name of the requesting app.

    Args:
        package_name: Value to validate
        field_name: Field name for error messages
        required: Whether the field is required

    Returns:
        Validated package name or None

    Raises:
        ValidationError: If validation fails
    """
    if package_name is None or (isinstance(package_name, str) and not package_name.strip()):
        if required:
            raise ValidationError(f"{field_name} is required", field=field_name)
        return None

    if not isinstance(package_name, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    package_name = package_name.strip()

    if len(package_name) > MAX_PACKAGE_NAME_LENGTH:
        raise ValidationError(f"{field_name} exceeds maximum length", field=field_name)

    if not PACKAGE_NAME_PATTERN.match(package_name):
        raise ValidationError(f"{field_name} is not a valid package name", field=field_name)

    return package_name


def validate_permission_identifiers(
    identifiers: Any,
    field_name: str = "requested_permissions"
) -> List[str]:
    """
    Validate the requested identifier array.

    Only the shape is checked here; unknown health permissions are left
    for the classifier to drop.

    Raises:
        ValidationError: If validation fails
    """
    if identifiers is None:
        return []

    if not isinstance(identifiers, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list", field=field_name)

    if len(identifiers) > MAX_REQUESTED_PERMISSIONS:
        raise ValidationError(
            f"{field_name} exceeds {MAX_REQUESTED_PERMISSIONS} entries",
            field=field_name,
            details={"count": len(identifiers)}
        )

    validated: List[str] = []
    for identifier in identifiers:
        if not isinstance(identifier, str):
            raise ValidationError(
                f"{field_name} must contain strings only",
                field=field_name,
                details={"identifier": str(identifier)[:255]}
            )
        validated.append(identifier)
    return validated
