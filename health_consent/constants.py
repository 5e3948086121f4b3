"""
Constants for the Health Connect consent engine

Permission identifier strings, platform flag bits and result codes
shared by the classifier, the committer and the HTTP surface.
"""

from typing import Final, Tuple

# =============================================================================
# SERVICE IDENTIFICATION
# =============================================================================

SERVICE_NAME: Final[str] = "health-consent"
SERVICE_VERSION: Final[str] = "0.1.0"

# =============================================================================
# PERMISSION IDENTIFIERS
# =============================================================================

PERMISSION_PREFIX: Final[str] = "android.permission.health."


class HealthPermissions:
    """Raw permission identifiers that get special handling"""
    READ_PREFIX: Final[str] = PERMISSION_PREFIX + "READ_"
    WRITE_PREFIX: Final[str] = PERMISSION_PREFIX + "WRITE_"

    # Additional (cross-cutting) access
    READ_HEALTH_DATA_HISTORY: Final[str] = PERMISSION_PREFIX + "READ_HEALTH_DATA_HISTORY"
    READ_HEALTH_DATA_IN_BACKGROUND: Final[str] = PERMISSION_PREFIX + "READ_HEALTH_DATA_IN_BACKGROUND"
    READ_EXERCISE_ROUTES: Final[str] = PERMISSION_PREFIX + "READ_EXERCISE_ROUTES"

    # Medical records
    WRITE_MEDICAL_DATA: Final[str] = PERMISSION_PREFIX + "WRITE_MEDICAL_DATA"
    READ_MEDICAL_DATA_PREFIX: Final[str] = PERMISSION_PREFIX + "READ_MEDICAL_DATA_"

    ADDITIONAL: Final[Tuple[str, ...]] = (
        READ_HEALTH_DATA_HISTORY,
        READ_HEALTH_DATA_IN_BACKGROUND,
        READ_EXERCISE_ROUTES,
    )

    # Feature gated identifiers
    SKIN_TEMPERATURE: Final[Tuple[str, ...]] = (
        PERMISSION_PREFIX + "READ_SKIN_TEMPERATURE",
        PERMISSION_PREFIX + "WRITE_SKIN_TEMPERATURE",
    )
    PLANNED_EXERCISE: Final[Tuple[str, ...]] = (
        PERMISSION_PREFIX + "READ_PLANNED_EXERCISE",
        PERMISSION_PREFIX + "WRITE_PLANNED_EXERCISE",
    )
    SESSION_TYPES: Final[Tuple[str, ...]] = (
        PERMISSION_PREFIX + "READ_EXERCISE",
        PERMISSION_PREFIX + "WRITE_EXERCISE",
        PERMISSION_PREFIX + "READ_SLEEP",
        PERMISSION_PREFIX + "WRITE_SLEEP",
        PERMISSION_PREFIX + "READ_MINDFULNESS",
        PERMISSION_PREFIX + "WRITE_MINDFULNESS",
    )


# =============================================================================
# PLATFORM PERMISSION FLAGS
# =============================================================================

class PermissionFlags:
    """Bits reported by the platform permission flag store"""
    USER_SET: Final[int] = 1 << 0
    USER_FIXED: Final[int] = 1 << 1
    POLICY_FIXED: Final[int] = 1 << 2


# =============================================================================
# RESULT CODES
# =============================================================================

class GrantResults:
    """Per-permission values reported back to the requesting app"""
    GRANTED: Final[int] = 0
    DENIED: Final[int] = -1


# =============================================================================
# ERROR CODES
# =============================================================================

class ErrorCodes:
    """Standardized error codes for the consent engine"""
    UNKNOWN_ERROR: Final[str] = "UNKNOWN_ERROR"
    VALIDATION_ERROR: Final[str] = "VALIDATION_ERROR"
    UNRECOGNISED_PERMISSION: Final[str] = "UNRECOGNISED_PERMISSION"
    PERMISSION_SECURITY_DENIED: Final[str] = "PERMISSION_SECURITY_DENIED"
    UNSUPPORTED_ENVIRONMENT: Final[str] = "UNSUPPORTED_ENVIRONMENT"
    MIGRATION_BLOCKED: Final[str] = "MIGRATION_BLOCKED"
    INVALID_FLOW_EVENT: Final[str] = "INVALID_FLOW_EVENT"
    SESSION_NOT_FOUND: Final[str] = "SESSION_NOT_FOUND"
