"""
Custom Exceptions for the Health Connect consent engine

Provides a unified exception hierarchy for permission classification,
platform grant failures, flow gating and event dispatch.
"""

from typing import Optional, Dict, Any, List

from .constants import ErrorCodes


class PermissionFlowError(Exception):
    """
    Base exception for all consent engine errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCodes.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        result: Dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# CLASSIFICATION ERRORS
# =============================================================================

class PermissionClassificationError(PermissionFlowError):
    """Raised when a permission identifier cannot be parsed"""

    def __init__(self, identifier: str, reason: Optional[str] = None):
        details: Dict[str, Any] = {"identifier": identifier}
        if reason:
            details["reason"] = reason
        super().__init__(
            message=f"Unrecognised health permission: {identifier}",
            error_code=ErrorCodes.UNRECOGNISED_PERMISSION,
            details=details
        )
        self.identifier = identifier


# =============================================================================
# PLATFORM ERRORS
# =============================================================================

class PermissionSecurityError(PermissionFlowError):
    """Raised by the permission store when the caller may not change a permission"""

    def __init__(
        self,
        identifier: str,
        package_name: Optional[str] = None,
        reason: Optional[str] = None
    ):
        details: Dict[str, Any] = {"identifier": identifier}
        if package_name:
            details["package_name"] = package_name
        if reason:
            details["reason"] = reason
        super().__init__(
            message=f"Not allowed to change permission: {identifier}",
            error_code=ErrorCodes.PERMISSION_SECURITY_DENIED,
            details=details
        )


# =============================================================================
# FLOW ERRORS
# =============================================================================

class UnsupportedEnvironmentError(PermissionFlowError):
    """Raised when a request cannot be served on this device, profile or input"""

    def __init__(self, reason: str, package_name: Optional[str] = None):
        details: Dict[str, Any] = {"reason": reason}
        if package_name:
            details["package_name"] = package_name
        super().__init__(
            message=f"Permission request not supported: {reason}",
            error_code=ErrorCodes.UNSUPPORTED_ENVIRONMENT,
            details=details
        )
        self.reason = reason


class MigrationBlockedError(PermissionFlowError):
    """Raised when a migration or data restore blocks permission changes"""

    def __init__(self, state: str):
        super().__init__(
            message=f"Permission changes blocked while migration state is {state}",
            error_code=ErrorCodes.MIGRATION_BLOCKED,
            details={"migration_state": state}
        )
        self.state = state


class InvalidFlowEventError(PermissionFlowError):
    """Raised when an event does not apply to the current screen"""

    def __init__(
        self,
        event: str,
        reason: str,
        expected: Optional[List[str]] = None
    ):
        details: Dict[str, Any] = {"event": event, "reason": reason}
        if expected:
            details["expected"] = expected
        super().__init__(
            message=f"Event {event} rejected: {reason}",
            error_code=ErrorCodes.INVALID_FLOW_EVENT,
            details=details
        )


class SessionNotFoundError(PermissionFlowError):
    """Raised when a consent session id is unknown"""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Consent session not found: {session_id}",
            error_code=ErrorCodes.SESSION_NOT_FOUND,
            details={"session_id": session_id}
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(PermissionFlowError):
    """Raised when input validation fails"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, ErrorCodes.VALIDATION_ERROR, details)
