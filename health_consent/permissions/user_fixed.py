"""
USER_FIXED guard
A permission the user fixed outside this flow must never change silently
"""

from typing import Sequence

import structlog

from ..constants import PermissionFlags
from ..platform.base import HealthPermissionPlatform

logger = structlog.get_logger(__name__)


class UserFixedGuard:
    """Detects requests that touch permissions the user has permanently fixed"""

    def __init__(self, platform: HealthPermissionPlatform):
        self.platform = platform

    def is_any_user_fixed(self, package_name: str, identifiers: Sequence[str]) -> bool:
        """
        Check the raw requested identifiers against the platform flag store.

        Uses the original request, before classification and filtering,
        so a fixed permission that is later dropped still trips the guard.
        """
        if not identifiers:
            return False

        flags = self.platform.permission_flags(package_name, list(identifiers))
        fixed = [identifier for identifier, bits in flags.items()
                 if bits & PermissionFlags.USER_FIXED]

        if fixed:
            logger.warning("Request contains USER_FIXED permissions",
                           package_name=package_name, permissions=fixed)
            return True
        return False
