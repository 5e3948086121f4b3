"""
Platform collaborator contracts
What the consent engine needs from the OS permission store and app registry
"""

from typing import Dict, List, Optional, Protocol, Set

from pydantic import BaseModel


class AppMetadata(BaseModel):
    """Display information for the requesting app"""
    package_name: str
    display_name: str
    icon: Optional[str] = None


class HealthPermissionPlatform(Protocol):
    """
    Permission store and app registry used by the consent flow.

    grant and revoke raise PermissionSecurityError when the platform
    refuses the change; any other exception is an unexpected failure.
    """

    def is_health_platform_available(self) -> bool:
        ...

    def declared_permissions(self, package_name: str) -> Set[str]:
        ...

    def granted_permissions(self, package_name: str) -> Set[str]:
        ...

    def permission_flags(self, package_name: str, identifiers: List[str]) -> Dict[str, int]:
        ...

    def grant(self, package_name: str, identifier: str) -> None:
        ...

    def revoke(self, package_name: str, identifier: str) -> None:
        ...

    def declares_rationale(self, package_name: str) -> bool:
        ...

    def app_metadata(self, package_name: str) -> AppMetadata:
        ...
