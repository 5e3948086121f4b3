"""
Platform adapters for the consent engine
Permission store contract and its database / in-memory implementations
"""

from .base import AppMetadata, HealthPermissionPlatform
from .storage import PermissionStorage, InMemoryPermissionStorage

__all__ = [
    "AppMetadata",
    "HealthPermissionPlatform",
    "PermissionStorage",
    "InMemoryPermissionStorage",
]
