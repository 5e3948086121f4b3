"""
Utility functions for the consent engine
ID generation and input validation
"""

from .ids import generate_session_id, validate_id
from .validators import validate_package_name, validate_permission_identifiers

__all__ = [
    # ID generation
    "generate_session_id",
    "validate_id",
    # Validators
    "validate_package_name",
    "validate_permission_identifiers",
]
