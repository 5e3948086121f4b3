"""
ID generation for consent sessions
"""

import secrets
from typing import Optional

SESSION_PREFIX = "req"


def generate_session_id() -> str:
    """Generate an unguessable permission request id"""
    return f"{SESSION_PREFIX}_{secrets.token_urlsafe(24)}"


def validate_id(id_value: str, expected_prefix: Optional[str] = SESSION_PREFIX) -> bool:
    """Check the prefix_random shape of a generated id"""
    if not id_value or not isinstance(id_value, str):
        return False

    prefix, _, rest = id_value.partition("_")
    if not rest:
        return False
    if expected_prefix and prefix != expected_prefix:
        return False
    return True
