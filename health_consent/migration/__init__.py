"""
Migration gating for permission requests
"""

from .gate import (
    MigrationState, GateDecision, MigrationGate, MigrationStatusLoader,
    MigrationStatusProvider, StaticMigrationStatus,
)

__all__ = [
    "MigrationState",
    "GateDecision",
    "MigrationGate",
    "MigrationStatusLoader",
    "MigrationStatusProvider",
    "StaticMigrationStatus",
]
