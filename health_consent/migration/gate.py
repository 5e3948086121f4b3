"""
Migration gate
Data migration and restore states that can block or defer permission changes
"""

from enum import Enum
from typing import Optional, Protocol

import structlog

from ..exceptions import MigrationBlockedError

logger = structlog.get_logger(__name__)


class MigrationState(str, Enum):
    """Combined migration / data restore status"""
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    ALLOWED_PAUSED = "allowed_paused"
    ALLOWED_NOT_STARTED = "allowed_not_started"
    MODULE_UPGRADE_REQUIRED = "module_upgrade_required"
    APP_UPGRADE_REQUIRED = "app_upgrade_required"
    COMPLETE = "complete"
    DATA_RESTORE_IN_PROGRESS = "data_restore_in_progress"


class GateDecision(str, Enum):
    """What the flow does with a migration state"""
    PROCEED = "proceed"
    BLOCK = "block"
    PROMPT = "prompt"


BLOCKING_STATES = frozenset({
    MigrationState.IN_PROGRESS,
    MigrationState.DATA_RESTORE_IN_PROGRESS,
})

PROMPT_STATES = frozenset({
    MigrationState.ALLOWED_PAUSED,
    MigrationState.ALLOWED_NOT_STARTED,
    MigrationState.MODULE_UPGRADE_REQUIRED,
    MigrationState.APP_UPGRADE_REQUIRED,
})


class MigrationStatusProvider(Protocol):
    """Source of the current migration state"""

    async def get_migration_state(self) -> MigrationState:
        ...


class StaticMigrationStatus:
    """Provider that always reports the same state"""

    def __init__(self, state: MigrationState = MigrationState.IDLE):
        self.state = state

    async def get_migration_state(self) -> MigrationState:
        return self.state


class MigrationStatusLoader:
    """Reads the migration state from a provider"""

    def __init__(self, provider: Optional[MigrationStatusProvider] = None):
        self.provider = provider or StaticMigrationStatus()

    async def load(self) -> MigrationState:
        """Current state; IDLE when the provider cannot be reached"""
        try:
            return await self.provider.get_migration_state()
        except Exception as e:
            logger.error("Failed to load migration state", error=str(e))
            return MigrationState.IDLE


class MigrationGate:
    """Decides whether a permission request may continue"""

    def evaluate(self, state: MigrationState) -> GateDecision:
        if state in BLOCKING_STATES:
            return GateDecision.BLOCK
        if state in PROMPT_STATES:
            return GateDecision.PROMPT
        return GateDecision.PROCEED

    def check(self, state: MigrationState) -> GateDecision:
        """
        Evaluate a state, raising for the blocking ones.

        Raises:
            MigrationBlockedError: While a migration or data restore is running
        """
        decision = self.evaluate(state)
        if decision == GateDecision.BLOCK:
            logger.warning("Permission request blocked by migration", state=state.value)
            raise MigrationBlockedError(state.value)
        return decision
