"""
Consent screen sequencing
Pure reducer deciding which consent screen comes next and what to commit
"""

import copy
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

import structlog

from ..exceptions import InvalidFlowEventError
from ..migration.gate import GateDecision
from ..permissions.models import Category, HealthPermission, category_of
from .results import ResultCode
from .session import ConsentSession

logger = structlog.get_logger(__name__)


# =============================================================================
# EVENTS
# =============================================================================

@dataclass(frozen=True)
class TogglePermission:
    """User flipped the switch of a single permission"""
    permission: HealthPermission
    granted: bool


@dataclass(frozen=True)
class ToggleAll:
    """User flipped the allow-all switch of a screen"""
    category: Category
    granted: bool


@dataclass(frozen=True)
class Allow:
    category: Category


@dataclass(frozen=True)
class DontAllow:
    category: Category


@dataclass(frozen=True)
class ScreenReshown:
    """Host recreated the current screen (configuration change or restart)"""


@dataclass(frozen=True)
class ProceedDespiteMigration:
    pass


@dataclass(frozen=True)
class WaitForMigration:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


FlowEvent = Union[
    TogglePermission, ToggleAll, Allow, DontAllow, ScreenReshown,
    ProceedDespiteMigration, WaitForMigration, Cancel,
]


# =============================================================================
# ACTIONS
# =============================================================================

@dataclass(frozen=True)
class ShowScreen:
    category: Category


@dataclass(frozen=True)
class ShowMigrationPrompt:
    pass


@dataclass(frozen=True)
class Finish:
    result_code: ResultCode


NextAction = Union[ShowScreen, ShowMigrationPrompt, Finish]


@dataclass(frozen=True)
class Transition:
    """
    Reducer output.

    The host hands ``commit`` to the GrantCommitter before acting on
    ``action``.
    """
    session: ConsentSession
    action: NextAction
    commit: Tuple[Category, ...] = ()

    @property
    def finished(self) -> bool:
        return isinstance(self.action, Finish)


class SequencingController:
    """
    Decides the next consent screen.

    Category flags come from the permissions still pending on a screen:

    1. nothing pending: commit everything and finish
    2. medical only: medical, then finish
    3. fitness only: fitness, then finish
    4. additional only: needs an already granted read permission, else
       cancel; fitness counts as concluded
    5. medical + fitness: medical unless concluded, then fitness
    6. medical + additional: medical unless concluded, then additional
    7. fitness + additional: fitness unless concluded, then additional
    8. all three: medical, fitness, additional

    Only the categories the user decided on are committed: the allowed
    screen, or everything still open on "Don't allow", on proceeding past a
    migration or on a short circuit.

    Sessions passed in are never mutated; every transition carries a copy.
    """

    def start(self, session: ConsentSession,
              decision: GateDecision = GateDecision.PROCEED) -> Transition:
        session = copy.deepcopy(session)

        if decision == GateDecision.BLOCK:
            return self._finish(session, ResultCode.CANCELED)
        if decision == GateDecision.PROMPT:
            session.awaiting_migration_choice = True
            logger.info("Asking user about pending migration", package_name=session.package_name)
            return Transition(session, ShowMigrationPrompt())

        return self._next(session)

    def short_circuit(self, session: ConsentSession) -> Transition:
        """Skip every screen and commit the pre-existing grant state"""
        session = copy.deepcopy(session)
        for category in Category:
            session.local_grants[category] = set()
        session.conclude_all()
        logger.info("Skipping consent screens", package_name=session.package_name)
        return self._finish(session, ResultCode.OK, self._open_categories(session))

    def handle(self, session: ConsentSession, event: FlowEvent) -> Transition:
        """
        Apply a user event.

        Raises:
            InvalidFlowEventError: If the event does not apply to the current screen
        """
        session = copy.deepcopy(session)

        match event:
            case TogglePermission(permission=permission, granted=granted):
                self._require_toggleable(session, event, category_of(permission))
                if permission not in session.pending[session.screen]:
                    raise InvalidFlowEventError(
                        "TogglePermission", f"{permission} is not shown on this screen")
                session.set_local_grant(permission, granted)
                return Transition(session, ShowScreen(session.screen))

            case ToggleAll(category=category, granted=granted):
                self._require_toggleable(session, event, category)
                session.set_all_local_grants(category, granted)
                return Transition(session, ShowScreen(category))

            case Allow(category=category):
                self._require_screen(session, event, category)
                if not session.allow_enabled(category):
                    raise InvalidFlowEventError("Allow", "no permission selected")
                if category == Category.ADDITIONAL:
                    return self._finish(session, ResultCode.OK, (category,))
                session.conclude(category)
                return self._next(session, (category,))

            case DontAllow(category=category):
                self._require_screen(session, event, category)
                return self._deny_remaining(session)

            case ScreenReshown():
                if session.awaiting_migration_choice:
                    return Transition(session, ShowMigrationPrompt())
                self._require_screen(session, event)
                return self._next(session)

            case ProceedDespiteMigration():
                self._require_migration_prompt(session, event)
                session.awaiting_migration_choice = False
                return self._deny_remaining(session)

            case WaitForMigration():
                self._require_migration_prompt(session, event)
                session.awaiting_migration_choice = False
                return self._finish(session, ResultCode.CANCELED)

            case Cancel():
                if session.screen is None and not session.awaiting_migration_choice:
                    raise InvalidFlowEventError("Cancel", "flow already finished")
                session.awaiting_migration_choice = False
                return self._finish(session, ResultCode.CANCELED)

        raise InvalidFlowEventError(type(event).__name__, "unknown event")

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _next(self, session: ConsentSession, commit: Tuple[Category, ...] = ()) -> Transition:
        flags = tuple(session.has(category) for category in Category)

        match flags:
            case (False, False, False):
                # Nothing to ask: already granted permissions are written back as they are
                return self._finish(session, ResultCode.OK, commit + self._open_categories(session))
            case (False, False, True):
                if not session.any_read_permission_already_granted:
                    logger.info("Additional permissions requested without a read grant",
                                package_name=session.package_name)
                    return self._finish(session, ResultCode.CANCELED, commit)
                session.conclude(Category.FITNESS)
                order: Tuple[Category, ...] = (Category.ADDITIONAL,)
            case _:
                order = tuple(c for c, present in zip(Category, flags) if present)

        for category in order:
            if not session.is_concluded(category):
                return self._show(session, category, commit)
        return self._finish(session, ResultCode.OK, commit)

    def _show(self, session: ConsentSession, category: Category,
              commit: Tuple[Category, ...]) -> Transition:
        session.screen = category
        session.reset_local_grants(category)
        logger.debug("Showing consent screen", package_name=session.package_name,
                     category=category.value)
        return Transition(session, ShowScreen(category), commit)

    def _deny_remaining(self, session: ConsentSession) -> Transition:
        commit = self._open_categories(session)
        for category in commit:
            session.local_grants[category] = set()
        session.conclude_all()
        return self._finish(session, ResultCode.OK, commit)

    @staticmethod
    def _open_categories(session: ConsentSession) -> Tuple[Category, ...]:
        return tuple(c for c in Category if session.uncommitted(c))

    def _finish(self, session: ConsentSession, result_code: ResultCode,
                commit: Iterable[Category] = ()) -> Transition:
        commit = tuple(commit)
        session.screen = None
        logger.info("Permission request finished", package_name=session.package_name,
                    result_code=result_code.value, commit=[c.value for c in commit])
        return Transition(session, Finish(result_code), commit)

    # ------------------------------------------------------------------
    # Event checks
    # ------------------------------------------------------------------

    def _require_screen(self, session: ConsentSession, event: FlowEvent,
                        category: Optional[Category] = None) -> None:
        name = type(event).__name__
        if session.screen is None:
            raise InvalidFlowEventError(name, "no consent screen is shown")
        if category is not None and category != session.screen:
            raise InvalidFlowEventError(name, f"{category.value} screen is not shown",
                                        expected=[session.screen.value])

    def _require_toggleable(self, session: ConsentSession, event: FlowEvent,
                            category: Category) -> None:
        self._require_screen(session, event, category)
        if category == Category.ADDITIONAL and session.is_single_additional():
            raise InvalidFlowEventError(type(event).__name__, "screen has no toggles")

    def _require_migration_prompt(self, session: ConsentSession, event: FlowEvent) -> None:
        if not session.awaiting_migration_choice:
            raise InvalidFlowEventError(type(event).__name__, "no migration prompt is shown")
