"""
End-to-end tests for the consent flow coordinator
"""

import pytest

from health_consent.config import ConsentFlowConfig
from health_consent.consent.flow import ConsentFlow
from health_consent.consent.results import ResultCode
from health_consent.consent.sequencing import (
    Allow,
    Cancel,
    DontAllow,
    Finish,
    ProceedDespiteMigration,
    ShowMigrationPrompt,
    ShowScreen,
    ToggleAll,
    TogglePermission,
)
from health_consent.constants import GrantResults, PermissionFlags
from health_consent.exceptions import InvalidFlowEventError
from health_consent.migration import MigrationState, MigrationStatusLoader, StaticMigrationStatus
from health_consent.permissions import Category, classify
from health_consent.platform import InMemoryPermissionStorage

P = "android.permission.health."
PACKAGE = "com.example.fitness"

STEPS = P + "READ_STEPS"
HEART_RATE = P + "READ_HEART_RATE"
DISTANCE = P + "WRITE_DISTANCE"
EXERCISE = P + "WRITE_EXERCISE"
IMMUNIZATION = P + "READ_MEDICAL_DATA_IMMUNIZATION"
HISTORY = P + "READ_HEALTH_DATA_HISTORY"
ROUTES = P + "READ_EXERCISE_ROUTES"

FOUR = [STEPS, HEART_RATE, DISTANCE, EXERCISE]
GRANTED = GrantResults.GRANTED
DENIED = GrantResults.DENIED


class TestConsentFlow:
    """Test permission requests from intake to result"""

    def setup_method(self):
        self.platform = InMemoryPermissionStorage()
        self.platform.register_app(PACKAGE, "Fitness", FOUR + [IMMUNIZATION, HISTORY, ROUTES])
        self.config = ConsentFlowConfig()

    def make_flow(self, migration_state=MigrationState.IDLE, config=None):
        loader = MigrationStatusLoader(StaticMigrationStatus(migration_state))
        return ConsentFlow(self.platform, loader, config or self.config)

    @pytest.mark.asyncio
    async def test_allow_all_grants_everything(self):
        flow = self.make_flow()

        assert await flow.start(PACKAGE, FOUR) == ShowScreen(Category.FITNESS)
        flow.dispatch(ToggleAll(Category.FITNESS, True))
        action = flow.dispatch(Allow(Category.FITNESS))

        assert action == Finish(ResultCode.OK)
        assert flow.result.permission_identifiers == FOUR
        assert flow.result.results == [GRANTED] * 4
        assert self.platform.granted_permissions(PACKAGE) == set(FOUR)

    @pytest.mark.asyncio
    async def test_dont_allow_denies_everything(self):
        flow = self.make_flow()
        await flow.start(PACKAGE, FOUR)

        flow.dispatch(DontAllow(Category.FITNESS))

        assert flow.result.result_code == ResultCode.OK
        assert flow.result.results == [DENIED] * 4
        assert flow.screens_shown == [Category.FITNESS]

    @pytest.mark.asyncio
    async def test_empty_request(self):
        flow = self.make_flow()

        action = await flow.start(PACKAGE, [])

        assert action == Finish(ResultCode.OK)
        assert flow.result.permission_identifiers == []
        assert flow.result.results == []
        assert flow.screens_shown == []

    @pytest.mark.asyncio
    async def test_medical_then_additional(self):
        flow = self.make_flow()
        await flow.start(PACKAGE, [IMMUNIZATION, HISTORY])

        flow.dispatch(TogglePermission(classify(IMMUNIZATION), True))
        action = flow.dispatch(Allow(Category.MEDICAL))

        assert action == ShowScreen(Category.ADDITIONAL)
        assert flow.session.concluded.medical

        flow.dispatch(Allow(Category.ADDITIONAL))

        assert flow.result.as_dict() == {IMMUNIZATION: GRANTED, HISTORY: GRANTED}
        assert flow.screens_shown == [Category.MEDICAL, Category.ADDITIONAL]

    @pytest.mark.asyncio
    async def test_user_fixed_short_circuit(self):
        self.platform.set_granted(PACKAGE, [DISTANCE])
        self.platform.set_flags(PACKAGE, STEPS, PermissionFlags.USER_SET | PermissionFlags.USER_FIXED)
        flow = self.make_flow()

        action = await flow.start(PACKAGE, [DISTANCE, STEPS])

        assert action == Finish(ResultCode.OK)
        assert flow.short_circuited
        assert flow.screens_shown == []
        assert flow.result.as_dict() == {DISTANCE: GRANTED, STEPS: DENIED}

    @pytest.mark.asyncio
    async def test_undeclared_permissions_are_excluded(self):
        flow = self.make_flow()
        await flow.start(PACKAGE, [STEPS, P + "READ_SLEEP", "not.a.permission"])

        flow.dispatch(ToggleAll(Category.FITNESS, True))
        flow.dispatch(Allow(Category.FITNESS))

        assert flow.result.permission_identifiers == [STEPS]
        assert flow.eligibility.dropped == {P + "READ_SLEEP": "undeclared"}

    @pytest.mark.asyncio
    async def test_hidden_permissions_are_excluded(self):
        flow = self.make_flow(config=ConsentFlowConfig(session_types_enabled=False))
        await flow.start(PACKAGE, [STEPS, EXERCISE])

        assert flow.session.pending[Category.FITNESS] == [classify(STEPS)]

    @pytest.mark.asyncio
    async def test_already_granted_reported_but_not_shown(self):
        self.platform.set_granted(PACKAGE, [DISTANCE])
        flow = self.make_flow()
        await flow.start(PACKAGE, [STEPS, DISTANCE])

        assert flow.session.pending[Category.FITNESS] == [classify(STEPS)]

        flow.dispatch(DontAllow(Category.FITNESS))

        # Don't allow never revokes what was granted before the request
        assert flow.result.as_dict() == {STEPS: DENIED, DISTANCE: GRANTED}
        assert DISTANCE in self.platform.granted_permissions(PACKAGE)

    @pytest.mark.asyncio
    async def test_allow_writes_only_the_allowed_screen(self):
        self.platform.set_granted(PACKAGE, [DISTANCE, HISTORY])
        flow = self.make_flow()
        await flow.start(PACKAGE, [IMMUNIZATION, STEPS, HEART_RATE, DISTANCE, ROUTES, HISTORY])

        flow.dispatch(TogglePermission(classify(IMMUNIZATION), True))
        assert flow.dispatch(Allow(Category.MEDICAL)) == ShowScreen(Category.FITNESS)
        assert self.platform.calls == [("grant", PACKAGE, IMMUNIZATION)]

        flow.dispatch(TogglePermission(classify(STEPS), True))
        flow.dispatch(Allow(Category.FITNESS))

        assert self.platform.calls == [
            ("grant", PACKAGE, IMMUNIZATION),
            ("grant", PACKAGE, STEPS),
            ("revoke", PACKAGE, HEART_RATE),
            ("grant", PACKAGE, DISTANCE),
        ]
        assert flow.result.as_dict() == {
            IMMUNIZATION: GRANTED, STEPS: GRANTED, HEART_RATE: DENIED,
            DISTANCE: GRANTED, ROUTES: DENIED, HISTORY: GRANTED,
        }

    @pytest.mark.asyncio
    async def test_dont_allow_skips_permissions_without_a_screen(self):
        self.platform.set_granted(PACKAGE, [DISTANCE])
        flow = self.make_flow()
        await flow.start(PACKAGE, [STEPS, DISTANCE, ROUTES])

        flow.dispatch(DontAllow(Category.FITNESS))

        assert self.platform.calls == [
            ("revoke", PACKAGE, STEPS),
            ("grant", PACKAGE, DISTANCE),
        ]
        assert flow.result.as_dict() == {STEPS: DENIED, DISTANCE: GRANTED, ROUTES: DENIED}

    @pytest.mark.asyncio
    async def test_repeated_request_never_fixes_exercise_routes(self):
        for _ in range(3):
            flow = self.make_flow()
            action = await flow.start(PACKAGE, [STEPS, ROUTES])
            if action == ShowScreen(Category.FITNESS):
                flow.dispatch(TogglePermission(classify(STEPS), True))
                flow.dispatch(Allow(Category.FITNESS))

            assert not flow.short_circuited
            assert flow.result.as_dict() == {STEPS: GRANTED, ROUTES: DENIED}

        assert all(identifier != ROUTES for _, _, identifier in self.platform.calls)
        flags = self.platform.permission_flags(PACKAGE, [ROUTES])[ROUTES]
        assert not flags & PermissionFlags.USER_FIXED

        # A later request from the same app still gets its screens
        flow = self.make_flow()
        assert await flow.start(PACKAGE, [HEART_RATE, ROUTES]) == ShowScreen(Category.FITNESS)
        assert not flow.short_circuited

    @pytest.mark.asyncio
    async def test_failing_grant_denies_only_that_permission(self):
        self.platform.fail_on(PACKAGE, HEART_RATE, RuntimeError("store unavailable"))
        flow = self.make_flow()
        await flow.start(PACKAGE, FOUR)

        flow.dispatch(ToggleAll(Category.FITNESS, True))
        flow.dispatch(Allow(Category.FITNESS))

        assert flow.result.as_dict() == {
            STEPS: GRANTED, HEART_RATE: DENIED, DISTANCE: GRANTED, EXERCISE: GRANTED,
        }

    @pytest.mark.asyncio
    async def test_cancel_keeps_committed_categories(self):
        flow = self.make_flow()
        await flow.start(PACKAGE, [IMMUNIZATION, STEPS])
        flow.dispatch(ToggleAll(Category.MEDICAL, True))
        flow.dispatch(Allow(Category.MEDICAL))

        action = flow.dispatch(Cancel())

        assert action == Finish(ResultCode.CANCELED)
        assert flow.result.permission_identifiers == []
        assert self.platform.granted_permissions(PACKAGE) == {IMMUNIZATION}

    @pytest.mark.asyncio
    async def test_additional_only_without_read_grant(self):
        flow = self.make_flow()

        action = await flow.start(PACKAGE, [HISTORY])

        assert action == Finish(ResultCode.CANCELED)
        assert self.platform.calls == []

    @pytest.mark.asyncio
    async def test_events_after_finish_rejected(self):
        flow = self.make_flow()
        await flow.start(PACKAGE, [])

        with pytest.raises(InvalidFlowEventError):
            flow.dispatch(Cancel())


class TestFlowEnvironment:
    """Test requests rejected before a session is built"""

    def setup_method(self):
        self.platform = InMemoryPermissionStorage()
        self.platform.register_app(PACKAGE, "Fitness", [STEPS])

    @pytest.mark.asyncio
    async def test_platform_unavailable(self):
        self.platform.available = False
        flow = ConsentFlow(self.platform, config=ConsentFlowConfig())

        action = await flow.start(PACKAGE, [STEPS])

        assert action == Finish(ResultCode.CANCELED)
        assert flow.session is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("package_name", [None, "", "not a package"])
    async def test_missing_or_invalid_package(self, package_name):
        flow = ConsentFlow(self.platform, config=ConsentFlowConfig())

        action = await flow.start(package_name, [STEPS])

        assert action == Finish(ResultCode.CANCELED)
        assert flow.result.results == []

    @pytest.mark.asyncio
    async def test_rationale_not_declared(self):
        self.platform.register_app("com.example.other", "Other", [STEPS], rationale_declared=False)
        flow = ConsentFlow(self.platform, config=ConsentFlowConfig())

        action = await flow.start("com.example.other", [STEPS])

        assert action == Finish(ResultCode.CANCELED)

    @pytest.mark.asyncio
    async def test_migration_block(self):
        loader = MigrationStatusLoader(StaticMigrationStatus(MigrationState.DATA_RESTORE_IN_PROGRESS))
        flow = ConsentFlow(self.platform, loader, ConsentFlowConfig())

        action = await flow.start(PACKAGE, [STEPS])

        assert action == Finish(ResultCode.CANCELED)
        assert self.platform.calls == []

    @pytest.mark.asyncio
    async def test_migration_prompt_proceed(self):
        loader = MigrationStatusLoader(StaticMigrationStatus(MigrationState.ALLOWED_PAUSED))
        flow = ConsentFlow(self.platform, loader, ConsentFlowConfig())

        assert await flow.start(PACKAGE, [STEPS]) == ShowMigrationPrompt()
        action = flow.dispatch(ProceedDespiteMigration())

        assert action == Finish(ResultCode.OK)
        assert flow.result.as_dict() == {STEPS: DENIED}
