"""
Tests for permission classification, eligibility and the USER_FIXED guard
"""

import pytest

from health_consent.config import ConsentFlowConfig, get_consent_config, update_consent_config
from health_consent.constants import PermissionFlags
from health_consent.exceptions import PermissionClassificationError
from health_consent.permissions import (
    AccessType,
    AdditionalPermission,
    AdditionalPermissionKind,
    Category,
    DropReason,
    FitnessPermission,
    FitnessPermissionType,
    MedicalPermission,
    MedicalPermissionType,
    UserFixedGuard,
    classify,
    classify_all,
    filter_eligible,
    hidden_permissions,
)
from health_consent.platform import InMemoryPermissionStorage

P = "android.permission.health."
PACKAGE = "com.example.fitness"


class TestClassifier:
    """Test identifier parsing"""

    def test_fitness_read_and_write(self):
        steps = classify(P + "READ_STEPS")
        distance = classify(P + "WRITE_DISTANCE")

        assert steps == FitnessPermission(FitnessPermissionType.STEPS, AccessType.READ)
        assert distance == FitnessPermission(FitnessPermissionType.DISTANCE, AccessType.WRITE)
        assert steps.is_read
        assert not distance.is_read
        assert steps.category == Category.FITNESS

    def test_medical(self):
        write_all = classify(P + "WRITE_MEDICAL_DATA")
        vaccines = classify(P + "READ_MEDICAL_DATA_IMMUNIZATION")

        assert write_all == MedicalPermission(MedicalPermissionType.ALL_MEDICAL_DATA)
        assert vaccines == MedicalPermission(MedicalPermissionType.IMMUNIZATION)
        assert vaccines.category == Category.MEDICAL

    def test_additional(self):
        history = classify(P + "READ_HEALTH_DATA_HISTORY")

        assert history == AdditionalPermission(AdditionalPermissionKind.HISTORY_READ)
        assert history.is_history_read()
        assert history.category == Category.ADDITIONAL

    def test_identifier_round_trips_through_str(self):
        for identifier in (P + "READ_HEART_RATE", P + "WRITE_MEDICAL_DATA",
                           P + "READ_HEALTH_DATA_IN_BACKGROUND"):
            assert str(classify(identifier)) == identifier

    @pytest.mark.parametrize("identifier", [
        "",
        "android.permission.CAMERA",
        P + "READ_UNICORNS",
        P + "READ_MEDICAL_DATA_ALL_MEDICAL_DATA",
        P + "READ_MEDICAL_DATA_SPELLS",
    ])
    def test_unrecognised_identifiers_raise(self, identifier):
        with pytest.raises(PermissionClassificationError) as exc_info:
            classify(identifier)

        assert exc_info.value.identifier == identifier

    def test_classify_all_drops_failures_and_keeps_order(self):
        result = classify_all([P + "WRITE_DISTANCE", "bogus", P + "READ_STEPS"])

        assert [str(p) for p in result] == [P + "WRITE_DISTANCE", P + "READ_STEPS"]

    def test_ordering_is_by_tag_then_identifier(self):
        permissions = [
            classify(P + "READ_HEALTH_DATA_HISTORY"),
            classify(P + "READ_STEPS"),
            classify(P + "READ_MEDICAL_DATA_VITAL_SIGNS"),
            classify(P + "READ_HEART_RATE"),
        ]

        assert [p.category for p in sorted(permissions)] == [
            Category.MEDICAL, Category.FITNESS, Category.FITNESS, Category.ADDITIONAL,
        ]
        assert sorted(permissions)[1] == classify(P + "READ_HEART_RATE")


class TestEligibility:
    """Test hidden and undeclared filtering"""

    def setup_method(self):
        self.config = ConsentFlowConfig()

    def test_undeclared_permissions_are_dropped(self):
        permissions = classify_all([P + "READ_STEPS", P + "READ_HEART_RATE"])

        report = filter_eligible(permissions, {P + "READ_STEPS"}, set())

        assert [str(p) for p in report.eligible] == [P + "READ_STEPS"]
        assert report.dropped == {P + "READ_HEART_RATE": DropReason.UNDECLARED}

    def test_hidden_wins_over_undeclared(self):
        permissions = classify_all([P + "READ_SLEEP"])

        report = filter_eligible(permissions, set(), {P + "READ_SLEEP"})

        assert report.eligible == []
        assert report.dropped[P + "READ_SLEEP"] == DropReason.HIDDEN

    def test_duplicates_are_removed(self):
        permissions = classify_all([P + "READ_STEPS", P + "READ_STEPS"])

        report = filter_eligible(permissions, {P + "READ_STEPS"}, set())

        assert len(report.eligible) == 1

    def test_nothing_hidden_by_default(self):
        assert hidden_permissions(self.config) == set()

    def test_feature_flags_hide_permissions(self):
        config = ConsentFlowConfig(
            history_read_enabled=False,
            session_types_enabled=False,
            personal_health_records_enabled=False,
        )

        hidden = hidden_permissions(config)

        assert P + "READ_HEALTH_DATA_HISTORY" in hidden
        assert P + "WRITE_EXERCISE" in hidden
        assert P + "READ_MINDFULNESS" in hidden
        assert P + "WRITE_MEDICAL_DATA" in hidden
        assert P + "READ_MEDICAL_DATA_CONDITIONS" in hidden
        assert P + "READ_STEPS" not in hidden

    def test_global_config_update(self):
        original = get_consent_config().background_read_enabled
        try:
            update_consent_config(background_read_enabled=False, not_a_setting=True)

            assert P + "READ_HEALTH_DATA_IN_BACKGROUND" in hidden_permissions()
            assert not hasattr(get_consent_config(), "not_a_setting")
        finally:
            update_consent_config(background_read_enabled=original)


class TestUserFixedGuard:
    """Test USER_FIXED detection"""

    def setup_method(self):
        self.platform = InMemoryPermissionStorage()
        self.platform.register_app(PACKAGE, "Fitness", [P + "READ_STEPS", P + "WRITE_DISTANCE"])
        self.guard = UserFixedGuard(self.platform)

    def test_no_flags(self):
        assert not self.guard.is_any_user_fixed(PACKAGE, [P + "READ_STEPS"])

    def test_user_set_alone_is_not_fixed(self):
        self.platform.set_flags(PACKAGE, P + "READ_STEPS", PermissionFlags.USER_SET)

        assert not self.guard.is_any_user_fixed(PACKAGE, [P + "READ_STEPS"])

    def test_user_fixed_detected(self):
        self.platform.set_flags(PACKAGE, P + "READ_STEPS",
                                PermissionFlags.USER_SET | PermissionFlags.USER_FIXED)

        assert self.guard.is_any_user_fixed(PACKAGE, [P + "WRITE_DISTANCE", P + "READ_STEPS"])

    def test_raw_identifiers_are_checked(self):
        # Not a parsable health permission, still checked
        self.platform.set_flags(PACKAGE, "android.permission.CAMERA", PermissionFlags.USER_FIXED)

        assert self.guard.is_any_user_fixed(PACKAGE, ["android.permission.CAMERA"])

    def test_empty_request(self):
        assert not self.guard.is_any_user_fixed(PACKAGE, [])
