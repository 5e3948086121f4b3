"""
Health permission data models
Tagged union of Medical, Fitness and Additional permissions
"""

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import ClassVar, Tuple

from ..constants import HealthPermissions


class Category(str, Enum):
    """Consent screen a permission is requested on"""
    MEDICAL = "medical"
    FITNESS = "fitness"
    ADDITIONAL = "additional"


class PermissionState(str, Enum):
    """Grant state of a single permission"""
    GRANTED = "granted"
    NOT_GRANTED = "not_granted"
    ERROR = "error"


class AccessType(str, Enum):
    """Access type of a fitness permission"""
    READ = "READ"
    WRITE = "WRITE"


class FitnessPermissionType(str, Enum):
    """Health data types that can be read or written"""
    # ACTIVITY
    ACTIVE_CALORIES_BURNED = "ACTIVE_CALORIES_BURNED"
    DISTANCE = "DISTANCE"
    ELEVATION_GAINED = "ELEVATION_GAINED"
    EXERCISE = "EXERCISE"
    PLANNED_EXERCISE = "PLANNED_EXERCISE"
    FLOORS_CLIMBED = "FLOORS_CLIMBED"
    STEPS = "STEPS"
    TOTAL_CALORIES_BURNED = "TOTAL_CALORIES_BURNED"
    VO2_MAX = "VO2_MAX"
    WHEELCHAIR_PUSHES = "WHEELCHAIR_PUSHES"
    POWER = "POWER"
    SPEED = "SPEED"
    EXERCISE_ROUTE = "EXERCISE_ROUTE"

    # BODY_MEASUREMENTS
    BASAL_METABOLIC_RATE = "BASAL_METABOLIC_RATE"
    BODY_FAT = "BODY_FAT"
    BODY_WATER_MASS = "BODY_WATER_MASS"
    BONE_MASS = "BONE_MASS"
    HEIGHT = "HEIGHT"
    LEAN_BODY_MASS = "LEAN_BODY_MASS"
    WEIGHT = "WEIGHT"

    # CYCLE_TRACKING
    CERVICAL_MUCUS = "CERVICAL_MUCUS"
    MENSTRUATION = "MENSTRUATION"
    OVULATION_TEST = "OVULATION_TEST"
    SEXUAL_ACTIVITY = "SEXUAL_ACTIVITY"
    INTERMENSTRUAL_BLEEDING = "INTERMENSTRUAL_BLEEDING"

    # NUTRITION
    HYDRATION = "HYDRATION"
    NUTRITION = "NUTRITION"

    # SLEEP
    SLEEP = "SLEEP"

    # VITALS
    BASAL_BODY_TEMPERATURE = "BASAL_BODY_TEMPERATURE"
    BLOOD_GLUCOSE = "BLOOD_GLUCOSE"
    BLOOD_PRESSURE = "BLOOD_PRESSURE"
    BODY_TEMPERATURE = "BODY_TEMPERATURE"
    HEART_RATE = "HEART_RATE"
    HEART_RATE_VARIABILITY = "HEART_RATE_VARIABILITY"
    OXYGEN_SATURATION = "OXYGEN_SATURATION"
    RESPIRATORY_RATE = "RESPIRATORY_RATE"
    RESTING_HEART_RATE = "RESTING_HEART_RATE"
    SKIN_TEMPERATURE = "SKIN_TEMPERATURE"

    # WELLNESS
    MINDFULNESS = "MINDFULNESS"


class MedicalPermissionType(str, Enum):
    """Medical record groups; ALL_MEDICAL_DATA is the write permission"""
    ALL_MEDICAL_DATA = "ALL_MEDICAL_DATA"
    ALLERGY_INTOLERANCE = "ALLERGY_INTOLERANCE"
    CONDITIONS = "CONDITIONS"
    IMMUNIZATION = "IMMUNIZATION"
    LABORATORY_RESULTS = "LABORATORY_RESULTS"
    MEDICATIONS = "MEDICATIONS"
    PERSONAL_DETAILS = "PERSONAL_DETAILS"
    PRACTITIONER_DETAILS = "PRACTITIONER_DETAILS"
    PREGNANCY = "PREGNANCY"
    PROCEDURES = "PROCEDURES"
    SOCIAL_HISTORY = "SOCIAL_HISTORY"
    VISITS = "VISITS"
    VITAL_SIGNS = "VITAL_SIGNS"


class AdditionalPermissionKind(str, Enum):
    """Cross-cutting access layered on top of data type access"""
    HISTORY_READ = HealthPermissions.READ_HEALTH_DATA_HISTORY
    BACKGROUND_READ = HealthPermissions.READ_HEALTH_DATA_IN_BACKGROUND
    EXERCISE_ROUTES = HealthPermissions.READ_EXERCISE_ROUTES


@total_ordering
class HealthPermission:
    """
    Base of the permission union.

    Concrete variants are frozen dataclasses, so equality and hashing
    come from tag plus fields. Ordering is by tag, then identifier.
    """

    _rank: ClassVar[int] = 0

    def sort_key(self) -> Tuple[int, str]:
        return (self._rank, str(self))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HealthPermission):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    @property
    def category(self) -> Category:
        return category_of(self)


@dataclass(frozen=True)
class MedicalPermission(HealthPermission):
    """Access to a group of medical records"""
    medical_type: MedicalPermissionType

    _rank: ClassVar[int] = 0

    def __str__(self) -> str:
        if self.medical_type == MedicalPermissionType.ALL_MEDICAL_DATA:
            return HealthPermissions.WRITE_MEDICAL_DATA
        return f"{HealthPermissions.READ_MEDICAL_DATA_PREFIX}{self.medical_type.value}"


@dataclass(frozen=True)
class FitnessPermission(HealthPermission):
    """Read or write access to one health data type"""
    fitness_type: FitnessPermissionType
    access_type: AccessType

    _rank: ClassVar[int] = 1

    def __str__(self) -> str:
        if self.access_type == AccessType.READ:
            return f"{HealthPermissions.READ_PREFIX}{self.fitness_type.value}"
        return f"{HealthPermissions.WRITE_PREFIX}{self.fitness_type.value}"

    @property
    def is_read(self) -> bool:
        return self.access_type == AccessType.READ


@dataclass(frozen=True)
class AdditionalPermission(HealthPermission):
    """History, background or exercise route access"""
    kind: AdditionalPermissionKind

    _rank: ClassVar[int] = 2

    def __str__(self) -> str:
        return self.kind.value

    def is_history_read(self) -> bool:
        return self.kind == AdditionalPermissionKind.HISTORY_READ

    def is_exercise_routes(self) -> bool:
        return self.kind == AdditionalPermissionKind.EXERCISE_ROUTES


def category_of(permission: HealthPermission) -> Category:
    """Map a permission to the consent screen that requests it"""
    match permission:
        case MedicalPermission():
            return Category.MEDICAL
        case FitnessPermission():
            return Category.FITNESS
        case AdditionalPermission():
            return Category.ADDITIONAL
    raise TypeError(f"Unknown health permission variant: {type(permission).__name__}")

