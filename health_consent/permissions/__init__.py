"""
Health permission model, classification and eligibility
"""

from .models import (
    Category, PermissionState, AccessType,
    FitnessPermissionType, MedicalPermissionType, AdditionalPermissionKind,
    HealthPermission, MedicalPermission, FitnessPermission, AdditionalPermission,
    category_of,
)
from .classifier import classify, classify_all
from .eligibility import EligibilityReport, DropReason, filter_eligible, hidden_permissions
from .user_fixed import UserFixedGuard

__all__ = [
    "Category",
    "PermissionState",
    "AccessType",
    "FitnessPermissionType",
    "MedicalPermissionType",
    "AdditionalPermissionKind",
    "HealthPermission",
    "MedicalPermission",
    "FitnessPermission",
    "AdditionalPermission",
    "category_of",
    "classify",
    "classify_all",
    "EligibilityReport",
    "DropReason",
    "filter_eligible",
    "hidden_permissions",
    "UserFixedGuard",
]
