"""
Health Connect consent engine
Classifies, sequences and commits health permission requests
"""

__version__ = "0.1.0"

# Core exports
from .config import ConsentFlowConfig, get_consent_config, update_consent_config

# Permission model
from .permissions import (
    Category, PermissionState, HealthPermission,
    MedicalPermission, FitnessPermission, AdditionalPermission,
    classify, classify_all, filter_eligible, hidden_permissions, UserFixedGuard
)

# Platform adapters
from .platform import AppMetadata, HealthPermissionPlatform, PermissionStorage, InMemoryPermissionStorage

# Migration gating
from .migration import MigrationState, GateDecision, MigrationGate, MigrationStatusLoader

# Consent flow
from .consent import (
    ConsentSession, SequencingController, GrantCommitter,
    ConsentFlow, ConsentFlowManager, PermissionResult, ResultCode
)

__all__ = [
    # Config
    "ConsentFlowConfig",
    "get_consent_config",
    "update_consent_config",

    # Permissions
    "Category",
    "PermissionState",
    "HealthPermission",
    "MedicalPermission",
    "FitnessPermission",
    "AdditionalPermission",
    "classify",
    "classify_all",
    "filter_eligible",
    "hidden_permissions",
    "UserFixedGuard",

    # Platform
    "AppMetadata",
    "HealthPermissionPlatform",
    "PermissionStorage",
    "InMemoryPermissionStorage",

    # Migration
    "MigrationState",
    "GateDecision",
    "MigrationGate",
    "MigrationStatusLoader",

    # Consent flow
    "ConsentSession",
    "SequencingController",
    "GrantCommitter",
    "ConsentFlow",
    "ConsentFlowManager",
    "PermissionResult",
    "ResultCode",
]
