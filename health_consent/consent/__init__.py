"""
Consent session, sequencing, commit and flow coordination
"""

from .session import ConsentSession, Concluded
from .results import ResultCode, PermissionResult
from .committer import GrantCommitter, CommitReport
from .sequencing import (
    SequencingController, Transition,
    TogglePermission, ToggleAll, Allow, DontAllow, ScreenReshown,
    ProceedDespiteMigration, WaitForMigration, Cancel,
    ShowScreen, ShowMigrationPrompt, Finish,
)
from .flow import ConsentFlow
from .manager import ConsentFlowManager, PermissionRequest, FlowEventRequest

__all__ = [
    "ConsentSession",
    "Concluded",
    "ResultCode",
    "PermissionResult",
    "GrantCommitter",
    "CommitReport",
    "SequencingController",
    "Transition",
    "TogglePermission",
    "ToggleAll",
    "Allow",
    "DontAllow",
    "ScreenReshown",
    "ProceedDespiteMigration",
    "WaitForMigration",
    "Cancel",
    "ShowScreen",
    "ShowMigrationPrompt",
    "Finish",
    "ConsentFlow",
    "ConsentFlowManager",
    "PermissionRequest",
    "FlowEventRequest",
]
