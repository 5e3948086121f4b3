"""
Flow results
What the requesting app receives when a permission request finishes
"""

from enum import Enum
from typing import List, Mapping

from pydantic import BaseModel, Field

from ..constants import GrantResults
from ..permissions.models import HealthPermission, PermissionState


class ResultCode(str, Enum):
    """Exit code of a permission request"""
    OK = "ok"
    CANCELED = "canceled"


class PermissionResult(BaseModel):
    """Parallel arrays of identifiers and GRANTED/DENIED values"""
    result_code: ResultCode
    permission_identifiers: List[str] = Field(default_factory=list)
    results: List[int] = Field(default_factory=list)

    @classmethod
    def canceled(cls) -> "PermissionResult":
        return cls(result_code=ResultCode.CANCELED)

    @classmethod
    def from_grants(cls, grants: Mapping[HealthPermission, PermissionState]) -> "PermissionResult":
        # ERROR is reported to the app as DENIED
        identifiers = [str(p) for p in grants]
        results = [
            GrantResults.GRANTED if state == PermissionState.GRANTED else GrantResults.DENIED
            for state in grants.values()
        ]
        return cls(result_code=ResultCode.OK, permission_identifiers=identifiers, results=results)

    def as_dict(self) -> dict:
        """identifier -> result value"""
        return dict(zip(self.permission_identifiers, self.results))
