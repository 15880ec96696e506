"""Expose Pydantic schemas for convenient imports."""

from .auth import LoginRequest, LoginResponse
from .quarter import (
    DonorBehaviorInput,
    DonorBehaviorRead,
    QuarterOverviewResponse,
    QuarterRead,
    QuarterSubmission,
    SavedQuarter,
    SaveQuarterResponse,
    YearRollupRead,
    YearTargetRead,
)

__all__ = [
    "DonorBehaviorInput",
    "DonorBehaviorRead",
    "LoginRequest",
    "LoginResponse",
    "QuarterOverviewResponse",
    "QuarterRead",
    "QuarterSubmission",
    "SavedQuarter",
    "SaveQuarterResponse",
    "YearRollupRead",
    "YearTargetRead",
]
