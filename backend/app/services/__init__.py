"""Service layer encapsulating business logic for API routers."""

from .quarters import (
    DEFAULT_QUARTERLY_REQUIREMENT,
    DEFAULT_VISION_AMOUNT,
    QuarterRepository,
    QuarterService,
    QuarterTotals,
    SaveQuarterResult,
    WrittenQuarter,
    compute_quarter_totals,
)
from .year_rollups import RollupTotals, YearRollupService, to_amount

__all__ = [
    "DEFAULT_QUARTERLY_REQUIREMENT",
    "DEFAULT_VISION_AMOUNT",
    "QuarterRepository",
    "QuarterService",
    "QuarterTotals",
    "RollupTotals",
    "SaveQuarterResult",
    "WrittenQuarter",
    "YearRollupService",
    "compute_quarter_totals",
    "to_amount",
]
