"""Expose SQLAlchemy models for convenient imports."""

from .quarter import DonorBehavior, ExpenseBreakdown, IncomeBreakdown, Quarter
from .year import YearRollup, YearTarget

__all__ = [
    "DonorBehavior",
    "ExpenseBreakdown",
    "IncomeBreakdown",
    "Quarter",
    "YearRollup",
    "YearTarget",
]
