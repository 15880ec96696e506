"""Keep the per-year rollup cache in sync with the year's quarters."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas

CENT = Decimal("0.01")


def to_amount(value: Decimal | float | int | str | None) -> Decimal:
    """Normalize a stored or submitted amount to a ``Decimal`` with cent precision."""

    return Decimal(str(value or 0)).quantize(CENT)


@dataclass(frozen=True)
class RollupTotals:
    total_income: Decimal
    total_expense: Decimal
    cumulative_surplus: Decimal

    @classmethod
    def zero(cls) -> "RollupTotals":
        return cls(to_amount(0), to_amount(0), to_amount(0))

    def as_schema(self) -> schemas.YearRollupRead:
        return schemas.YearRollupRead(
            total_income=self.total_income,
            total_expense=self.total_expense,
            cumulative_surplus=self.cumulative_surplus,
        )


class YearRollupService:
    """Helpers that read, create and recompute ``YearRollup`` rows."""

    @staticmethod
    def get(db: Session, year: int) -> models.YearRollup | None:
        return db.query(models.YearRollup).filter(models.YearRollup.year == year).first()

    @staticmethod
    def ensure(db: Session, year: int) -> models.YearRollup:
        """Return the rollup row for ``year``, inserting zeros if it is missing.

        The row is locked for the rest of the transaction so concurrent writers
        for the same year are serialized by the database.
        """

        rollup = (
            db.query(models.YearRollup)
            .filter(models.YearRollup.year == year)
            .with_for_update(of=models.YearRollup)
            .first()
        )
        if rollup is None:
            rollup = models.YearRollup(
                year=year,
                total_income=to_amount(0),
                total_expense=to_amount(0),
                cumulative_surplus=to_amount(0),
            )
            db.add(rollup)
            db.flush()
        return rollup

    @staticmethod
    def aggregate(db: Session, year: int) -> RollupTotals:
        """Sum the stored totals of every quarter in ``year``."""

        total_income, total_expense, cumulative_surplus = (
            db.query(
                func.coalesce(func.sum(models.IncomeBreakdown.total), 0),
                func.coalesce(func.sum(models.ExpenseBreakdown.total), 0),
                func.coalesce(func.sum(models.Quarter.surplus), 0),
            )
            .select_from(models.Quarter)
            .outerjoin(models.IncomeBreakdown, models.IncomeBreakdown.quarter_id == models.Quarter.id)
            .outerjoin(models.ExpenseBreakdown, models.ExpenseBreakdown.quarter_id == models.Quarter.id)
            .filter(models.Quarter.year == year)
            .one()
        )
        return RollupTotals(
            total_income=to_amount(total_income),
            total_expense=to_amount(total_expense),
            cumulative_surplus=to_amount(cumulative_surplus),
        )

    @classmethod
    def recompute(cls, db: Session, year: int) -> models.YearRollup:
        """Overwrite the rollup for ``year`` with a fresh aggregate."""

        totals = cls.aggregate(db, year)
        rollup = cls.ensure(db, year)
        rollup.total_income = totals.total_income
        rollup.total_expense = totals.total_expense
        rollup.cumulative_surplus = totals.cumulative_surplus
        db.add(rollup)
        db.flush()
        return rollup

    @staticmethod
    def summarize(quarters: Iterable[schemas.QuarterRead]) -> RollupTotals:
        """Compute the rollup from already loaded quarters.

        Uses the same sums as :meth:`aggregate`, for years whose rollup row was
        never written.
        """

        total_income = total_expense = cumulative_surplus = Decimal("0")
        for quarter in quarters:
            total_income += to_amount(quarter.income_total)
            total_expense += to_amount(quarter.expense_total)
            cumulative_surplus += to_amount(quarter.surplus)
        return RollupTotals(
            total_income=to_amount(total_income),
            total_expense=to_amount(total_expense),
            cumulative_surplus=to_amount(cumulative_surplus),
        )

    @staticmethod
    def from_row(rollup: models.YearRollup) -> RollupTotals:
        return RollupTotals(
            total_income=to_amount(rollup.total_income),
            total_expense=to_amount(rollup.total_expense),
            cumulative_surplus=to_amount(rollup.cumulative_surplus),
        )
