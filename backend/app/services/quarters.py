"""Reading and saving quarterly financial figures."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import transaction
from ..errors import BadRequestError, QuarterConflictError, StorageError
from .year_rollups import YearRollupService, to_amount

LOGGER = logging.getLogger(__name__)

DEFAULT_QUARTERLY_REQUIREMENT = Decimal("75000.00")
DEFAULT_VISION_AMOUNT = Decimal("81000.00")


@dataclass(frozen=True)
class QuarterTotals:
    """Derived totals for one submission."""

    income: Decimal
    income_prior: Decimal
    expense: Decimal
    expense_prior: Decimal

    @property
    def surplus(self) -> Decimal:
        return self.income - self.expense


def _sum_amounts(*amounts: Decimal) -> Decimal:
    return to_amount(sum((to_amount(amount) for amount in amounts), Decimal("0")))


def compute_quarter_totals(submission: schemas.QuarterSubmission) -> QuarterTotals:
    """Sum the income and expense sub-categories of ``submission``."""

    return QuarterTotals(
        income=_sum_amounts(submission.donations, submission.mission_income, submission.other_income),
        income_prior=_sum_amounts(
            submission.donations_prior,
            submission.mission_income_prior,
            submission.other_income_prior,
        ),
        expense=_sum_amounts(
            submission.building,
            submission.personnel,
            submission.mission_expense,
            submission.other_expense,
        ),
        expense_prior=_sum_amounts(
            submission.building_prior,
            submission.personnel_prior,
            submission.mission_expense_prior,
            submission.other_expense_prior,
        ),
    )


@dataclass(frozen=True)
class WrittenQuarter:
    """A quarter whose row and both breakdowns have been written.

    Only :meth:`QuarterRepository.write_breakdowns` creates these, and the
    rollup recomputation requires one.
    """

    quarter_id: int
    year: int
    quarter: int
    surplus: Decimal


@dataclass(frozen=True)
class SaveQuarterResult:
    created: bool
    quarter_id: int
    year: int
    quarter: int
    surplus: Decimal


class QuarterRepository:
    """Typed write operations used by the save pipeline, in pipeline order."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def ensure_year_rollup(self, year: int) -> models.YearRollup:
        return YearRollupService.ensure(self.db, year)

    def upsert_year_target(
        self,
        year: int,
        quarterly_requirement: Optional[Decimal],
        vision_amount: Optional[Decimal],
    ) -> models.YearTarget:
        target = (
            self.db.query(models.YearTarget)
            .filter(models.YearTarget.year == year)
            .with_for_update(of=models.YearTarget)
            .first()
        )
        if target is None:
            target = models.YearTarget(year=year)
        target.quarterly_requirement = to_amount(quarterly_requirement or DEFAULT_QUARTERLY_REQUIREMENT)
        target.vision_amount = to_amount(vision_amount or DEFAULT_VISION_AMOUNT)
        self.db.add(target)
        self.db.flush()
        return target

    def find_quarter(self, year: int, quarter: int) -> Optional[models.Quarter]:
        return (
            self.db.query(models.Quarter)
            .filter(models.Quarter.year == year, models.Quarter.quarter == quarter)
            .with_for_update(of=models.Quarter)
            .first()
        )

    def write_quarter(
        self,
        existing: Optional[models.Quarter],
        submission: schemas.QuarterSubmission,
        totals: QuarterTotals,
    ) -> models.Quarter:
        """Insert the quarter or update it in place, keeping its identifier."""

        quarter = existing or models.Quarter(year=submission.year, quarter=submission.quarter)
        quarter.period_start = submission.period_start
        quarter.period_end = submission.period_end
        quarter.surplus = totals.surplus
        quarter.balance = to_amount(submission.balance)
        quarter.balance_prior = to_amount(submission.balance_prior)
        self.db.add(quarter)
        self.db.flush()
        return quarter

    def write_breakdowns(
        self,
        quarter: models.Quarter,
        submission: schemas.QuarterSubmission,
        totals: QuarterTotals,
    ) -> WrittenQuarter:
        income = (
            self.db.query(models.IncomeBreakdown)
            .filter(models.IncomeBreakdown.quarter_id == quarter.id)
            .first()
        ) or models.IncomeBreakdown(quarter_id=quarter.id)
        income.donations = to_amount(submission.donations)
        income.donations_prior = to_amount(submission.donations_prior)
        income.mission_income = to_amount(submission.mission_income)
        income.mission_income_prior = to_amount(submission.mission_income_prior)
        income.other_income = to_amount(submission.other_income)
        income.other_income_prior = to_amount(submission.other_income_prior)
        income.total = totals.income
        income.total_prior = totals.income_prior
        self.db.add(income)

        expense = (
            self.db.query(models.ExpenseBreakdown)
            .filter(models.ExpenseBreakdown.quarter_id == quarter.id)
            .first()
        ) or models.ExpenseBreakdown(quarter_id=quarter.id)
        expense.building = to_amount(submission.building)
        expense.building_prior = to_amount(submission.building_prior)
        expense.personnel = to_amount(submission.personnel)
        expense.personnel_prior = to_amount(submission.personnel_prior)
        expense.mission_expense = to_amount(submission.mission_expense)
        expense.mission_expense_prior = to_amount(submission.mission_expense_prior)
        expense.other_expense = to_amount(submission.other_expense)
        expense.other_expense_prior = to_amount(submission.other_expense_prior)
        expense.total = totals.expense
        expense.total_prior = totals.expense_prior
        self.db.add(expense)
        self.db.flush()

        return WrittenQuarter(
            quarter_id=quarter.id,
            year=quarter.year,
            quarter=quarter.quarter,
            surplus=to_amount(quarter.surplus),
        )

    def write_donor_behavior(
        self,
        written: WrittenQuarter,
        donor_behavior: Optional[schemas.DonorBehaviorInput],
    ) -> Optional[models.DonorBehavior]:
        """Upsert donor shares when submitted; an absent value leaves the row alone."""

        if donor_behavior is None:
            return None
        row = (
            self.db.query(models.DonorBehavior)
            .filter(models.DonorBehavior.quarter_id == written.quarter_id)
            .first()
        ) or models.DonorBehavior(quarter_id=written.quarter_id)
        row.regular_percent = donor_behavior.regular_percent
        row.irregular_percent = donor_behavior.irregular_percent
        self.db.add(row)
        self.db.flush()
        return row

    def recompute_year_rollup(self, written: WrittenQuarter) -> models.YearRollup:
        return YearRollupService.recompute(self.db, written.year)


class QuarterService:
    """Read and write paths behind the dashboard endpoints."""

    @staticmethod
    def _to_read(
        quarter: models.Quarter,
        income: Optional[models.IncomeBreakdown],
        expense: Optional[models.ExpenseBreakdown],
        donor_behavior: Optional[models.DonorBehavior],
    ) -> schemas.QuarterRead:
        def amount(row: object, attribute: str) -> Decimal:
            return to_amount(getattr(row, attribute, None))

        return schemas.QuarterRead(
            id=quarter.id,
            year=quarter.year,
            quarter=quarter.quarter,
            period_start=quarter.period_start,
            period_end=quarter.period_end,
            surplus=to_amount(quarter.surplus),
            balance=to_amount(quarter.balance),
            balance_prior=to_amount(quarter.balance_prior),
            donations=amount(income, "donations"),
            donations_prior=amount(income, "donations_prior"),
            mission_income=amount(income, "mission_income"),
            mission_income_prior=amount(income, "mission_income_prior"),
            other_income=amount(income, "other_income"),
            other_income_prior=amount(income, "other_income_prior"),
            income_total=amount(income, "total"),
            income_total_prior=amount(income, "total_prior"),
            building=amount(expense, "building"),
            building_prior=amount(expense, "building_prior"),
            personnel=amount(expense, "personnel"),
            personnel_prior=amount(expense, "personnel_prior"),
            mission_expense=amount(expense, "mission_expense"),
            mission_expense_prior=amount(expense, "mission_expense_prior"),
            other_expense=amount(expense, "other_expense"),
            other_expense_prior=amount(expense, "other_expense_prior"),
            expense_total=amount(expense, "total"),
            expense_total_prior=amount(expense, "total_prior"),
            donor_behavior=(
                schemas.DonorBehaviorRead(
                    regular_percent=donor_behavior.regular_percent,
                    irregular_percent=donor_behavior.irregular_percent,
                )
                if donor_behavior is not None
                else None
            ),
        )

    @classmethod
    def get_quarters(cls, db: Session, year: int) -> schemas.QuarterOverviewResponse:
        """Return the quarters, target and rollup of ``year``.

        A year without a stored target gets the default figures; a year without
        a stored rollup gets one computed from its quarters. Neither default is
        written back.
        """

        try:
            rows = (
                db.query(
                    models.Quarter,
                    models.IncomeBreakdown,
                    models.ExpenseBreakdown,
                    models.DonorBehavior,
                )
                .outerjoin(models.IncomeBreakdown, models.IncomeBreakdown.quarter_id == models.Quarter.id)
                .outerjoin(models.ExpenseBreakdown, models.ExpenseBreakdown.quarter_id == models.Quarter.id)
                .outerjoin(models.DonorBehavior, models.DonorBehavior.quarter_id == models.Quarter.id)
                .filter(models.Quarter.year == year)
                .order_by(models.Quarter.quarter.asc())
                .all()
            )
            target = db.query(models.YearTarget).filter(models.YearTarget.year == year).first()
            rollup = YearRollupService.get(db, year)
        except SQLAlchemyError as exc:
            LOGGER.exception("Failed to load quarters", extra={"year": year})
            raise StorageError(details=str(getattr(exc, "orig", None) or exc)) from exc

        quarters = [cls._to_read(*row) for row in rows]

        if target is not None:
            year_target = schemas.YearTargetRead(
                quarterly_requirement=to_amount(target.quarterly_requirement),
                vision_amount=to_amount(target.vision_amount),
            )
        else:
            year_target = schemas.YearTargetRead(
                quarterly_requirement=DEFAULT_QUARTERLY_REQUIREMENT,
                vision_amount=DEFAULT_VISION_AMOUNT,
            )

        if rollup is not None:
            totals = YearRollupService.from_row(rollup)
        else:
            totals = YearRollupService.summarize(quarters)

        return schemas.QuarterOverviewResponse(
            quarters=quarters,
            year_target=year_target,
            year_rollup=totals.as_schema(),
        )

    @staticmethod
    def save_quarter(db: Session, submission: schemas.QuarterSubmission) -> SaveQuarterResult:
        """Write one quarter and refresh the rollup of its year in one transaction."""

        if not submission.year or not submission.quarter:
            raise BadRequestError("Jahr und Quartal sind erforderlich")

        year, quarter_number = submission.year, submission.quarter
        repository = QuarterRepository(db)
        try:
            with transaction(db):
                repository.ensure_year_rollup(year)
                repository.upsert_year_target(
                    year, submission.quarterly_requirement, submission.vision_amount
                )
                existing = repository.find_quarter(year, quarter_number)
                totals = compute_quarter_totals(submission)
                quarter = repository.write_quarter(existing, submission, totals)
                written = repository.write_breakdowns(quarter, submission, totals)
                repository.write_donor_behavior(written, submission.donor_behavior)
                repository.recompute_year_rollup(written)
        except IntegrityError as exc:
            LOGGER.warning(
                "Concurrent write rejected while saving quarter",
                extra={"year": year, "quarter": quarter_number},
            )
            raise QuarterConflictError(
                f"Quartal {quarter_number}/{year} wurde gleichzeitig gespeichert",
                details=str(exc.orig or exc),
            ) from exc
        except SQLAlchemyError as exc:
            LOGGER.exception(
                "Failed to save quarter",
                extra={"year": year, "quarter": quarter_number},
            )
            raise StorageError(details=str(getattr(exc, "orig", None) or exc)) from exc

        return SaveQuarterResult(
            created=existing is None,
            quarter_id=written.quarter_id,
            year=written.year,
            quarter=written.quarter,
            surplus=written.surplus,
        )
