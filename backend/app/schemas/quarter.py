"""Schemas for reading and submitting quarterly financial figures.

Submissions accept both the English field names and the German keys the
dashboard frontend sends (``jahr``, ``spenden_aktuell``, ...).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MONEY_FIELDS = (
    "balance",
    "balance_prior",
    "donations",
    "donations_prior",
    "mission_income",
    "mission_income_prior",
    "other_income",
    "other_income_prior",
    "building",
    "building_prior",
    "personnel",
    "personnel_prior",
    "mission_expense",
    "mission_expense_prior",
    "other_expense",
    "other_expense_prior",
)


def _money(*aliases: str) -> Any:
    return Field(default=Decimal("0"), validation_alias=AliasChoices(*aliases))


class DonorBehaviorInput(BaseModel):
    """Regular and irregular donor shares, in percent."""

    regular_percent: Decimal = Field(..., ge=0, le=100)
    irregular_percent: Decimal = Field(..., ge=0, le=100)


class QuarterSubmission(BaseModel):
    """Full set of figures for one quarter as entered in the dashboard."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    year: Optional[int] = Field(default=None, ge=1, validation_alias=AliasChoices("year", "jahr"))
    quarter: Optional[int] = Field(
        default=None, ge=1, le=4, validation_alias=AliasChoices("quarter", "quartal")
    )
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    balance: Decimal = _money("balance", "kontostand_aktuell")
    balance_prior: Decimal = _money("balance_prior", "kontostand_vorjahr")

    donations: Decimal = _money("donations", "spenden_aktuell")
    donations_prior: Decimal = _money("donations_prior", "spenden_vorjahr")
    mission_income: Decimal = _money("mission_income", "mission_einnahmen_aktuell")
    mission_income_prior: Decimal = _money("mission_income_prior", "mission_einnahmen_vorjahr")
    other_income: Decimal = _money("other_income", "sonstige_einnahmen_aktuell")
    other_income_prior: Decimal = _money("other_income_prior", "sonstige_einnahmen_vorjahr")

    building: Decimal = _money("building", "gebaeude_aktuell")
    building_prior: Decimal = _money("building_prior", "gebaeude_vorjahr")
    personnel: Decimal = _money("personnel", "personal_aktuell")
    personnel_prior: Decimal = _money("personnel_prior", "personal_vorjahr")
    mission_expense: Decimal = _money("mission_expense", "mission_ausgaben_aktuell")
    mission_expense_prior: Decimal = _money("mission_expense_prior", "mission_ausgaben_vorjahr")
    other_expense: Decimal = _money("other_expense", "sonstige_ausgaben_aktuell")
    other_expense_prior: Decimal = _money("other_expense_prior", "sonstige_ausgaben_vorjahr")

    regular_donors_percent: Optional[Decimal] = Field(
        default=None, ge=0, le=100, validation_alias=AliasChoices("regular_donors_percent", "regelmaessig_prozent")
    )
    irregular_donors_percent: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        validation_alias=AliasChoices("irregular_donors_percent", "unregelmaessig_prozent"),
    )

    quarterly_requirement: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("quarterly_requirement", "quartalsbedarf")
    )
    vision_amount: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("vision_amount", "visionsbetrag")
    )

    @field_validator(*MONEY_FIELDS, mode="before")
    @classmethod
    def _missing_amount_is_zero(cls, value: Any) -> Any:
        if value is None or value == "":
            return Decimal("0")
        return value

    @field_validator("period_start", "period_end", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @property
    def donor_behavior(self) -> Optional[DonorBehaviorInput]:
        """Donor shares when both percentages were submitted, otherwise ``None``."""

        if self.regular_donors_percent is None or self.irregular_donors_percent is None:
            return None
        return DonorBehaviorInput(
            regular_percent=self.regular_donors_percent,
            irregular_percent=self.irregular_donors_percent,
        )


class DonorBehaviorRead(BaseModel):
    regular_percent: Decimal
    irregular_percent: Decimal


class QuarterRead(BaseModel):
    """One quarter joined with its income and expense breakdowns."""

    id: int
    year: int
    quarter: int
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    surplus: Decimal
    balance: Decimal
    balance_prior: Decimal

    donations: Decimal
    donations_prior: Decimal
    mission_income: Decimal
    mission_income_prior: Decimal
    other_income: Decimal
    other_income_prior: Decimal
    income_total: Decimal
    income_total_prior: Decimal

    building: Decimal
    building_prior: Decimal
    personnel: Decimal
    personnel_prior: Decimal
    mission_expense: Decimal
    mission_expense_prior: Decimal
    other_expense: Decimal
    other_expense_prior: Decimal
    expense_total: Decimal
    expense_total_prior: Decimal

    donor_behavior: Optional[DonorBehaviorRead] = None


class YearTargetRead(BaseModel):
    quarterly_requirement: Decimal
    vision_amount: Decimal


class YearRollupRead(BaseModel):
    total_income: Decimal
    total_expense: Decimal
    cumulative_surplus: Decimal


class QuarterOverviewResponse(BaseModel):
    """Everything the dashboard renders for one year."""

    model_config = ConfigDict(populate_by_name=True)

    quarters: List[QuarterRead] = Field(default_factory=list)
    year_target: YearTargetRead = Field(..., alias="yearTarget")
    year_rollup: YearRollupRead = Field(..., alias="yearRollup")


class SavedQuarter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    year: int
    quarter: int
    quarter_id: int = Field(..., alias="quarterId")
    surplus: Decimal


class SaveQuarterResponse(BaseModel):
    success: bool = True
    message: str
    data: SavedQuarter
