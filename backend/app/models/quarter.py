"""SQLAlchemy models for quarterly financial records.

Attribute names are English while the mapped table and column names match
the dashboard database the reporting frontend already uses.
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base


class Quarter(Base):
    """One fiscal quarter's top-level financial record for a given year."""

    __tablename__ = "quartale"
    __table_args__ = (
        UniqueConstraint("jahr", "quartal", name="uq_quartale_jahr_quartal"),
        CheckConstraint("quartal BETWEEN 1 AND 4", name="ck_quartale_quartal_range"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column("jahr", Integer, nullable=False, index=True)
    quarter = Column("quartal", Integer, nullable=False)
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    surplus = Column("ueberschuss", Numeric(14, 2), nullable=False, default=0)
    balance = Column("kontostand_aktuell", Numeric(14, 2), nullable=False, default=0)
    balance_prior = Column("kontostand_vorjahr", Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    income = relationship("IncomeBreakdown", back_populates="quarter", uselist=False)
    expense = relationship("ExpenseBreakdown", back_populates="quarter", uselist=False)
    donor_behavior = relationship("DonorBehavior", back_populates="quarter", uselist=False)


class IncomeBreakdown(Base):
    """Income sub-categories of a quarter with their stored totals."""

    __tablename__ = "einnahmen_kategorien"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quarter_id = Column(
        "quartal_id",
        Integer,
        ForeignKey("quartale.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    donations = Column("spenden_aktuell", Numeric(14, 2), nullable=False, default=0)
    donations_prior = Column("spenden_vorjahr", Numeric(14, 2), nullable=False, default=0)
    mission_income = Column("mission_aktuell", Numeric(14, 2), nullable=False, default=0)
    mission_income_prior = Column("mission_vorjahr", Numeric(14, 2), nullable=False, default=0)
    other_income = Column("sonstige_aktuell", Numeric(14, 2), nullable=False, default=0)
    other_income_prior = Column("sonstige_vorjahr", Numeric(14, 2), nullable=False, default=0)
    total = Column("gesamt_aktuell", Numeric(14, 2), nullable=False, default=0)
    total_prior = Column("gesamt_vorjahr", Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    quarter = relationship("Quarter", back_populates="income")


class ExpenseBreakdown(Base):
    """Expense sub-categories of a quarter with their stored totals."""

    __tablename__ = "ausgaben_kategorien"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quarter_id = Column(
        "quartal_id",
        Integer,
        ForeignKey("quartale.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    building = Column("gebaeude_aktuell", Numeric(14, 2), nullable=False, default=0)
    building_prior = Column("gebaeude_vorjahr", Numeric(14, 2), nullable=False, default=0)
    personnel = Column("personal_aktuell", Numeric(14, 2), nullable=False, default=0)
    personnel_prior = Column("personal_vorjahr", Numeric(14, 2), nullable=False, default=0)
    mission_expense = Column("mission_aktuell", Numeric(14, 2), nullable=False, default=0)
    mission_expense_prior = Column("mission_vorjahr", Numeric(14, 2), nullable=False, default=0)
    other_expense = Column("sonstige_aktuell", Numeric(14, 2), nullable=False, default=0)
    other_expense_prior = Column("sonstige_vorjahr", Numeric(14, 2), nullable=False, default=0)
    total = Column("gesamt_aktuell", Numeric(14, 2), nullable=False, default=0)
    total_prior = Column("gesamt_vorjahr", Numeric(14, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    quarter = relationship("Quarter", back_populates="expense")


class DonorBehavior(Base):
    """Share of regular and irregular donors reported for a quarter."""

    __tablename__ = "spenderverhalten"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quarter_id = Column(
        "quartal_id",
        Integer,
        ForeignKey("quartale.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    regular_percent = Column("regelmaessig_prozent", Numeric(5, 2), nullable=False)
    irregular_percent = Column("unregelmaessig_prozent", Numeric(5, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    quarter = relationship("Quarter", back_populates="donor_behavior")
