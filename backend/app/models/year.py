"""Per-year fundraising targets and the cached yearly rollup."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, Numeric, func

from ..database import Base


class YearTarget(Base):
    """Fundraising goal figures for a year, independent of actuals."""

    __tablename__ = "quartalsziele"

    year = Column("jahr", Integer, primary_key=True, autoincrement=False)
    quarterly_requirement = Column("quartalsbedarf", Numeric(14, 2), nullable=False)
    vision_amount = Column("visionsbetrag", Numeric(14, 2), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class YearRollup(Base):
    """Cached aggregate over all quarters of a year.

    Only ``YearRollupService`` writes these rows; they are recomputed from the
    quarters after every quarter write.
    """

    __tablename__ = "jahresuebersicht"

    year = Column("jahr", Integer, primary_key=True, autoincrement=False)
    total_income = Column("gesamteinnahmen", Numeric(14, 2), nullable=False, default=0)
    total_expense = Column("gesamtausgaben", Numeric(14, 2), nullable=False, default=0)
    cumulative_surplus = Column("kumuliertes_ergebnis", Numeric(14, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
