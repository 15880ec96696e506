from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.app import models
from backend.app.database import Base, get_db
from backend.app.main import app

DASHBOARD_PASSWORD = "Quartal-Passwort-2025"
JWT_SECRET = "dashboard-test-secret"


@pytest.fixture(autouse=True)
def security_settings(monkeypatch) -> dict:
    monkeypatch.setenv("DASHBOARD_PASSWORD", DASHBOARD_PASSWORD)
    monkeypatch.setenv("JWT_SECRET", JWT_SECRET)
    monkeypatch.delenv("ACCESS_TOKEN_EXPIRE_MINUTES", raising=False)
    return {"password": DASHBOARD_PASSWORD, "secret": JWT_SECRET}


@pytest.fixture
def session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    engine = create_engine(
        f"sqlite:///{(tmp_path / 'dashboard.db').as_posix()}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def anonymous_client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def client(anonymous_client: TestClient, security_settings: dict) -> TestClient:
    response = anonymous_client.post("/login", json={"password": security_settings["password"]})
    assert response.status_code == 200
    token = response.json()["token"]
    anonymous_client.headers.update({"Authorization": f"Bearer {token}"})
    return anonymous_client


@pytest.fixture
def scenario_submission() -> dict:
    """Q1 2025 as entered in the dashboard frontend."""

    return {
        "jahr": 2025,
        "quartal": 1,
        "period_start": "2025-01-01",
        "period_end": "2025-03-31",
        "kontostand_aktuell": 120000.00,
        "kontostand_vorjahr": 98000.00,
        "spenden_aktuell": 42632.15,
        "mission_einnahmen_aktuell": 2831.41,
        "sonstige_einnahmen_aktuell": 23146.59,
        "gebaeude_aktuell": 24159.53,
        "personal_aktuell": 35613.77,
        "mission_ausgaben_aktuell": 2658.00,
        "sonstige_ausgaben_aktuell": 9751.34,
    }


@pytest.fixture
def seed_quarter(db_session: Session):
    """Insert a quarter with both breakdowns directly, bypassing the writer."""

    def _seed(
        year: int,
        quarter: int,
        income: str,
        expense: str,
        *,
        with_breakdowns: bool = True,
    ) -> models.Quarter:
        income_total = Decimal(income)
        expense_total = Decimal(expense)
        row = models.Quarter(
            year=year,
            quarter=quarter,
            period_start=date(year, 3 * quarter - 2, 1),
            period_end=None,
            surplus=income_total - expense_total if with_breakdowns else Decimal("0"),
            balance=Decimal("0"),
            balance_prior=Decimal("0"),
        )
        db_session.add(row)
        db_session.flush()
        if with_breakdowns:
            db_session.add(
                models.IncomeBreakdown(
                    quarter_id=row.id,
                    donations=income_total,
                    total=income_total,
                )
            )
            db_session.add(
                models.ExpenseBreakdown(
                    quarter_id=row.id,
                    personnel=expense_total,
                    total=expense_total,
                )
            )
        db_session.commit()
        return row

    return _seed
