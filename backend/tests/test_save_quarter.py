from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from backend.app import models, schemas
from backend.app.services import (
    QuarterRepository,
    YearRollupService,
    compute_quarter_totals,
)


def _amount(value) -> Decimal:
    return Decimal(str(value))


def test_scenario_quarter_totals_and_surplus(client, db_session, scenario_submission):
    response = client.post("/save-quarter", json=scenario_submission)

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["success"] is True
    assert payload["message"] == "Quartal 1/2025 erfolgreich gespeichert"
    assert payload["data"]["year"] == 2025
    assert payload["data"]["quarter"] == 1
    assert _amount(payload["data"]["surplus"]) == Decimal("-3572.49")

    quarter = db_session.query(models.Quarter).one()
    assert payload["data"]["quarterId"] == quarter.id
    assert quarter.surplus == Decimal("-3572.49")
    assert quarter.balance == Decimal("120000.00")
    assert quarter.period_end.isoformat() == "2025-03-31"

    income = db_session.query(models.IncomeBreakdown).one()
    expense = db_session.query(models.ExpenseBreakdown).one()
    assert income.total == Decimal("68610.15")
    assert expense.total == Decimal("72182.64")
    assert income.total == income.donations + income.mission_income + income.other_income
    assert expense.total == (
        expense.building + expense.personnel + expense.mission_expense + expense.other_expense
    )
    assert quarter.surplus == income.total - expense.total


def test_saving_twice_updates_in_place(client, db_session, scenario_submission):
    first = client.post("/save-quarter", json=scenario_submission).json()
    second = client.post("/save-quarter", json=scenario_submission).json()

    assert second["message"] == "Quartal 1/2025 erfolgreich aktualisiert"
    assert second["data"]["quarterId"] == first["data"]["quarterId"]
    assert second["data"]["surplus"] == first["data"]["surplus"]
    assert db_session.query(models.Quarter).count() == 1
    assert db_session.query(models.IncomeBreakdown).count() == 1
    assert db_session.query(models.ExpenseBreakdown).count() == 1
    assert db_session.query(models.YearRollup).one().cumulative_surplus == Decimal("-3572.49")


def test_update_replaces_figures_and_refreshes_rollup(client, db_session, scenario_submission):
    client.post("/save-quarter", json=scenario_submission)
    revised = {**scenario_submission, "sonstige_ausgaben_aktuell": 0}

    response = client.post("/save-quarter", json=revised)

    assert _amount(response.json()["data"]["surplus"]) == Decimal("6178.85")
    rollup = db_session.query(models.YearRollup).one()
    assert rollup.total_expense == Decimal("62431.30")
    assert rollup.cumulative_surplus == Decimal("6178.85")


def test_missing_amounts_behave_like_zero(client):
    sparse = client.post(
        "/save-quarter",
        json={"jahr": 2024, "quartal": 2, "spenden_aktuell": 100, "personal_aktuell": None},
    ).json()
    explicit = client.post(
        "/save-quarter",
        json={
            "jahr": 2024,
            "quartal": 3,
            "spenden_aktuell": 100,
            "mission_einnahmen_aktuell": 0,
            "sonstige_einnahmen_aktuell": 0,
            "gebaeude_aktuell": 0,
            "personal_aktuell": 0,
            "mission_ausgaben_aktuell": 0,
            "sonstige_ausgaben_aktuell": 0,
            "kontostand_aktuell": 0,
        },
    ).json()

    assert _amount(sparse["data"]["surplus"]) == _amount(explicit["data"]["surplus"]) == Decimal("100")

    quarters = client.get("/quarters", params={"jahr": 2024}).json()["quarters"]
    first, second = quarters
    for field in ("income_total", "expense_total", "balance", "building", "personnel_prior"):
        assert _amount(first[field]) == _amount(second[field])


def test_english_field_names_are_accepted(client, db_session):
    response = client.post(
        "/save-quarter",
        json={
            "year": 2026,
            "quarter": 4,
            "donations": "10.00",
            "mission_income_prior": "3.50",
            "building": "4.25",
            "other_expense_prior": "1.00",
        },
    )

    assert response.status_code == 200
    income = db_session.query(models.IncomeBreakdown).one()
    expense = db_session.query(models.ExpenseBreakdown).one()
    assert income.total_prior == Decimal("3.50")
    assert expense.total_prior == Decimal("1.00")
    assert _amount(response.json()["data"]["surplus"]) == Decimal("5.75")


@pytest.mark.parametrize(
    "body",
    [
        {"quartal": 1},
        {"jahr": 2025},
        {"jahr": 0, "quartal": 1},
        {},
    ],
)
def test_year_and_quarter_are_required(client, db_session, body):
    response = client.post("/save-quarter", json=body)

    assert response.status_code == 400
    assert response.json()["error"] in {"Jahr und Quartal sind erforderlich", "Ungültige Anfrage"}
    assert db_session.query(models.YearRollup).count() == 0
    assert db_session.query(models.YearTarget).count() == 0


def test_missing_year_is_rejected_with_message(client):
    response = client.post("/save-quarter", json={"quartal": 2})

    assert response.status_code == 400
    assert response.json() == {"error": "Jahr und Quartal sind erforderlich"}


def test_quarter_must_be_between_one_and_four(client):
    response = client.post("/save-quarter", json={"jahr": 2025, "quartal": 5})

    assert response.status_code == 400


def test_save_requires_token(anonymous_client, scenario_submission):
    response = anonymous_client.post("/save-quarter", json=scenario_submission)

    assert response.status_code == 401
    assert response.json()["message"] == "Kein Token gefunden"


def test_donor_behavior_requires_both_percentages(client, db_session, scenario_submission):
    client.post("/save-quarter", json={**scenario_submission, "regelmaessig_prozent": 60})
    assert db_session.query(models.DonorBehavior).count() == 0

    client.post(
        "/save-quarter",
        json={**scenario_submission, "regelmaessig_prozent": 60, "unregelmaessig_prozent": 40},
    )
    donor = db_session.query(models.DonorBehavior).one()
    assert donor.regular_percent == Decimal("60")
    assert donor.irregular_percent == Decimal("40")

    client.post("/save-quarter", json=scenario_submission)
    db_session.expire_all()
    assert db_session.query(models.DonorBehavior).count() == 1

    quarter = client.get("/quarters", params={"jahr": 2025}).json()["quarters"][0]
    assert _amount(quarter["donor_behavior"]["regular_percent"]) == Decimal("60")


def test_year_target_uses_defaults_or_submitted_values(client, db_session, scenario_submission):
    client.post("/save-quarter", json=scenario_submission)
    target = db_session.query(models.YearTarget).one()
    assert target.quarterly_requirement == Decimal("75000")
    assert target.vision_amount == Decimal("81000")

    client.post(
        "/save-quarter",
        json={**scenario_submission, "quartalsbedarf": 70000, "visionsbetrag": 90000},
    )
    db_session.expire_all()
    target = db_session.query(models.YearTarget).one()
    assert target.quarterly_requirement == Decimal("70000")
    assert target.vision_amount == Decimal("90000")


def test_rollup_matches_quarters_across_the_year(client, scenario_submission):
    client.post("/save-quarter", json=scenario_submission)
    client.post(
        "/save-quarter",
        json={"jahr": 2025, "quartal": 2, "spenden_aktuell": 80000.10, "personal_aktuell": 30000.05},
    )
    client.post("/save-quarter", json={"jahr": 2024, "quartal": 2, "spenden_aktuell": 5})

    payload = client.get("/quarters", params={"jahr": 2025}).json()
    quarters = payload["quarters"]
    rollup = payload["yearRollup"]

    assert _amount(rollup["cumulative_surplus"]) == sum(
        (_amount(item["surplus"]) for item in quarters), Decimal("0")
    )
    assert _amount(rollup["total_income"]) == sum(
        (_amount(item["income_total"]) for item in quarters), Decimal("0")
    )
    assert _amount(rollup["total_expense"]) == sum(
        (_amount(item["expense_total"]) for item in quarters), Decimal("0")
    )
    assert _amount(rollup["cumulative_surplus"]) == Decimal("46427.56")


def test_persisted_rollup_equals_computed_fallback(client, db_session, scenario_submission):
    client.post("/save-quarter", json=scenario_submission)
    client.post("/save-quarter", json={"jahr": 2025, "quartal": 3, "gebaeude_aktuell": 12.34})
    persisted = client.get("/quarters", params={"jahr": 2025}).json()["yearRollup"]

    db_session.query(models.YearRollup).delete()
    db_session.commit()
    computed = client.get("/quarters", params={"jahr": 2025}).json()["yearRollup"]

    assert {k: _amount(v) for k, v in persisted.items()} == {k: _amount(v) for k, v in computed.items()}


def test_failure_rolls_back_every_step(client, db_session, scenario_submission, monkeypatch):
    def fail(*_args, **_kwargs):
        raise OperationalError("UPDATE jahresuebersicht", {}, Exception("disk I/O error"))

    monkeypatch.setattr(YearRollupService, "recompute", fail)

    response = client.post("/save-quarter", json=scenario_submission)

    assert response.status_code == 500
    assert response.json()["error"] == "Datenbankfehler"
    assert "disk I/O error" in response.json()["details"]
    assert db_session.query(models.Quarter).count() == 0
    assert db_session.query(models.IncomeBreakdown).count() == 0
    assert db_session.query(models.YearTarget).count() == 0
    assert db_session.query(models.YearRollup).count() == 0


def test_concurrent_insert_is_reported_as_conflict(client, db_session, scenario_submission, monkeypatch):
    client.post("/save-quarter", json=scenario_submission)
    # Simulate a writer that looked for the quarter before another one inserted it.
    monkeypatch.setattr(QuarterRepository, "find_quarter", lambda self, year, quarter: None)

    response = client.post("/save-quarter", json=scenario_submission)

    assert response.status_code == 409
    assert response.json()["error"] == "Konflikt beim Speichern"
    assert db_session.query(models.Quarter).count() == 1


def test_compute_quarter_totals_sums_each_variant_independently():
    submission = schemas.QuarterSubmission(
        jahr=2025,
        quartal=1,
        spenden_aktuell="1.10",
        spenden_vorjahr="2.20",
        sonstige_einnahmen_vorjahr="0.05",
        gebaeude_aktuell="0.10",
        personal_vorjahr="5.00",
        sonstige_ausgaben_aktuell="0.01",
    )

    totals = compute_quarter_totals(submission)

    assert totals.income == Decimal("1.10")
    assert totals.income_prior == Decimal("2.25")
    assert totals.expense == Decimal("0.11")
    assert totals.expense_prior == Decimal("5.00")
    assert totals.surplus == Decimal("0.99")


def test_donor_behavior_is_optional_on_submission():
    assert schemas.QuarterSubmission(jahr=2025, quartal=1, regelmaessig_prozent=50).donor_behavior is None
    donor = schemas.QuarterSubmission(
        jahr=2025, quartal=1, regelmaessig_prozent=55, unregelmaessig_prozent=45
    ).donor_behavior
    assert donor == schemas.DonorBehaviorInput(regular_percent=Decimal("55"), irregular_percent=Decimal("45"))
