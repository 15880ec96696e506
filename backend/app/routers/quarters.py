"""Router exposing the quarterly figures of the dashboard."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from .. import schemas
from ..cors import preflight_response
from ..database import get_db
from ..security import require_dashboard_token
from ..services import QuarterService

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["quarters"])


@router.get(
    "/quarters",
    response_model=schemas.QuarterOverviewResponse,
    dependencies=[Depends(require_dashboard_token)],
)
@router.get(
    "/get-quarters",
    response_model=schemas.QuarterOverviewResponse,
    dependencies=[Depends(require_dashboard_token)],
    include_in_schema=False,
)
def get_quarters(
    jahr: Optional[int] = Query(None, ge=1, description="Year to load, defaults to the current year"),
    year: Optional[int] = Query(None, ge=1, description="Alias of jahr"),
    db: Session = Depends(get_db),
) -> schemas.QuarterOverviewResponse:
    """Return the quarters of a year with the year's target and rollup."""

    resolved_year = jahr or year or date.today().year
    return QuarterService.get_quarters(db, resolved_year)


@router.post(
    "/save-quarter",
    response_model=schemas.SaveQuarterResponse,
    dependencies=[Depends(require_dashboard_token)],
)
def save_quarter(
    submission: schemas.QuarterSubmission,
    db: Session = Depends(get_db),
) -> schemas.SaveQuarterResponse:
    result = QuarterService.save_quarter(db, submission)
    LOGGER.info(
        "Quarter saved",
        extra={
            "year": result.year,
            "quarter": result.quarter,
            "quarter_id": result.quarter_id,
            "created": result.created,
        },
    )
    verb = "gespeichert" if result.created else "aktualisiert"
    return schemas.SaveQuarterResponse(
        success=True,
        message=f"Quartal {result.quarter}/{result.year} erfolgreich {verb}",
        data=schemas.SavedQuarter(
            year=result.year,
            quarter=result.quarter,
            quarter_id=result.quarter_id,
            surplus=result.surplus,
        ),
    )


@router.options("/quarters", include_in_schema=False)
@router.options("/get-quarters", include_in_schema=False)
def quarters_preflight() -> Response:
    return preflight_response("GET")


@router.options("/save-quarter", include_in_schema=False)
def save_quarter_preflight() -> Response:
    return preflight_response("POST")
