"""Login endpoint exchanging the dashboard password for a bearer token."""

from __future__ import annotations

from fastapi import APIRouter, Response

from .. import schemas
from ..cors import preflight_response
from ..security import login

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=schemas.LoginResponse)
def obtain_token(payload: schemas.LoginRequest) -> schemas.LoginResponse:
    """Return a 24 hour token when the shared password matches."""

    token = login(payload.password)
    return schemas.LoginResponse(success=True, token=token, message="Login erfolgreich")


@router.options("/login", include_in_schema=False)
def login_preflight() -> Response:
    return preflight_response("POST")
