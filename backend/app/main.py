"""Expose the quarterly dashboard FastAPI app."""

import logging
import os
import re
from typing import Iterable

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import DashboardError
from .routers import auth_router, quarters_router

ALLOWED_ORIGINS_ENV = "DASHBOARD_ALLOWED_ORIGINS"
WILDCARD_ORIGIN = "*"

# Path prefix the dashboard frontend used when the handlers ran as Netlify
# functions.
NETLIFY_FUNCTIONS_PREFIX = "/.netlify/functions"

LOGGER = logging.getLogger(__name__)


def _normalize_origin(origin: str) -> str | None:
    stripped = origin.strip()
    if not stripped:
        return None
    return stripped.rstrip("/")


def _read_allowed_origins(raw_origins: Iterable[str]) -> list[str]:
    normalized = {_normalize_origin(origin) for origin in raw_origins}
    return sorted({origin for origin in normalized if origin})


def _split_raw_origins(raw_value: str) -> list[str]:
    """Split a raw origin string using commas or whitespace as separators."""

    return [origin for origin in re.split(r"[\s,]+", raw_value) if origin]


def _load_allowed_origins_from_env() -> list[str]:
    raw_value = os.getenv(ALLOWED_ORIGINS_ENV)
    if not raw_value:
        return []
    return _read_allowed_origins(_split_raw_origins(raw_value))


def _resolve_allowed_origins() -> list[str]:
    origins = _load_allowed_origins_from_env()
    if not origins or WILDCARD_ORIGIN in origins:
        return [WILDCARD_ORIGIN]
    return origins


app = FastAPI(title="Quarterly Dashboard API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_resolve_allowed_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth_router)
app.include_router(quarters_router)
app.include_router(auth_router, prefix=NETLIFY_FUNCTIONS_PREFIX, include_in_schema=False)
app.include_router(quarters_router, prefix=NETLIFY_FUNCTIONS_PREFIX, include_in_schema=False)


@app.exception_handler(DashboardError)
async def handle_dashboard_error(request: Request, exc: DashboardError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        LOGGER.error(
            "Request failed: %s",
            exc.message,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Ungültige Anfrage", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = "Method not allowed"
    else:
        message = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.get("/", tags=["health"])
def read_root() -> dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}
