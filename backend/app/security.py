"""Shared-password login and bearer token verification for the dashboard."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Header

from .errors import (
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
    ServerMisconfiguredError,
    TokenExpiredError,
    UnauthorizedError,
)

LOGGER = logging.getLogger(__name__)

DASHBOARD_PASSWORD_ENV = "DASHBOARD_PASSWORD"
JWT_SECRET_ENV = "JWT_SECRET"
ACCESS_TOKEN_EXPIRE_MINUTES_ENV = "ACCESS_TOKEN_EXPIRE_MINUTES"

DEFAULT_TOKEN_LIFETIME = timedelta(hours=24)
BEARER_PREFIX = "Bearer "
JWT_ALGORITHM = "HS256"


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(signing_input: bytes, key: bytes) -> bytes:
    return hmac.new(key, signing_input, hashlib.sha256).digest()


def _encode_jwt(payload: dict[str, Any], key: bytes) -> str:
    header = {"alg": JWT_ALGORITHM, "typ": "JWT"}
    header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    signature_b64 = _b64url_encode(_sign(signing_input, key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def _decode_jwt(token: str, key: bytes, *, now: datetime) -> dict[str, Any]:
    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
        header = json.loads(_b64url_decode(header_b64))
        payload = json.loads(_b64url_decode(payload_b64))
        signature = _b64url_decode(signature_b64)
        signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    except (ValueError, binascii.Error) as exc:
        raise InvalidTokenError() from exc

    if not isinstance(header, dict) or header.get("alg") != JWT_ALGORITHM:
        raise InvalidTokenError()
    if not hmac.compare_digest(signature, _sign(signing_input, key)):
        raise InvalidTokenError()
    if not isinstance(payload, dict):
        raise InvalidTokenError()

    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise InvalidTokenError()
    if now.timestamp() >= exp:
        raise TokenExpiredError()
    return payload


def _resolve_token_lifetime() -> timedelta:
    raw = os.getenv(ACCESS_TOKEN_EXPIRE_MINUTES_ENV)
    if not raw:
        return DEFAULT_TOKEN_LIFETIME
    try:
        minutes = int(raw)
    except ValueError as exc:
        raise ServerMisconfiguredError("ACCESS_TOKEN_EXPIRE_MINUTES must be an integer") from exc
    if minutes <= 0:
        raise ServerMisconfiguredError("ACCESS_TOKEN_EXPIRE_MINUTES must be positive")
    return timedelta(minutes=minutes)


def issue_token(
    password: Optional[str],
    expected_password: Optional[str],
    secret: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> str:
    """Exchange the shared dashboard password for a signed bearer token.

    The token carries ``authenticated`` and the issue time in milliseconds
    (``timestamp``) and expires after 24 hours unless
    ``ACCESS_TOKEN_EXPIRE_MINUTES`` says otherwise.
    """

    if not expected_password or not secret:
        raise ServerMisconfiguredError("DASHBOARD_PASSWORD and JWT_SECRET must be configured")
    if password is None or not hmac.compare_digest(
        password.encode("utf-8"), expected_password.encode("utf-8")
    ):
        raise InvalidCredentialsError()

    issued_at = now or datetime.now(timezone.utc)
    expiry = issued_at + _resolve_token_lifetime()
    payload: dict[str, Any] = {
        "authenticated": True,
        "timestamp": int(issued_at.timestamp() * 1000),
        "iat": int(issued_at.timestamp()),
        "exp": int(expiry.timestamp()),
    }
    return _encode_jwt(payload, secret.encode("utf-8"))


def verify_token(
    bearer_header: Optional[str],
    secret: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Return the claims of a valid ``Authorization: Bearer`` header value."""

    if not secret:
        raise ServerMisconfiguredError("JWT_SECRET must be configured")
    if not bearer_header or not bearer_header.startswith(BEARER_PREFIX):
        raise MissingTokenError()

    token = bearer_header[len(BEARER_PREFIX) :]
    claims = _decode_jwt(token, secret.encode("utf-8"), now=now or datetime.now(timezone.utc))
    if claims.get("authenticated") is not True:
        raise InvalidTokenError()
    return claims


def login(password: Optional[str]) -> str:
    """Issue a token using the password and secret configured in the environment."""

    try:
        return issue_token(password, os.getenv(DASHBOARD_PASSWORD_ENV), os.getenv(JWT_SECRET_ENV))
    except ServerMisconfiguredError:
        LOGGER.error("Dashboard login attempted without DASHBOARD_PASSWORD or JWT_SECRET")
        raise
    except InvalidCredentialsError:
        LOGGER.warning("Rejected dashboard login with wrong password")
        raise


def require_dashboard_token(authorization: Optional[str] = Header(default=None)) -> dict[str, Any]:
    """FastAPI dependency that only lets requests with a valid bearer token through."""

    secret = os.getenv(JWT_SECRET_ENV)
    if not secret:
        LOGGER.error("JWT_SECRET not set; refusing authenticated request")
        raise ServerMisconfiguredError("JWT_SECRET must be configured")
    try:
        return verify_token(authorization, secret)
    except UnauthorizedError as exc:
        LOGGER.info("Rejected dashboard request", extra={"reason": exc.reason})
        raise
