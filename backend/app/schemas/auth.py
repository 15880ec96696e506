"""Pydantic schemas for the dashboard login endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Payload carrying the shared dashboard password."""

    password: str | None = None


class LoginResponse(BaseModel):
    """Bearer token returned upon successful login."""

    success: bool = True
    token: str
    message: str
