"""Exception hierarchy shared by the security helpers, services and routers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import status


class DashboardError(RuntimeError):
    """Base class for failures that are rendered as JSON error responses."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Ein Fehler ist aufgetreten"

    def __init__(self, message: Optional[str] = None, *, details: Optional[str] = None) -> None:
        self.message = message or self.error
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.details:
            payload["details"] = self.details
        return payload


class BadRequestError(DashboardError):
    """Raised when a request is missing required fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Ungültige Anfrage"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class UnauthorizedError(DashboardError):
    """Raised when a bearer token is missing, invalid or expired."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"
    reason = "unauthorized"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class MissingTokenError(UnauthorizedError):
    reason = "missing_token"

    def __init__(self, message: str = "Kein Token gefunden") -> None:
        super().__init__(message)


class TokenExpiredError(UnauthorizedError):
    reason = "token_expired"

    def __init__(self, message: str = "Token abgelaufen") -> None:
        super().__init__(message)


class InvalidTokenError(UnauthorizedError):
    reason = "invalid_token"

    def __init__(self, message: str = "Ungültiger Token") -> None:
        super().__init__(message)


class InvalidCredentialsError(UnauthorizedError):
    """Raised when the submitted dashboard password does not match."""

    reason = "invalid_credentials"

    def __init__(self, message: str = "Falsches Passwort") -> None:
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "message": self.message}


class ServerMisconfiguredError(DashboardError):
    """Raised when a required secret or connection setting is missing.

    The message is only logged; clients receive a generic error.
    """

    error = "Server configuration error"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error}


class StorageError(DashboardError):
    """Raised when the datastore rejects or fails a query."""

    error = "Datenbankfehler"


class QuarterConflictError(StorageError):
    """Raised when a concurrent write already created the same quarter."""

    status_code = status.HTTP_409_CONFLICT
    error = "Konflikt beim Speichern"

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["message"] = self.message
        return payload
