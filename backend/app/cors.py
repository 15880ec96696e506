"""CORS headers for the dashboard endpoints."""

from __future__ import annotations

from fastapi import Response, status

ALLOWED_HEADERS = "Content-Type, Authorization"


def preflight_response(*methods: str) -> Response:
    """Return the empty 200 answer to an ``OPTIONS`` request."""

    return Response(
        status_code=status.HTTP_200_OK,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Allow-Methods": ", ".join([*methods, "OPTIONS"]),
        },
    )
