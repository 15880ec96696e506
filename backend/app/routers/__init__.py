"""Routers package."""

from .auth import router as auth_router
from .quarters import router as quarters_router

__all__ = [
    "auth_router",
    "quarters_router",
]
