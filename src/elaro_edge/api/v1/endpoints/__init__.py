"""API endpoint modules for version 1."""

from .welcome import router as welcome_router

__all__ = ["welcome_router"]
