"""Version 1 function endpoints."""

from .endpoints import welcome_router

__all__ = ["welcome_router"]
