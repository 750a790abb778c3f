"""Scheduling domain API package."""

from scheduling.api.routes import router

__all__ = ["router"]
