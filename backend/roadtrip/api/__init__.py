"""HTTP API for the Road Trip planner."""

from .routes import router

__all__ = ["router"]
