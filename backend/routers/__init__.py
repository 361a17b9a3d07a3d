"""Routers module - FastAPI route handlers"""

from . import config, reviews

__all__ = ["config", "reviews"]
