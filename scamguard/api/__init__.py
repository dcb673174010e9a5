"""
ScamGuard API Module
====================

FastAPI application exposing listing analysis and preference management.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
