"""
API module for the grading engine.

Provides the FastAPI application for HTTP access.
"""

from grade_engine.api.app import create_app

__all__ = ["create_app"]
