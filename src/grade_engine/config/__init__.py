"""
Configuration module for the grading engine.

Provides settings, constants, and logging configuration.
"""

from grade_engine.config.settings import get_settings, reload_settings, Settings
from grade_engine.config.logging_config import (
    setup_structured_logging,
    get_logger,
)
from grade_engine.config.constants import (
    FALLBACK_SCORE_RATIO,
    FALLBACK_FEEDBACK,
    REFERENCE_CONTENT_MAX_CHARS,
    DEFAULT_AI_TIMEOUT,
    PENDING_REVIEW_MESSAGE,
)

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'setup_structured_logging',
    'get_logger',
    'FALLBACK_SCORE_RATIO',
    'FALLBACK_FEEDBACK',
    'REFERENCE_CONTENT_MAX_CHARS',
    'DEFAULT_AI_TIMEOUT',
    'PENDING_REVIEW_MESSAGE',
]
