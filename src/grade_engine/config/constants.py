"""
Constants and configuration values for the grading engine.

Defines fallback policy, timeouts, and system-wide defaults.
"""

from typing import Final

# AI Model Configuration
MAX_TOKENS: Final[int] = 4096
TEMPERATURE: Final[float] = 0.2  # Low temperature for repeatable grading

# AI fallback policy
FALLBACK_SCORE_RATIO: Final[float] = 0.7
FALLBACK_FEEDBACK: Final[str] = "auto-grading unavailable, manual review required"

# Reference content sent along with a batch (book excerpt, rubric, ...)
REFERENCE_CONTENT_MAX_CHARS: Final[int] = 1000

# Scores are stored with this many decimals
SCORE_DECIMALS: Final[int] = 2

# Retry Configuration (inside a provider, bounded by the adapter timeout)
MAX_RETRIES: Final[int] = 3
RETRY_MIN_WAIT: Final[float] = 0.5
RETRY_MAX_WAIT: Final[float] = 4.0

# API Timeouts (in seconds)
API_CONNECT_TIMEOUT: Final[float] = 10.0
API_READ_TIMEOUT: Final[float] = 60.0
DEFAULT_AI_TIMEOUT: Final[float] = 30.0

# Student-facing copy
PENDING_REVIEW_MESSAGE: Final[str] = "pending AI/teacher review"

# Teacher roster labels
ROSTER_LABEL_GRADED: Final[str] = "Graded"
ROSTER_LABEL_LATE: Final[str] = "Late"
ROSTER_LABEL_SUBMITTED: Final[str] = "Submitted"

# API
API_HOST: Final[str] = "127.0.0.1"
API_PORT: Final[int] = 8000
