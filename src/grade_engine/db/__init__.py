"""Database module."""

from grade_engine.db.database import (
    Base,
    create_session_factory,
    init_db,
    make_engine,
    make_session_factory,
)
from grade_engine.db.models import AssignmentRecord, SubmissionRecord

__all__ = [
    "Base",
    "create_session_factory",
    "init_db",
    "make_engine",
    "make_session_factory",
    "AssignmentRecord",
    "SubmissionRecord",
]
