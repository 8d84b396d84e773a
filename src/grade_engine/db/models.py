"""Database models for the grading engine."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, String, Text

from grade_engine.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentRecord(Base):
    """Assignment definition; questions live in the JSON payload."""
    __tablename__ = "assignments"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False, default="")
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class SubmissionRecord(Base):
    """
    One submission.

    The full submission (answers, grade components) is stored in payload;
    status and total are duplicated into columns for listing.
    """
    __tablename__ = "submissions"

    id = Column(String, primary_key=True)
    assignment_id = Column(String, ForeignKey("assignments.id"), nullable=False, index=True)
    student_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)
    total_score = Column(Float, nullable=False, default=0.0)
    answers_fingerprint = Column(Text, nullable=False, default="")
    payload = Column(JSON, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_submissions_assignment_submitted", "assignment_id", "submitted_at"),
    )
