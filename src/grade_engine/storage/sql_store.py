"""
SQLAlchemy-backed submission store.

Each call runs in its own transaction. The pydantic models are stored as
JSON payloads and rebuilt with model_validate on load.
"""

from typing import List, Optional

import pydantic
from loguru import logger
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from grade_engine.core.exceptions import (
    AssignmentNotFoundError,
    SerializationError,
    StorageError,
    SubmissionNotFoundError,
)
from grade_engine.core.models import Assignment, Submission
from grade_engine.db.database import create_session_factory
from grade_engine.db.models import AssignmentRecord, SubmissionRecord
from grade_engine.storage.submission_store import SubmissionStore


class SQLSubmissionStore(SubmissionStore):
    """Submission store on any SQLAlchemy-supported database."""

    def __init__(self, session_factory: Optional[sessionmaker] = None, database_url: Optional[str] = None):
        """
        Args:
            session_factory: Ready-made session factory (tables must exist)
            database_url: Used to build a factory when none is given;
                defaults to the configured database_url
        """
        self._session_factory = session_factory or create_session_factory(database_url)

    # ==================== SUBMISSIONS ====================

    def load(self, submission_id: str) -> Submission:
        try:
            with self._session_factory() as session:
                record = session.get(SubmissionRecord, submission_id)
                payload = record.payload if record is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load submission {submission_id}: {e}") from e

        if payload is None:
            raise SubmissionNotFoundError(
                f"Submission not found: {submission_id}",
                {'submission_id': submission_id}
            )
        return self._to_submission(payload)

    def save(self, submission: Submission) -> None:
        record = SubmissionRecord(
            id=submission.id,
            assignment_id=submission.assignment_id,
            student_id=submission.student_id,
            status=submission.status.value,
            total_score=submission.total_score,
            answers_fingerprint=submission.answers_fingerprint,
            payload=submission.model_dump(mode='json'),
            submitted_at=submission.submitted_at,
            published_at=submission.published_at,
        )
        try:
            with self._session_factory() as session, session.begin():
                session.merge(record)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save submission {submission.id}: {e}") from e

        logger.bind(submission_id=submission.id).debug(
            f"Saved submission (status={submission.status.value}, total={submission.total_score})"
        )

    def list_submissions(self, assignment_id: str) -> List[Submission]:
        query = (
            select(SubmissionRecord.payload)
            .where(SubmissionRecord.assignment_id == assignment_id)
            .order_by(SubmissionRecord.submitted_at, SubmissionRecord.id)
        )
        try:
            with self._session_factory() as session:
                payloads = list(session.scalars(query))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list submissions for {assignment_id}: {e}") from e

        return [self._to_submission(payload) for payload in payloads]

    # ==================== ASSIGNMENTS ====================

    def load_assignment(self, assignment_id: str) -> Assignment:
        try:
            with self._session_factory() as session:
                record = session.get(AssignmentRecord, assignment_id)
                payload = record.payload if record is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load assignment {assignment_id}: {e}") from e

        if payload is None:
            raise AssignmentNotFoundError(
                f"Assignment not found: {assignment_id}",
                {'assignment_id': assignment_id}
            )
        try:
            return Assignment.model_validate(payload)
        except pydantic.ValidationError as e:
            raise SerializationError(f"Corrupt assignment record {assignment_id}: {e}") from e

    def save_assignment(self, assignment: Assignment) -> None:
        record = AssignmentRecord(
            id=assignment.id,
            title=assignment.title,
            payload=assignment.model_dump(mode='json'),
        )
        try:
            with self._session_factory() as session, session.begin():
                session.merge(record)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save assignment {assignment.id}: {e}") from e

    def ping(self) -> None:
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StorageError(f"Database unreachable: {e}") from e

    # ==================== HELPERS ====================

    @staticmethod
    def _to_submission(payload: dict) -> Submission:
        try:
            return Submission.model_validate(payload)
        except pydantic.ValidationError as e:
            raise SerializationError(f"Corrupt submission record {payload.get('id')}: {e}") from e
