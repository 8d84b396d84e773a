"""
Submission storage.

The engine reads and writes submissions and assignments only through the
SubmissionStore interface. Each save() is atomic: a reader sees either the
previous submission or the new one, never a mix.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List

from grade_engine.core.exceptions import AssignmentNotFoundError, SubmissionNotFoundError
from grade_engine.core.models import Assignment, Submission


class SubmissionStore(ABC):
    """Persistence contract for submissions and the assignments they answer."""

    @abstractmethod
    def load(self, submission_id: str) -> Submission:
        """
        Raises:
            SubmissionNotFoundError: If no submission has this id
            StorageError: If the store is unavailable
        """

    @abstractmethod
    def save(self, submission: Submission) -> None:
        """Insert or replace a submission in one atomic write."""

    @abstractmethod
    def load_assignment(self, assignment_id: str) -> Assignment:
        """
        Raises:
            AssignmentNotFoundError: If no assignment has this id
        """

    @abstractmethod
    def save_assignment(self, assignment: Assignment) -> None:
        """Insert or replace an assignment."""

    @abstractmethod
    def list_submissions(self, assignment_id: str) -> List[Submission]:
        """All submissions of an assignment, oldest first."""

    def ping(self) -> None:
        """
        Check the backend is reachable.

        Raises:
            StorageError: If it is not
        """


class InMemorySubmissionStore(SubmissionStore):
    """
    Process-local store.

    Values are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self):
        self._submissions: Dict[str, Submission] = {}
        self._assignments: Dict[str, Assignment] = {}
        self._lock = threading.Lock()

    def load(self, submission_id: str) -> Submission:
        with self._lock:
            submission = self._submissions.get(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(
                f"Submission not found: {submission_id}",
                {'submission_id': submission_id}
            )
        return submission.model_copy(deep=True)

    def save(self, submission: Submission) -> None:
        stored = submission.model_copy(deep=True)
        with self._lock:
            self._submissions[submission.id] = stored

    def load_assignment(self, assignment_id: str) -> Assignment:
        with self._lock:
            assignment = self._assignments.get(assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(
                f"Assignment not found: {assignment_id}",
                {'assignment_id': assignment_id}
            )
        return assignment

    def save_assignment(self, assignment: Assignment) -> None:
        with self._lock:
            self._assignments[assignment.id] = assignment

    def list_submissions(self, assignment_id: str) -> List[Submission]:
        with self._lock:
            matching = [s for s in self._submissions.values() if s.assignment_id == assignment_id]
        matching.sort(key=lambda s: s.submitted_at)
        return [s.model_copy(deep=True) for s in matching]
