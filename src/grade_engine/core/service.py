"""
Caller-facing grading operations.

Thin facade over GradingWorkflow used by the HTTP layer and by embedding
applications: submit, trigger grading, override, publish, read grades.
"""

from typing import List, Optional, Sequence

from grade_engine.ai.batch_grader import AIGradingClient
from grade_engine.config.settings import Settings, get_settings
from grade_engine.core.models import (
    Assignment,
    GradeView,
    RosterEntry,
    StudentGradeView,
    Submission,
    SubmittedAnswer,
)
from grade_engine.core.workflow import GradingWorkflow
from grade_engine.storage.submission_store import SubmissionStore


class GradingService:
    """
    Entry point for UI/API layers.

    Usage:
        service = GradingService.from_settings()
        service.register_assignment(assignment)
        submission = await service.submit(assignment.id, "student-1", answers)
        view = await service.trigger_grading(submission.id)
    """

    def __init__(self, store: SubmissionStore, ai_client: Optional[AIGradingClient] = None):
        self.store = store
        self.workflow = GradingWorkflow(store, ai_client)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[SubmissionStore] = None
    ) -> 'GradingService':
        """Wire the configured AI provider and the SQL store (unless a store is given)."""
        settings = settings or get_settings()
        if store is None:
            from grade_engine.storage.sql_store import SQLSubmissionStore
            store = SQLSubmissionStore(database_url=settings.database_url)
        return cls(store, AIGradingClient.from_settings(settings))

    def register_assignment(self, assignment: Assignment) -> Assignment:
        """
        Raises:
            ValidationError: Changed questions on an assignment with submissions
        """
        return self.workflow.register_assignment(assignment)

    async def submit(
        self,
        assignment_id: str,
        student_id: str,
        answers: Sequence[SubmittedAnswer],
        submission_id: Optional[str] = None
    ) -> Submission:
        """
        Raises:
            AssignmentNotFoundError: Unknown assignment
            ValidationError: Invalid answers
        """
        assignment = self.store.load_assignment(assignment_id)
        return await self.workflow.intake(assignment, student_id, answers, submission_id)

    async def trigger_grading(self, submission_id: str) -> GradeView:
        """Auto-grade, then AI-grade if the assignment enables it."""
        await self.workflow.auto_grade(submission_id)
        await self.workflow.ai_grade_if_enabled(submission_id)
        return await self.workflow.get_grade(submission_id)

    async def override_grade(
        self,
        submission_id: str,
        question_id: str,
        score: float,
        feedback: Optional[str] = None
    ) -> GradeView:
        await self.workflow.apply_manual_grade(submission_id, question_id, score, feedback)
        return await self.workflow.get_grade(submission_id)

    async def publish(self, submission_id: str) -> GradeView:
        await self.workflow.publish(submission_id)
        return await self.workflow.get_grade(submission_id)

    async def get_grade(self, submission_id: str) -> GradeView:
        return await self.workflow.get_grade(submission_id)

    async def get_student_grade(self, submission_id: str) -> StudentGradeView:
        return await self.workflow.get_student_view(submission_id)

    async def list_submissions(self, assignment_id: str) -> List[RosterEntry]:
        return await self.workflow.list_roster(assignment_id)
