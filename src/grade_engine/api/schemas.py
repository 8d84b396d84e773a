"""
Pydantic schemas for API request/response validation.

Assignments, grade views and roster entries are returned as the core
models themselves; these schemas cover the remaining request and
response bodies.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from grade_engine.core.models import Assignment, Submission, SubmissionStatus, SubmittedAnswer


# ============================================================================
# Assignment Schemas
# ============================================================================

class AssignmentResponse(BaseModel):
    """Registered assignment summary."""
    assignment_id: str
    title: str
    question_ids: List[str]
    max_score: float
    auto_ai_grading_enabled: bool
    deadline: Optional[datetime] = None

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> 'AssignmentResponse':
        return cls(
            assignment_id=assignment.id,
            title=assignment.title,
            question_ids=assignment.question_ids,
            max_score=assignment.max_score,
            auto_ai_grading_enabled=assignment.auto_ai_grading_enabled,
            deadline=assignment.deadline,
        )


# ============================================================================
# Submission Schemas
# ============================================================================

class SubmitRequest(BaseModel):
    """A student's answers for one assignment."""
    student_id: str = Field(min_length=1)
    answers: List[SubmittedAnswer] = Field(default_factory=list)
    # Set by clients that retry; the same id with the same answers is a no-op
    submission_id: Optional[str] = None


class SubmissionResponse(BaseModel):
    """Stored submission summary."""
    submission_id: str
    assignment_id: str
    student_id: str
    status: SubmissionStatus
    submitted_at: datetime
    is_late: bool = False

    @classmethod
    def from_submission(cls, submission: Submission) -> 'SubmissionResponse':
        return cls(
            submission_id=submission.id,
            assignment_id=submission.assignment_id,
            student_id=submission.student_id,
            status=submission.status,
            submitted_at=submission.submitted_at,
            is_late=submission.is_late,
        )


# ============================================================================
# Grading Schemas
# ============================================================================

class ManualGradeRequest(BaseModel):
    """Teacher override for one question."""
    score: float
    feedback: Optional[str] = None


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Body of every engine error response."""
    detail: str
    error: str
    context: Dict[str, Any] = Field(default_factory=dict)
