"""
Submission status management.

Holds the allowed status transitions and the rules that pick the status a
submission moves to after each grading step.

    submitted -> auto-graded -> (ai-graded | needs-manual-review) -> published
"""

from typing import Dict, FrozenSet, List

from grade_engine.core.exceptions import AlreadyPublishedError, WorkflowError
from grade_engine.core.models import Submission, SubmissionStatus


ALLOWED_TRANSITIONS: Dict[SubmissionStatus, FrozenSet[SubmissionStatus]] = {
    SubmissionStatus.SUBMITTED: frozenset({
        SubmissionStatus.AUTO_GRADED,
    }),
    SubmissionStatus.AUTO_GRADED: frozenset({
        SubmissionStatus.AI_GRADED,
        SubmissionStatus.NEEDS_MANUAL_REVIEW,
        SubmissionStatus.PUBLISHED,
    }),
    SubmissionStatus.AI_GRADED: frozenset({
        SubmissionStatus.NEEDS_MANUAL_REVIEW,
        SubmissionStatus.PUBLISHED,
    }),
    SubmissionStatus.NEEDS_MANUAL_REVIEW: frozenset({
        SubmissionStatus.AI_GRADED,
        SubmissionStatus.PUBLISHED,
    }),
    SubmissionStatus.PUBLISHED: frozenset(),
}


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    """Staying in the same non-terminal status is always allowed."""
    if current == target:
        return current != SubmissionStatus.PUBLISHED
    return target in ALLOWED_TRANSITIONS[current]


def ensure_mutable(submission: Submission) -> None:
    """
    Reject any change to a published submission.

    Raises:
        AlreadyPublishedError: If the submission is published
    """
    if submission.is_published:
        raise AlreadyPublishedError(submission.id)


def with_status(submission: Submission, target: SubmissionStatus) -> Submission:
    """
    Return a copy of the submission in the target status.

    Raises:
        AlreadyPublishedError: If the submission is published
        WorkflowError: If the transition is not allowed
    """
    ensure_mutable(submission)
    if not can_transition(submission.status, target):
        raise WorkflowError(
            f"Invalid status transition {submission.status.value} -> {target.value}",
            {'submission_id': submission.id}
        )
    if submission.status == target:
        return submission
    return submission.model_copy(update={"status": target})


def status_after_auto_grade(current: SubmissionStatus) -> SubmissionStatus:
    """Only a fresh submission advances; later states survive a re-run."""
    if current == SubmissionStatus.SUBMITTED:
        return SubmissionStatus.AUTO_GRADED
    return current


def status_after_ai_grade(
    current: SubmissionStatus,
    missing_question_ids: List[str],
    fallback_used: bool,
    ai_ran: bool
) -> SubmissionStatus:
    """
    Status after an AI grading pass.

    Args:
        current: Status before the pass (never submitted or published)
        missing_question_ids: Questions still without a component
        fallback_used: Whether any result came from the fallback policy
        ai_ran: Whether a batch was actually sent
    """
    if fallback_used or missing_question_ids:
        return SubmissionStatus.NEEDS_MANUAL_REVIEW
    if ai_ran:
        return SubmissionStatus.AI_GRADED
    return current


def status_after_manual_grade(
    current: SubmissionStatus,
    missing_question_ids: List[str]
) -> SubmissionStatus:
    if current == SubmissionStatus.SUBMITTED:
        return current
    if missing_question_ids:
        return SubmissionStatus.NEEDS_MANUAL_REVIEW
    return current
