"""
Score reconciliation.

Merges auto, AI and manual grade components into a submission and
recomputes the cached total. This is the only place precedence rules live:

- a manual component is never replaced by an auto/ai one;
- any other incoming component replaces the current one for its question
  (re-grading overwrites, it never accumulates);
- an incoming component identical to the current one (timestamp aside)
  keeps the current one, so repeated runs produce identical state.

After every call 0 <= total_score <= max_score.
"""

from typing import Dict, Iterable

from loguru import logger

from grade_engine.config.constants import SCORE_DECIMALS
from grade_engine.core.exceptions import ValidationError
from grade_engine.core.models import (
    Assignment,
    GradeComponent,
    GradeSource,
    Submission,
)


def _clamp(component: GradeComponent, max_points: float, submission_id: str) -> GradeComponent:
    bounded = min(max(component.score, 0.0), max_points)
    if bounded != component.score:
        logger.bind(submission_id=submission_id).warning(
            f"Clamped {component.source.value} score for {component.question_id}: "
            f"{component.score} -> {bounded} (max {max_points})"
        )
        return component.model_copy(update={"score": bounded})
    return component


def compute_total(grade_components: Dict[str, GradeComponent], assignment: Assignment) -> float:
    """Sum of current component scores over the assignment's questions; missing count as 0."""
    total = sum(
        grade_components[qid].score
        for qid in assignment.question_ids
        if qid in grade_components
    )
    return min(round(total, SCORE_DECIMALS), assignment.max_score)


def reconcile(
    submission: Submission,
    new_components: Iterable[GradeComponent],
    assignment: Assignment
) -> Submission:
    """
    Apply new grade components to a submission.

    Args:
        submission: Current submission state (not modified)
        new_components: Components to merge, applied in order
        assignment: The submission's assignment (question points)

    Returns:
        A new Submission with merged components and recomputed totals

    Raises:
        ValidationError: If a component references a question outside the
            assignment, or the assignment does not match the submission
    """
    if submission.assignment_id != assignment.id:
        raise ValidationError(
            f"Submission {submission.id} belongs to assignment {submission.assignment_id}, not {assignment.id}"
        )

    incoming = list(new_components)

    # Validate everything before touching state
    unknown = [c.question_id for c in incoming if assignment.question(c.question_id) is None]
    if unknown:
        raise ValidationError(
            f"Grade components reference unknown questions: {', '.join(unknown)}",
            {"submission_id": submission.id, "question_ids": unknown}
        )

    merged = dict(submission.grade_components)
    for component in incoming:
        question = assignment.question(component.question_id)
        component = _clamp(component, question.points, submission.id)
        existing = merged.get(component.question_id)

        if (
            existing is not None
            and existing.source == GradeSource.MANUAL
            and component.source != GradeSource.MANUAL
        ):
            logger.bind(submission_id=submission.id).debug(
                f"Kept manual grade for {component.question_id}, ignored {component.source.value}"
            )
            continue

        if component.same_grade_as(existing):
            continue

        merged[component.question_id] = component

    return submission.model_copy(update={
        "grade_components": merged,
        "total_score": compute_total(merged, assignment),
        "max_score": assignment.max_score,
    })
