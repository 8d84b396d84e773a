"""
Deterministic grading of choice questions.
"""

from datetime import datetime
from typing import Optional

from grade_engine.core.models import (
    ChoiceQuestion,
    GradeComponent,
    GradeSource,
    SubmittedAnswer,
    utc_now,
)


def score_choice(
    question: ChoiceQuestion,
    answer: Optional[SubmittedAnswer],
    graded_at: Optional[datetime] = None
) -> GradeComponent:
    """
    Score a choice question by comparing the selected option to the key.

    Full points on a match, 0 otherwise; a missing answer or missing
    selection scores 0. Never raises.

    Args:
        question: The choice question
        answer: The student's answer, or None if the question was skipped
        graded_at: Timestamp to stamp on the component (default: now)

    Returns:
        GradeComponent with source=auto
    """
    selected = answer.selected_option_index if answer is not None else None
    correct = selected is not None and selected == question.correct_option_index

    if selected is None:
        feedback = "No option selected."
    elif correct:
        feedback = "Correct."
    else:
        feedback = "Incorrect."

    return GradeComponent(
        question_id=question.id,
        source=GradeSource.AUTO,
        score=question.points if correct else 0.0,
        feedback=feedback,
        graded_at=graded_at or utc_now(),
    )
