"""
Tests for choice question scoring.
"""

from datetime import datetime, timezone

from grade_engine.core.models import ChoiceQuestion, GradeSource, SubmittedAnswer
from grade_engine.grading.auto_grader import score_choice

QUESTION = ChoiceQuestion(
    id="q1", text="Capital of France?", points=4,
    options=("Lyon", "Paris", "Nice"), correct_option_index=1,
)


def test_correct_option_scores_full_points():
    component = score_choice(QUESTION, SubmittedAnswer(question_id="q1", selected_option_index=1))

    assert component.source == GradeSource.AUTO
    assert component.score == 4
    assert component.feedback == "Correct."
    assert component.provisional is False


def test_wrong_option_scores_zero():
    component = score_choice(QUESTION, SubmittedAnswer(question_id="q1", selected_option_index=2))
    assert component.score == 0
    assert component.feedback == "Incorrect."


def test_missing_answer_scores_zero():
    """Unanswered questions still get an auto component."""
    assert score_choice(QUESTION, None).score == 0
    assert score_choice(QUESTION, SubmittedAnswer(question_id="q1")).feedback == "No option selected."


def test_scoring_is_deterministic():
    graded_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
    answer = SubmittedAnswer(question_id="q1", selected_option_index=1)

    assert score_choice(QUESTION, answer, graded_at) == score_choice(QUESTION, answer, graded_at)
