"""
Prompts for batch grading of free-text answers.

One prompt carries every free-text answer of a submission. Each item is
tagged with its position so results can be matched back by index.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Sequence

from grade_engine.config.constants import REFERENCE_CONTENT_MAX_CHARS

if TYPE_CHECKING:
    from grade_engine.ai.batch_grader import GradingContext, GradingItem


BATCH_GRADING_SYSTEM_PROMPT = """You are a fair and consistent teacher grading student answers about an assigned reading.
Grade each answer independently against the question, its maximum points and the reference material.
Never award more than the maximum points of a question and never less than 0.
Reply with JSON only."""


RESPONSE_FORMAT = """{
  "results": [
    {"index": 0, "question_id": "<id>", "score": <number between 0 and max_points>, "feedback": "<one or two sentences for the student>"}
  ]
}"""


def truncate_reference(reference_content: str, limit: int = REFERENCE_CONTENT_MAX_CHARS) -> str:
    """Trim reference content to the size sent with a batch."""
    content = (reference_content or "").strip()
    if len(content) <= limit:
        return content
    return content[:limit].rstrip() + "..."


def build_batch_grading_prompt(context: GradingContext, items: Sequence[GradingItem]) -> str:
    """
    Build the user prompt for one batch.

    Args:
        context: Assignment title and reference content
        items: Answers to grade, in order

    Returns:
        Prompt text
    """
    payload = [
        {
            "index": index,
            "question_id": item.question_id,
            "question_type": item.question_type,
            "max_points": item.max_points,
            "question": item.question_text,
            "student_answer": item.student_answer,
        }
        for index, item in enumerate(items)
    ]
    for entry, item in zip(payload, items):
        if item.reference_answer:
            entry["reference_answer"] = item.reference_answer

    reference = truncate_reference(context.reference_content)
    reference_block = f"Reference material:\n\"\"\"\n{reference}\n\"\"\"\n\n" if reference else ""

    return (
        f"Assignment: {context.assignment_title or 'Untitled assignment'}\n\n"
        f"{reference_block}"
        f"Grade the following {len(items)} answers.\n"
        f"Short answers are judged on correctness; essays also on reasoning and use of the text.\n\n"
        f"Answers:\n{json.dumps(payload, indent=2, ensure_ascii=False)}\n\n"
        f"Return exactly one result per answer, keeping each answer's index, in this format:\n"
        f"{RESPONSE_FORMAT}"
    )
