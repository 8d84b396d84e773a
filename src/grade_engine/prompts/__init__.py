"""Prompt templates."""

from grade_engine.prompts.batch import (
    BATCH_GRADING_SYSTEM_PROMPT,
    build_batch_grading_prompt,
    truncate_reference,
)

__all__ = [
    "BATCH_GRADING_SYSTEM_PROMPT",
    "build_batch_grading_prompt",
    "truncate_reference",
]
