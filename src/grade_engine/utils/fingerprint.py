"""
Idempotency fingerprints for submissions.

A retried intake carrying the same answers must resolve to the stored
submission instead of creating a second one.
"""

import hashlib
import json
from typing import Iterable

from grade_engine.core.models import SubmittedAnswer


def _sha256_text(s: str) -> str:
    """Compute SHA-256 hash of a string."""
    h = hashlib.sha256()
    h.update(s.encode("utf-8"))
    return h.hexdigest()


def compute_answers_fingerprint(answers: Iterable[SubmittedAnswer]) -> str:
    """
    Compute an order-independent fingerprint of a set of answers.

    Args:
        answers: Submitted answers

    Returns:
        Hex digest of the canonical JSON encoding
    """
    canonical = sorted(
        (
            {
                "question_id": a.question_id,
                "selected_option_index": a.selected_option_index,
                "text": a.text,
            }
            for a in answers
        ),
        key=lambda item: item["question_id"],
    )
    body = json.dumps(canonical, sort_keys=True, ensure_ascii=False)
    return f"answers_sha256={_sha256_text(body)}"
