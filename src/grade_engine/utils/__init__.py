"""Shared helpers."""

from grade_engine.utils.fingerprint import compute_answers_fingerprint
from grade_engine.utils.json_extractor import extract_json_from_response

__all__ = [
    "compute_answers_fingerprint",
    "extract_json_from_response",
]
