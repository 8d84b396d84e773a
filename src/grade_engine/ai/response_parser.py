"""
Parsing of batch grading responses.

Turns raw model text into one entry per requested item, matched by the
index the prompt assigned. Entries that are missing or unusable come back
as None so the caller can apply the fallback to that item alone.
"""

import math
from typing import Any, Dict, List, Optional

from grade_engine.core.exceptions import ParsingError
from grade_engine.utils.json_extractor import extract_json_from_response


def parse_grade_value(value: Any) -> Optional[float]:
    """
    Parse a grade value that may be in various formats.

    Handles:
    - float/int: 8.0, 8
    - string with fraction: "8/10" (numerator is the score)
    - string with just number: "8.5"

    Returns:
        Float value, or None when no finite number can be read
    """
    if isinstance(value, bool):
        return None

    parsed: Optional[float] = None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        value = value.strip()
        if '/' in value:
            value = value.split('/')[0].strip()
        try:
            parsed = float(value)
        except ValueError:
            parsed = None

    if parsed is None or not math.isfinite(parsed):
        return None
    return parsed


def parse_batch_response(raw_response: str, item_count: int) -> List[Optional[Dict[str, Any]]]:
    """
    Parse a batch response into per-item entries.

    Args:
        raw_response: Raw text returned by the provider
        item_count: Number of items that were sent

    Returns:
        List of length item_count; entry i is {"score": float, "feedback": str}
        or None if the model gave nothing usable for item i

    Raises:
        ParsingError: If the response has no readable results list at all
    """
    data = extract_json_from_response(raw_response)
    if data is None:
        raise ParsingError("Batch response is not a JSON object")

    results = data.get("results")
    if not isinstance(results, list):
        raise ParsingError("Batch response has no 'results' list")

    entries: List[Optional[Dict[str, Any]]] = [None] * item_count

    for position, result in enumerate(results):
        if not isinstance(result, dict):
            continue

        index = result.get("index")
        if isinstance(index, bool) or not isinstance(index, int):
            index = position
        if not 0 <= index < item_count or entries[index] is not None:
            continue

        score = parse_grade_value(result.get("score"))
        if score is None:
            continue

        feedback = result.get("feedback")
        entries[index] = {
            "score": score,
            "feedback": feedback.strip() if isinstance(feedback, str) else "",
        }

    return entries
