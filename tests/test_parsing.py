"""
Tests for batch response parsing, JSON extraction and answer fingerprints.
"""

import pytest

from grade_engine.ai.response_parser import parse_batch_response, parse_grade_value
from grade_engine.core.exceptions import ParsingError
from grade_engine.core.models import SubmittedAnswer
from grade_engine.prompts.batch import truncate_reference
from grade_engine.utils.fingerprint import compute_answers_fingerprint
from grade_engine.utils.json_extractor import extract_json_from_response


@pytest.mark.parametrize("value, expected", [
    (8, 8.0),
    (7.5, 7.5),
    ("8/10", 8.0),
    (" 6.5 ", 6.5),
    ("eight", None),
    (None, None),
    (True, None),
    (float("nan"), None),
    ("inf", None),
])
def test_parse_grade_value(value, expected):
    assert parse_grade_value(value) == expected


def test_parse_batch_response_by_index():
    raw = '{"results": [{"index": 1, "score": 3, "feedback": " ok "}, {"index": 0, "score": 9}]}'
    assert parse_batch_response(raw, 2) == [
        {"score": 9.0, "feedback": ""},
        {"score": 3.0, "feedback": "ok"},
    ]


def test_parse_batch_response_skips_bad_entries():
    raw = """{"results": [
        {"index": 0, "score": "n/a"},
        {"index": 5, "score": 1},
        "not an object",
        {"index": 1, "score": 2, "feedback": "first"},
        {"index": 1, "score": 4, "feedback": "duplicate"}
    ]}"""
    assert parse_batch_response(raw, 2) == [None, {"score": 2.0, "feedback": "first"}]


def test_parse_batch_response_falls_back_to_position():
    raw = '{"results": [{"score": 1, "feedback": "a"}, {"score": 2, "feedback": "b"}]}'
    assert [e["score"] for e in parse_batch_response(raw, 2)] == [1.0, 2.0]


@pytest.mark.parametrize("raw", ["", "no json here", '{"grades": []}', '{"results": "none"}'])
def test_parse_batch_response_unusable(raw):
    with pytest.raises(ParsingError):
        parse_batch_response(raw, 1)


def test_extract_json_repairs_common_slips():
    raw = 'Here you go:\n```json\n{"results": [{"index": 0, "score": 5,}],}\n```'
    assert extract_json_from_response(raw) == {"results": [{"index": 0, "score": 5}]}


def test_truncate_reference():
    assert truncate_reference("  short  ") == "short"
    assert truncate_reference("") == ""
    truncated = truncate_reference("word " * 500)
    assert len(truncated) <= 1003
    assert truncated.endswith("...")


def test_fingerprint_is_order_independent():
    a = SubmittedAnswer(question_id="q1", selected_option_index=0)
    b = SubmittedAnswer(question_id="q2", text="An answer")

    assert compute_answers_fingerprint([a, b]) == compute_answers_fingerprint([b, a])
    assert compute_answers_fingerprint([a]) != compute_answers_fingerprint([a, b])
    assert compute_answers_fingerprint([]).startswith("answers_sha256=")
