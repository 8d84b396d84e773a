"""
Shared fixtures: assignments, stores and fake AI providers (no network).
"""

import json
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from grade_engine.ai.base_provider import BaseProvider
from grade_engine.ai.batch_grader import AIGradingClient
from grade_engine.core.models import (
    Assignment,
    ChoiceQuestion,
    EssayQuestion,
    ShortAnswerQuestion,
    SubmittedAnswer,
)
from grade_engine.core.workflow import GradingWorkflow
from grade_engine.storage.submission_store import InMemorySubmissionStore


# ============================================================================
# Fake providers
# ============================================================================

class FakeProvider(BaseProvider):
    """Returns a fixed (or computed) response and records every prompt."""

    def __init__(self, response="", name: str = "fake/model"):
        self._response = response
        self._name = name
        self.prompts: List[str] = []
        self.system_prompts: List[Optional[str]] = []
        self.response_formats: List[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    def call_text(self, prompt, system_prompt=None, response_format="text"):
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        self.response_formats.append(response_format)
        if callable(self._response):
            return self._response(prompt)
        return self._response


class FailingProvider(FakeProvider):
    """Raises on every call, like a transport or auth failure."""

    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    def call_text(self, prompt, system_prompt=None, response_format="text"):
        self.prompts.append(prompt)
        raise self.error


class SlowProvider(FakeProvider):
    """Sleeps before answering, to trip the client timeout."""

    def __init__(self, delay: float, response: str = '{"results": []}'):
        super().__init__(response)
        self.delay = delay

    def call_text(self, prompt, system_prompt=None, response_format="text"):
        self.prompts.append(prompt)
        time.sleep(self.delay)
        return self._response


class BlockingProvider(FakeProvider):
    """Blocks until released; used to cancel a batch mid-flight."""

    def __init__(self, response: str):
        super().__init__(response)
        self.started = threading.Event()
        self.release = threading.Event()

    def call_text(self, prompt, system_prompt=None, response_format="text"):
        self.prompts.append(prompt)
        self.started.set()
        self.release.wait(timeout=5)
        return self._response


def batch_response(*results) -> str:
    """JSON batch body from (index, question_id, score, feedback) tuples."""
    return json.dumps({
        "results": [
            {"index": index, "question_id": qid, "score": score, "feedback": feedback}
            for index, qid, score, feedback in results
        ]
    })


def score_every_item(score: float, feedback: str = "ok") -> Callable[[str], str]:
    """Response function awarding the same score to every item in the prompt."""
    def respond(prompt: str) -> str:
        payload = json.loads(prompt[prompt.index("Answers:\n") + len("Answers:\n"):prompt.index("\n\nReturn exactly")])
        return batch_response(*[
            (item["index"], item["question_id"], score, feedback) for item in payload
        ])
    return respond


# ============================================================================
# Clock
# ============================================================================

class FakeClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


# ============================================================================
# Assignments and answers
# ============================================================================

def make_assignment(ai_enabled: bool = False, **overrides) -> Assignment:
    """Two 5-point choice questions and one 10-point essay."""
    fields = dict(
        id="hw1",
        title="Of Mice and Men, chapters 1-3",
        questions=(
            ChoiceQuestion(id="q1", text="Where do George and Lennie camp?", points=5,
                           options=("By the river", "In town", "At the ranch"), correct_option_index=0),
            ChoiceQuestion(id="q2", text="What does Lennie keep in his pocket?", points=5,
                           options=("A coin", "A dead mouse", "A letter"), correct_option_index=1),
            EssayQuestion(id="q3", text="Why does George stay with Lennie?", points=10),
        ),
        auto_ai_grading_enabled=ai_enabled,
        reference_content="A few miles south of Soledad, the Salinas River drops in close to the hillside bank.",
    )
    fields.update(overrides)
    return Assignment(**fields)


@pytest.fixture
def assignment() -> Assignment:
    return make_assignment(ai_enabled=False)


@pytest.fixture
def ai_assignment() -> Assignment:
    return make_assignment(ai_enabled=True)


@pytest.fixture
def choice_only_assignment() -> Assignment:
    return Assignment(
        id="quiz1",
        title="Vocabulary quiz",
        questions=(
            ChoiceQuestion(id="c1", text="Synonym of 'rapid'", points=2,
                           options=("slow", "fast"), correct_option_index=1),
            ChoiceQuestion(id="c2", text="Antonym of 'ancient'", points=3,
                           options=("modern", "old", "antique"), correct_option_index=0),
        ),
        auto_ai_grading_enabled=True,
    )


@pytest.fixture
def short_answer_assignment() -> Assignment:
    return Assignment(
        id="hw2",
        title="Short answers",
        questions=(
            ShortAnswerQuestion(id="s1", text="Who is Curley?", points=4, reference_answer="The boss's son"),
            ShortAnswerQuestion(id="s2", text="Who is Slim?", points=6),
        ),
        auto_ai_grading_enabled=True,
    )


@pytest.fixture
def correct_answers() -> List[SubmittedAnswer]:
    """Both choice questions right, essay left blank."""
    return [
        SubmittedAnswer(question_id="q1", selected_option_index=0),
        SubmittedAnswer(question_id="q2", selected_option_index=1),
    ]


@pytest.fixture
def answers_with_essay(correct_answers) -> List[SubmittedAnswer]:
    return correct_answers + [
        SubmittedAnswer(
            question_id="q3",
            text="George promised Lennie's aunt Clara, and the dream of the farm keeps them together.",
        )
    ]


# ============================================================================
# Store and workflow
# ============================================================================

@pytest.fixture
def store() -> InMemorySubmissionStore:
    return InMemorySubmissionStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_workflow(store, clock):
    """Build a workflow around a provider (None = no provider configured)."""
    def build(provider: Optional[BaseProvider] = None, timeout: float = 5.0) -> GradingWorkflow:
        return GradingWorkflow(store, AIGradingClient(provider, timeout=timeout), clock=clock)
    return build
