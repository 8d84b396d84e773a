"""
Core data models for the grading engine.

This module defines all Pydantic models used throughout the system:
questions (a tagged union over choice / short-answer / essay), submitted
answers, grade components, submissions and the grade views handed to callers.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union
from datetime import datetime, timezone
from enum import Enum
import uuid


def generate_id() -> str:
    """Generate a unique ID."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Timezone-aware current time; every stored timestamp is UTC."""
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive datetimes coming from callers are interpreted as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class GradeSource(str, Enum):
    """Which grading signal produced a component."""
    AUTO = "auto"       # Choice question, index comparison
    AI = "ai"           # Batch AI grading of free text
    MANUAL = "manual"   # Teacher override, always wins


class SubmissionStatus(str, Enum):
    """Lifecycle of a submission."""
    SUBMITTED = "submitted"
    AUTO_GRADED = "auto-graded"
    AI_GRADED = "ai-graded"
    NEEDS_MANUAL_REVIEW = "needs-manual-review"
    PUBLISHED = "published"


# ═══════════════════════════════════════════════════════════════════════════════
# QUESTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class _QuestionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    text: str
    points: float = Field(gt=0)


class ChoiceQuestion(_QuestionBase):
    """Multiple-choice question, graded by index equality."""
    type: Literal["choice"] = "choice"
    options: Tuple[str, ...]
    correct_option_index: int = Field(ge=0)

    @model_validator(mode='after')
    def check_correct_option(self) -> 'ChoiceQuestion':
        if not self.options:
            raise ValueError(f"Choice question {self.id} needs at least one option")
        if self.correct_option_index >= len(self.options):
            raise ValueError(
                f"correct_option_index {self.correct_option_index} out of range "
                f"for {len(self.options)} options in question {self.id}"
            )
        return self


class ShortAnswerQuestion(_QuestionBase):
    """Free-text question expecting a short answer."""
    type: Literal["short-answer"] = "short-answer"
    reference_answer: Optional[str] = None


class EssayQuestion(_QuestionBase):
    """Free-text question expecting a longer written answer."""
    type: Literal["essay"] = "essay"
    reference_answer: Optional[str] = None


Question = Annotated[
    Union[ChoiceQuestion, ShortAnswerQuestion, EssayQuestion],
    Field(discriminator="type"),
]

FreeTextQuestion = Union[ShortAnswerQuestion, EssayQuestion]


def is_free_text(question: Question) -> bool:
    """True for short-answer and essay questions."""
    return isinstance(question, (ShortAnswerQuestion, EssayQuestion))


# ═══════════════════════════════════════════════════════════════════════════════
# ASSIGNMENT & ANSWERS
# ═══════════════════════════════════════════════════════════════════════════════

class Assignment(BaseModel):
    """
    Assignment context, owned externally and read by the engine.

    Questions are immutable once the assignment has been handed to students.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    title: str = ""
    questions: Tuple[Question, ...]
    auto_ai_grading_enabled: bool = False
    deadline: Optional[datetime] = None

    # Context handed to the AI with every batch (book excerpt, rubric, ...)
    reference_content: str = ""

    @field_validator('deadline')
    @classmethod
    def normalize_deadline(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @model_validator(mode='after')
    def check_questions(self) -> 'Assignment':
        if not self.questions:
            raise ValueError("An assignment needs at least one question")
        ids = [q.id for q in self.questions]
        duplicates = sorted({qid for qid in ids if ids.count(qid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate question ids: {', '.join(duplicates)}")
        return self

    def question(self, question_id: str) -> Optional[Question]:
        """Find a question by id."""
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    @property
    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    @property
    def max_score(self) -> float:
        """Sum of all question point values."""
        return sum(q.points for q in self.questions)

    @property
    def free_text_questions(self) -> List[FreeTextQuestion]:
        return [q for q in self.questions if is_free_text(q)]

    @property
    def choice_questions(self) -> List[ChoiceQuestion]:
        return [q for q in self.questions if isinstance(q, ChoiceQuestion)]


class SubmittedAnswer(BaseModel):
    """
    A student's answer to one question.

    At most one of selected_option_index / text is populated; an answer with
    neither is treated as unanswered.
    """
    model_config = ConfigDict(frozen=True)

    question_id: str
    selected_option_index: Optional[int] = None
    text: Optional[str] = None

    @model_validator(mode='after')
    def check_single_field(self) -> 'SubmittedAnswer':
        if self.selected_option_index is not None and self.text is not None:
            raise ValueError(
                f"Answer to {self.question_id} sets both selected_option_index and text"
            )
        return self

    @property
    def has_text(self) -> bool:
        """True when a non-blank free-text answer was given."""
        return self.text is not None and bool(self.text.strip())


# ═══════════════════════════════════════════════════════════════════════════════
# GRADING
# ═══════════════════════════════════════════════════════════════════════════════

class GradeComponent(BaseModel):
    """
    The score, source, and feedback attached to one question of one submission.

    provisional is set when the score comes from the AI fallback policy
    rather than an actual evaluation.
    """
    model_config = ConfigDict(frozen=True)

    question_id: str
    source: GradeSource
    score: float = Field(ge=0)
    feedback: Optional[str] = None
    graded_at: datetime = Field(default_factory=utc_now)
    provisional: bool = False

    @field_validator('graded_at')
    @classmethod
    def normalize_graded_at(cls, v: datetime) -> datetime:
        return _as_utc(v)

    def same_grade_as(self, other: Optional['GradeComponent']) -> bool:
        """Equal in everything but the timestamp."""
        return (
            other is not None
            and self.question_id == other.question_id
            and self.source == other.source
            and self.score == other.score
            and self.feedback == other.feedback
            and self.provisional == other.provisional
        )


class Submission(BaseModel):
    """
    A student's submission and its accumulated grade components.

    total_score is a cached projection, only ever written by the reconciler.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    assignment_id: str
    student_id: str
    answers: Tuple[SubmittedAnswer, ...] = ()
    grade_components: Dict[str, GradeComponent] = Field(default_factory=dict)
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    submitted_at: datetime = Field(default_factory=utc_now)
    published_at: Optional[datetime] = None

    total_score: float = 0.0
    max_score: float = 0.0

    is_late: bool = False
    answers_fingerprint: str = ""

    @field_validator('submitted_at', 'published_at')
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @property
    def is_published(self) -> bool:
        return self.status == SubmissionStatus.PUBLISHED

    def answer_for(self, question_id: str) -> Optional[SubmittedAnswer]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None

    def missing_question_ids(self, assignment: Assignment) -> List[str]:
        """Assignment questions that have no grade component yet."""
        return [qid for qid in assignment.question_ids if qid not in self.grade_components]

    @property
    def percentage(self) -> Optional[int]:
        if self.max_score <= 0:
            return None
        return round(self.total_score / self.max_score * 100)


# ═══════════════════════════════════════════════════════════════════════════════
# GRADE VIEWS
# ═══════════════════════════════════════════════════════════════════════════════

class QuestionGrade(BaseModel):
    """Per-question line of a grade view."""
    question_id: str
    max_points: float
    score: Optional[float] = None
    source: Optional[GradeSource] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    provisional: bool = False


class GradeView(BaseModel):
    """
    Teacher-facing grade: current total and, per question, which source
    produced the score.
    """
    submission_id: str
    status: SubmissionStatus
    total_score: float
    max_score: float
    percentage: Optional[int] = None
    per_question: Dict[str, QuestionGrade] = Field(default_factory=dict)
    published_at: Optional[datetime] = None
    is_late: bool = False


class StudentGradeView(BaseModel):
    """
    Student-facing grade: a pending message until publish, then the
    final score.
    """
    submission_id: str
    published: bool
    message: Optional[str] = None
    total_score: Optional[float] = None
    max_score: Optional[float] = None
    percentage: Optional[int] = None
    feedback: Dict[str, str] = Field(default_factory=dict)
    published_at: Optional[datetime] = None


class RosterEntry(BaseModel):
    """One row of the teacher's submission list for an assignment."""
    submission_id: str
    student_id: str
    status: SubmissionStatus
    label: str
    submitted_at: datetime
    is_late: bool = False
    percentage: Optional[int] = None
