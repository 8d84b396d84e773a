"""
Core module: data models, exceptions and the grading workflow.
"""

from grade_engine.core.exceptions import (
    GradingEngineError,
    ValidationError,
    NotReadyError,
    AlreadyPublishedError,
    StorageError,
)
from grade_engine.core.models import (
    Assignment,
    ChoiceQuestion,
    ShortAnswerQuestion,
    EssayQuestion,
    SubmittedAnswer,
    GradeComponent,
    GradeSource,
    Submission,
    SubmissionStatus,
    GradeView,
    StudentGradeView,
)

__all__ = [
    'GradingEngineError',
    'ValidationError',
    'NotReadyError',
    'AlreadyPublishedError',
    'StorageError',
    'Assignment',
    'ChoiceQuestion',
    'ShortAnswerQuestion',
    'EssayQuestion',
    'SubmittedAnswer',
    'GradeComponent',
    'GradeSource',
    'Submission',
    'SubmissionStatus',
    'GradeView',
    'StudentGradeView',
]
