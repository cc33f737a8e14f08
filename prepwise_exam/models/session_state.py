"""
models/session_state.py

Value types shared by the exam session engine and the API layer.
Pydantic BaseModel based, for serialization and type safety.
No UI code, no mutable session state (that lives in services/exam_session.py).
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from config import (
    DEFAULT_QUESTION_COUNT,
    LOAD_TIMEOUT_SECONDS,
    PINNED_QUESTION_COUNT,
    PINNED_SUBJECT_LABEL,
    PINNED_SUBJECT_TERM,
    SESSION_DURATION_SECONDS,
)
from prepwise_exam.models.question_model import Question, Subject


class Outcome(str, Enum):
    """Result of a ledger operation. Rejections leave the session unchanged."""

    OK = "ok"
    INVALID_OPTION = "invalid_option"
    SESSION_CLOSED = "session_closed"
    UNKNOWN_QUESTION = "unknown_question"
    NO_CONTENT = "no_content"


class TimerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    EXPIRED = "expired"


class ExamConfig(BaseModel):
    """
    Per-session configuration, supplied when the session is constructed.

    Attributes:
        session_duration_seconds: Countdown length.
        pinned_term:              Case-insensitive substring marking the pinned subject.
        pinned_label:             Short alias shown for the pinned subject.
        pinned_count:             Question cap for the pinned subject.
        default_count:            Question cap for every other subject.
        load_timeout_seconds:     Upper bound on the question pool fetch.
        shuffle:                  Shuffle each subject's questions before capping.
    """

    session_duration_seconds: int = Field(default=SESSION_DURATION_SECONDS, gt=0)
    pinned_term: str = Field(default=PINNED_SUBJECT_TERM, min_length=1)
    pinned_label: str = Field(default=PINNED_SUBJECT_LABEL)
    pinned_count: int = Field(default=PINNED_QUESTION_COUNT, ge=0)
    default_count: int = Field(default=DEFAULT_QUESTION_COUNT, ge=0)
    load_timeout_seconds: float = Field(default=LOAD_TIMEOUT_SECONDS, gt=0)
    shuffle: bool = True


class QuestionPool(BaseModel):
    """
    Output of the question pool loader.

    A failed load is always empty: callers treat "load failed" and
    "loaded zero questions" the same way, `error` only says why.
    """

    subjects: List[Subject] = Field(default_factory=list)
    questions_by_subject: Dict[str, List[Question]] = Field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failure(cls, reason: str) -> "QuestionPool":
        return cls(error=reason)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def total_questions(self) -> int:
        return sum(len(qs) for qs in self.questions_by_subject.values())


class SubjectScore(BaseModel):
    total: int = Field(..., ge=0)
    correct: int = Field(..., ge=0)
    answered: int = Field(default=0, ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)


class ExamResult(BaseModel):
    """
    Graded outcome of one session.

    Attributes:
        score:           Number of correctly answered questions.
        total_questions: Number of loaded questions across all subjects.
        per_subject:     Subject.id -> SubjectScore, one entry per subject.
        ranking:         Subject ids with at least one question, best first.
                         Ties keep the session's subject order.
        best_subject:    ranking[0], or None when no subject has questions.
        worst_subject:   First subject, in session order, tied at the lowest
                         percentage (not necessarily ranking[-1]), or None
                         when no subject has questions.
    """

    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    per_subject: Dict[str, SubjectScore] = Field(default_factory=dict)
    ranking: List[str] = Field(default_factory=list)
    best_subject: Optional[str] = None
    worst_subject: Optional[str] = None


class ReviewItem(BaseModel):
    """One row of the post-submission answer review."""

    question: Question
    user_answer: Optional[str] = None
    is_correct: bool = False
    flagged: bool = False
