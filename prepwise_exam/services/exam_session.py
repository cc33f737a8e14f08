"""
services/exam_session.py

The exam session engine: one owned aggregate per exam attempt.

State:
  - subjects / questions_by_subject  loaded once, immutable afterwards
  - active subject + one cursor per subject
  - answer ledger and flag ledger
  - countdown timer
  - submitted flag + graded result

Every public method takes the session lock, so the countdown thread and
user actions never interleave. `submitted` is assigned once; both manual
submission and timer expiry go through _submit_locked().
"""

import logging
import threading
from typing import Dict, List, Optional

from prepwise_exam.models.question_model import Question, Subject
from prepwise_exam.models.session_state import (
    ExamConfig,
    ExamResult,
    Outcome,
    QuestionPool,
    ReviewItem,
    TimerState,
)
from prepwise_exam.services import exam_service
from prepwise_exam.services.countdown_timer import CountdownTimer
from prepwise_exam.services.display_policy import DisplaySubject, order_and_label, pinned_predicate_for
from prepwise_exam.services.question_loader import QuestionLoader, drop_duplicate_ids

logger = logging.getLogger(__name__)


class ExamSession:
    def __init__(self, pool: QuestionPool, exam_config: Optional[ExamConfig] = None):
        self._lock = threading.RLock()
        self.config = exam_config or ExamConfig()
        self.load_error: Optional[str] = pool.error

        self.subjects: List[Subject] = list(pool.subjects)
        subject_ids = {s.id for s in self.subjects}
        self.questions_by_subject: Dict[str, List[Question]] = drop_duplicate_ids(
            {s.id: list(pool.questions_by_subject.get(s.id, [])) for s in self.subjects}
        )
        dropped = set(pool.questions_by_subject) - subject_ids
        if dropped:
            logger.warning(f"Ignoring questions for unselected subjects: {sorted(dropped)}")

        self._questions_by_id: Dict[str, Question] = {
            q.id: q for qs in self.questions_by_subject.values() for q in qs
        }

        self.active_subject: Optional[str] = self.subjects[0].id if self.subjects else None
        self.cursors: Dict[str, int] = {s.id: 0 for s in self.subjects}
        self.answers: Dict[str, str] = {}
        self.flags: Dict[str, bool] = {}
        self.submitted = False
        self.result: Optional[ExamResult] = None
        self.submitted_by_timer = False

        self.timer = CountdownTimer(self.config.session_duration_seconds)
        # nothing to answer: the clock never runs
        if self.has_content:
            self.timer.start()

    @classmethod
    async def start(
        cls,
        loader: QuestionLoader,
        subject_ids,
        exam_config: Optional[ExamConfig] = None,
    ) -> "ExamSession":
        """Load the question pool and build a session around it."""
        exam_config = exam_config or ExamConfig()
        pool = await loader.load(subject_ids, exam_config)
        return cls(pool, exam_config)

    # ── content ────────────────────────────────────────────────────────────

    @property
    def has_content(self) -> bool:
        return bool(self.subjects)

    @property
    def total_questions(self) -> int:
        return sum(len(qs) for qs in self.questions_by_subject.values())

    def display_subjects(self) -> List[DisplaySubject]:
        return order_and_label(
            self.subjects,
            pinned_predicate_for(self.config.pinned_term),
            self.config.pinned_label,
        )

    # ── timer ──────────────────────────────────────────────────────────────

    @property
    def time_remaining_seconds(self) -> int:
        with self._lock:
            return self.timer.remaining_seconds

    @property
    def timer_state(self) -> TimerState:
        with self._lock:
            return self.timer.state

    def tick(self) -> None:
        """One second of wall-clock time. Auto-submits on expiry."""
        with self._lock:
            if self.timer.tick() and not self.submitted:
                logger.info("Time is up, submitting automatically")
                self.submitted_by_timer = True
                self._submit_locked()

    def start_clock(self, interval: float = 1.0) -> None:
        self.timer.run_in_background(self.tick, interval)

    def close(self) -> None:
        """Leaving the exam: stop the clock. The session is discarded by the caller."""
        with self._lock:
            self.timer.stop()

    # ── navigation ─────────────────────────────────────────────────────────

    def select_subject(self, subject_id: str) -> None:
        with self._lock:
            if subject_id in self.cursors:
                self.active_subject = subject_id

    def go_to(self, index: int) -> None:
        """Move the active subject's cursor, clamped to the question range."""
        with self._lock:
            questions = self._active_questions()
            if not questions:
                return
            self.cursors[self.active_subject] = max(0, min(index, len(questions) - 1))

    def next_question(self) -> None:
        with self._lock:
            if self.active_subject is not None:
                self.go_to(self.cursors[self.active_subject] + 1)

    def previous_question(self) -> None:
        with self._lock:
            if self.active_subject is not None:
                self.go_to(self.cursors[self.active_subject] - 1)

    def current_index(self) -> Optional[int]:
        with self._lock:
            if not self._active_questions():
                return None
            return self.cursors[self.active_subject]

    def current_question(self) -> Optional[Question]:
        with self._lock:
            questions = self._active_questions()
            if not questions:
                return None
            return questions[self.cursors[self.active_subject]]

    def navigator(self) -> List[dict]:
        """Question number grid for the active subject."""
        with self._lock:
            questions = self._active_questions()
            if not questions:
                return []
            current = self.cursors[self.active_subject]
            return [
                {
                    "index": i,
                    "question_id": q.id,
                    "answered": q.id in self.answers,
                    "flagged": self.flags.get(q.id, False),
                    "current": i == current,
                }
                for i, q in enumerate(questions)
            ]

    def _active_questions(self) -> List[Question]:
        if self.active_subject is None:
            return []
        return self.questions_by_subject.get(self.active_subject, [])

    # ── ledgers ────────────────────────────────────────────────────────────

    def record_answer(self, question_id: str, option_key: str) -> Outcome:
        with self._lock:
            if not self.has_content:
                return Outcome.NO_CONTENT
            if self.submitted:
                return Outcome.SESSION_CLOSED
            question = self._questions_by_id.get(question_id)
            if question is None:
                return Outcome.UNKNOWN_QUESTION
            if option_key not in question.options:
                return Outcome.INVALID_OPTION
            self.answers[question_id] = option_key
            return Outcome.OK

    def clear_answer(self, question_id: str) -> Outcome:
        with self._lock:
            if not self.has_content:
                return Outcome.NO_CONTENT
            if self.submitted:
                return Outcome.SESSION_CLOSED
            if question_id not in self._questions_by_id:
                return Outcome.UNKNOWN_QUESTION
            self.answers.pop(question_id, None)
            return Outcome.OK

    def toggle_flag(self, question_id: str) -> Outcome:
        # review marking stays open after submission; flags never affect scoring
        with self._lock:
            if not self.has_content:
                return Outcome.NO_CONTENT
            if question_id not in self._questions_by_id:
                return Outcome.UNKNOWN_QUESTION
            self.flags[question_id] = not self.flags.get(question_id, False)
            return Outcome.OK

    def answer_for(self, question_id: str) -> Optional[str]:
        with self._lock:
            return self.answers.get(question_id)

    def is_flagged(self, question_id: str) -> bool:
        with self._lock:
            return self.flags.get(question_id, False)

    @property
    def answered_count(self) -> int:
        with self._lock:
            return len(self.answers)

    def flagged_question_ids(self) -> List[str]:
        with self._lock:
            return [qid for qid, flagged in self.flags.items() if flagged]

    # ── submission ─────────────────────────────────────────────────────────

    def submit(self) -> ExamResult:
        """Grade the attempt once. Later calls return the stored result."""
        with self._lock:
            return self._submit_locked()

    def _submit_locked(self) -> ExamResult:
        if self.submitted:
            return self.result

        self.result = exam_service.grade(self.subjects, self.questions_by_subject, self.answers)
        self.submitted = True
        self.timer.stop()
        logger.info(
            f"Exam submitted ({'timer' if self.submitted_by_timer else 'manual'}): "
            f"{self.result.score}/{self.result.total_questions}"
        )
        return self.result

    def incorrect_questions(self) -> List[Question]:
        with self._lock:
            return exam_service.get_incorrect_questions(
                self.subjects, self.questions_by_subject, self.answers
            )

    def review(self) -> List[ReviewItem]:
        with self._lock:
            return exam_service.build_review(
                self.subjects, self.questions_by_subject, self.answers, self.flags
            )
