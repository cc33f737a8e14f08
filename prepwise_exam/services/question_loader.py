"""
services/question_loader.py

Question pool loading for an exam session.

QuestionLoader.load() is the only suspending step of a session: it fetches the
selected subjects' metadata and every subject's questions in parallel, bounded
by a timeout. Any failure yields an empty QuestionPool with `error` set, never
partial data. Rows that fail validation (e.g. answer not among the options)
are skipped with a warning.

Backends:
  - SupabaseQuestionLoader: `subjects` and `questions` tables.
  - JsonQuestionLoader:     local question bank file for offline use.
"""

import asyncio
import json
import logging
import random
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

import config
from prepwise_exam.models.question_model import Question, Subject
from prepwise_exam.models.session_state import ExamConfig, QuestionPool
from prepwise_exam.services.display_policy import question_cap

logger = logging.getLogger(__name__)


class QuestionLoader:
    """
    Base loader. Subclasses implement the two blocking fetches; load() runs
    them off the event loop.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def fetch_subjects(self, subject_ids: List[str]) -> List[dict]:
        raise NotImplementedError

    def fetch_questions(self, subject_id: str) -> List[dict]:
        raise NotImplementedError

    def list_subjects(self) -> List[Subject]:
        """Whole catalog ordered by name, for subject selection."""
        raise NotImplementedError

    async def load(self, subject_ids: Iterable[str], exam_config: Optional[ExamConfig] = None) -> QuestionPool:
        exam_config = exam_config or ExamConfig()
        ids = list(dict.fromkeys(str(sid) for sid in subject_ids))
        if not ids:
            return QuestionPool()

        try:
            return await asyncio.wait_for(
                self._load(ids, exam_config),
                timeout=exam_config.load_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Question pool load timed out after {exam_config.load_timeout_seconds}s")
            return QuestionPool.failure("timeout")
        except Exception as e:
            logger.error(f"Question pool load failed: {e}")
            return QuestionPool.failure(str(e) or type(e).__name__)

    async def _load(self, ids: List[str], exam_config: ExamConfig) -> QuestionPool:
        subject_rows = await asyncio.to_thread(self.fetch_subjects, ids)
        subjects = [Subject.model_validate(row) for row in subject_rows]
        subjects = [s for s in subjects if s.id in ids]

        # parallel per-subject fetch; arrival order does not matter
        question_rows = await asyncio.gather(
            *(asyncio.to_thread(self.fetch_questions, s.id) for s in subjects)
        )

        questions_by_subject: Dict[str, List[Question]] = {}
        validated = drop_duplicate_ids(
            {subject.id: _validate_rows(subject, rows) for subject, rows in zip(subjects, question_rows)}
        )
        for subject in subjects:
            valid = validated[subject.id]
            if exam_config.shuffle:
                self._rng.shuffle(valid)
            questions_by_subject[subject.id] = valid[: question_cap(subject, exam_config)]

        pool = QuestionPool(subjects=subjects, questions_by_subject=questions_by_subject)
        logger.info(
            f"Question pool loaded: {len(subjects)} subjects, {pool.total_questions} questions"
        )
        return pool


def _validate_rows(subject: Subject, rows: List[dict]) -> List[Question]:
    valid: List[Question] = []
    for row in rows:
        try:
            q = Question.model_validate(row)
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed question {row.get('id')!r} in '{subject.name}': "
                f"{e.error_count()} validation error(s)"
            )
            continue
        if q.subject_id != subject.id:
            logger.warning(f"Skipping question {q.id} filed under another subject ({q.subject_id})")
            continue
        valid.append(q)
    return valid


def drop_duplicate_ids(questions_by_subject: Dict[str, List[Question]]) -> Dict[str, List[Question]]:
    """
    Keep the first question seen for each id, walking subjects in mapping order.
    Later questions with the same id are skipped with a warning: the answer
    ledger is keyed by question id, so an id must belong to one question.
    """
    seen: Dict[str, str] = {}
    unique: Dict[str, List[Question]] = {}
    for subject_id, questions in questions_by_subject.items():
        kept: List[Question] = []
        for q in questions:
            if q.id in seen:
                logger.warning(
                    f"Skipping duplicate question id {q.id!r} in subject {subject_id} "
                    f"(already used in subject {seen[q.id]})"
                )
                continue
            seen[q.id] = subject_id
            kept.append(q)
        unique[subject_id] = kept
    return unique


class SupabaseQuestionLoader(QuestionLoader):
    """Reads the catalog from Supabase with the official client."""

    def __init__(self, client=None, rng: Optional[random.Random] = None):
        super().__init__(rng)
        if client is None:
            from supabase import create_client

            client = create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
        self.client = client

    def fetch_subjects(self, subject_ids: List[str]) -> List[dict]:
        response = (
            self.client.table("subjects")
            .select("id, name")
            .in_("id", subject_ids)
            .order("name")
            .execute()
        )
        return response.data or []

    def fetch_questions(self, subject_id: str) -> List[dict]:
        response = (
            self.client.table("questions")
            .select("*")
            .eq("subject_id", subject_id)
            .execute()
        )
        return response.data or []

    def list_subjects(self) -> List[Subject]:
        response = self.client.table("subjects").select("id, name").order("name").execute()
        return [Subject.model_validate(row) for row in response.data or []]


class JsonQuestionLoader(QuestionLoader):
    """
    Reads a question bank file:

        {"subjects":  [{"id": "...", "name": "..."}, ...],
         "questions": [{"id": "...", "subject_id": "...", "question": "...",
                        "options": {"A": "..."}, "answer": "A",
                        "explanation": "..."}, ...]}
    """

    def __init__(self, path: str = config.QUESTION_BANK_FILE, rng: Optional[random.Random] = None):
        super().__init__(rng)
        self.path = path

    def _read(self) -> dict:
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def fetch_subjects(self, subject_ids: List[str]) -> List[dict]:
        wanted = set(subject_ids)
        rows = [row for row in self._read().get("subjects", []) if str(row.get("id")) in wanted]
        return sorted(rows, key=lambda row: row.get("name", ""))

    def fetch_questions(self, subject_id: str) -> List[dict]:
        return [
            row for row in self._read().get("questions", [])
            if str(row.get("subject_id")) == subject_id
        ]

    def list_subjects(self) -> List[Subject]:
        rows = sorted(self._read().get("subjects", []), key=lambda row: row.get("name", ""))
        return [Subject.model_validate(row) for row in rows]
