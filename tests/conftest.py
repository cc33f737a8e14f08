import time

import pytest

from prepwise_exam.models.question_model import Question, Subject
from prepwise_exam.models.session_state import ExamConfig, QuestionPool
from prepwise_exam.services.question_loader import QuestionLoader


class FakeLoader(QuestionLoader):
    """In-memory catalog standing in for the Supabase tables."""

    def __init__(self, subjects, questions, fail=None, delay=0.0):
        super().__init__()
        self.subjects = subjects
        self.questions = questions
        self.fail = fail
        self.delay = delay

    def fetch_subjects(self, subject_ids):
        if self.fail:
            raise self.fail
        return sorted(
            (row for row in self.subjects if row["id"] in subject_ids),
            key=lambda row: row["name"],
        )

    def fetch_questions(self, subject_id):
        if self.delay:
            time.sleep(self.delay)
        return [row for row in self.questions if row["subject_id"] == subject_id]

    def list_subjects(self):
        if self.fail:
            raise self.fail
        return [Subject.model_validate(row) for row in sorted(self.subjects, key=lambda r: r["name"])]


def question_row(qid, subject_id, answer="A", keys="ABCD"):
    return {
        "id": qid,
        "subject_id": subject_id,
        "question": f"Question {qid}",
        "options": {k: f"option {k}" for k in keys},
        "answer": answer,
        "explanation": None,
    }


@pytest.fixture
def exam_config():
    return ExamConfig(
        session_duration_seconds=7200,
        pinned_term="english",
        pinned_label="English",
        pinned_count=10,
        default_count=5,
        load_timeout_seconds=2.0,
        shuffle=False,
    )


@pytest.fixture
def two_subject_pool():
    """Subject A: Q1 (A), Q2 (B). Subject B: Q3 (C)."""
    a = Subject(id="A", name="Alpha")
    b = Subject(id="B", name="Beta")
    return QuestionPool(
        subjects=[a, b],
        questions_by_subject={
            "A": [
                Question.model_validate(question_row("Q1", "A", "A")),
                Question.model_validate(question_row("Q2", "A", "B")),
            ],
            "B": [Question.model_validate(question_row("Q3", "B", "C"))],
        },
    )


@pytest.fixture
def five_question_pool():
    s = Subject(id="M", name="Mathematics")
    return QuestionPool(
        subjects=[s],
        questions_by_subject={
            "M": [Question.model_validate(question_row(f"M{i}", "M")) for i in range(5)]
        },
    )


@pytest.fixture
def catalog():
    subjects = [
        {"id": "eng", "name": "English Language"},
        {"id": "mth", "name": "Mathematics"},
        {"id": "bio", "name": "Biology"},
    ]
    questions = (
        [question_row(f"eng-{i}", "eng", "B") for i in range(12)]
        + [question_row(f"mth-{i}", "mth", "C") for i in range(7)]
        + [question_row(f"bio-{i}", "bio", "A") for i in range(3)]
    )
    return subjects, questions


@pytest.fixture
def fake_loader(catalog):
    subjects, questions = catalog
    return FakeLoader(subjects, questions)


@pytest.fixture
def make_loader():
    return FakeLoader


@pytest.fixture
def make_row():
    return question_row
