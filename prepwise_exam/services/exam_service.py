"""
services/exam_service.py

Exam grading and per-subject performance analysis.
Pure Python functions: no UI code, no session state. Everything here is
re-derivable from the loaded questions and the answer ledger alone.
"""

from typing import Dict, List, Mapping, Optional, Sequence

from prepwise_exam.models.question_model import Question, Subject
from prepwise_exam.models.session_state import ExamResult, ReviewItem, SubjectScore


def is_correct(question: Question, answers: Mapping[str, str]) -> bool:
    """An unanswered question (no ledger entry) is wrong."""
    picked = answers.get(question.id)
    return picked is not None and picked == question.answer


def percentage(correct: int, total: int) -> float:
    """100 * correct / total, defined as 0.0 for an empty subject."""
    if total == 0:
        return 0.0
    return 100 * correct / total


def rank_subjects(
    subjects: Sequence[Subject],
    per_subject: Mapping[str, SubjectScore],
) -> List[str]:
    """
    Subject ids ordered best to worst by percentage.

    Subjects without questions are left out. sorted() is stable, so ties keep
    the order of `subjects` and ranking[0] is the first-occurring best subject.
    """
    scored = [s.id for s in subjects if per_subject[s.id].total > 0]
    return sorted(scored, key=lambda sid: -per_subject[sid].percentage)


def _worst_of(ranking: List[str], per_subject: Mapping[str, SubjectScore]) -> Optional[str]:
    if not ranking:
        return None
    lowest = per_subject[ranking[-1]].percentage
    # ranking ends with the block of subjects tied at the minimum, in subject order
    return next(sid for sid in ranking if per_subject[sid].percentage == lowest)


def grade(
    subjects: Sequence[Subject],
    questions_by_subject: Mapping[str, Sequence[Question]],
    answers: Mapping[str, str],
) -> ExamResult:
    """
    Score the answer ledger against the loaded questions.

    Args:
        subjects:             Session subjects, in session order.
        questions_by_subject: Subject.id -> questions of that subject.
        answers:              Answer ledger. {question.id: option key}

    Returns:
        ExamResult with the total score, per-subject breakdown and the
        best/worst subject (None when no subject has questions).
    """
    per_subject: Dict[str, SubjectScore] = {}
    score = 0
    total_questions = 0

    for subject in subjects:
        questions = questions_by_subject.get(subject.id, [])
        correct = sum(1 for q in questions if is_correct(q, answers))
        answered = sum(1 for q in questions if q.id in answers)

        per_subject[subject.id] = SubjectScore(
            total=len(questions),
            correct=correct,
            answered=answered,
            percentage=percentage(correct, len(questions)),
        )
        score += correct
        total_questions += len(questions)

    ranking = rank_subjects(subjects, per_subject)

    return ExamResult(
        score=score,
        total_questions=total_questions,
        per_subject=per_subject,
        ranking=ranking,
        best_subject=ranking[0] if ranking else None,
        worst_subject=_worst_of(ranking, per_subject),
    )


def get_incorrect_questions(
    subjects: Sequence[Subject],
    questions_by_subject: Mapping[str, Sequence[Question]],
    answers: Mapping[str, str],
) -> List[Question]:
    """
    Wrong and unanswered questions, for the wrong-answer notes.
    Subject order, then question order.
    """
    return [
        q
        for subject in subjects
        for q in questions_by_subject.get(subject.id, [])
        if not is_correct(q, answers)
    ]


def build_review(
    subjects: Sequence[Subject],
    questions_by_subject: Mapping[str, Sequence[Question]],
    answers: Mapping[str, str],
    flags: Optional[Mapping[str, bool]] = None,
) -> List[ReviewItem]:
    """Every question with the user's answer next to the correct one."""
    flags = flags or {}
    return [
        ReviewItem(
            question=q,
            user_answer=answers.get(q.id),
            is_correct=is_correct(q, answers),
            flagged=flags.get(q.id, False),
        )
        for subject in subjects
        for q in questions_by_subject.get(subject.id, [])
    ]
