"""
api/routes.py

FastAPI endpoints over the exam session engine.
"""

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

import api.session as session
from prepwise_exam.models.question_model import Question
from prepwise_exam.models.session_state import Outcome
from prepwise_exam.services.countdown_timer import format_time
from prepwise_exam.services.display_policy import order_and_label, pinned_predicate_for, question_cap
from prepwise_exam.services.exam_session import ExamSession

router = APIRouter()

logger = logging.getLogger(__name__)

# ── Pydantic request bodies ──────────────────────────────────────────────────

class StartExamBody(BaseModel):
    subject_ids: list[str] = []

class SelectSubjectBody(BaseModel):
    subject_id: str

class NavigateBody(BaseModel):
    index: int = 0

class AnswerBody(BaseModel):
    question_id: str
    option_key: str = ""

class FlagBody(BaseModel):
    question_id: str


# ── helpers ──────────────────────────────────────────────────────────────────

_OUTCOME_STATUS = {
    Outcome.INVALID_OPTION: (422, "The selected option does not belong to this question."),
    Outcome.SESSION_CLOSED: (409, "The exam has already been submitted."),
    Outcome.UNKNOWN_QUESTION: (404, "Question not found."),
    Outcome.NO_CONTENT: (404, "No questions found."),
}


def _sid(request: Request) -> str:
    return request.state.session_id


def _require_exam(request: Request) -> ExamSession:
    exam: ExamSession | None = session.get(_sid(request), "exam")
    if exam is None:
        raise HTTPException(status_code=404, detail="No exam in progress.")
    return exam


def _raise_for(outcome: Outcome) -> None:
    if outcome is not Outcome.OK:
        status, detail = _OUTCOME_STATUS[outcome]
        raise HTTPException(status_code=status, detail={"outcome": outcome.value, "message": detail})


def _question_to_dict(q: Question, reveal: bool) -> dict:
    d = {
        "id": q.id,
        "subject_id": q.subject_id,
        "question": q.question,
        "options": q.options,
    }
    if reveal:
        d.update({"answer": q.answer, "explanation": q.explanation})
    return d


def _result_to_dict(exam: ExamSession) -> dict:
    result = exam.result
    names = {s.id: s.name for s in exam.subjects}
    return {
        "score": result.score,
        "total": result.total_questions,
        "submitted_by_timer": exam.submitted_by_timer,
        "per_subject": {sid: ss.model_dump() for sid, ss in result.per_subject.items()},
        "ranking": result.ranking,
        # neutral placeholder when no subject had questions
        "best_subject": names.get(result.best_subject, "-"),
        "worst_subject": names.get(result.worst_subject, "-"),
    }


# ── endpoints ────────────────────────────────────────────────────────────────

@router.get("/api/subjects")
async def list_subjects(request: Request):
    loader = request.app.state.loader
    try:
        subjects = await asyncio.to_thread(loader.list_subjects)
    except Exception as e:
        logger.error(f"Failed to fetch subjects: {e}")
        raise HTTPException(status_code=503, detail="Failed to fetch subjects.")
    return [s.model_dump() for s in subjects]


@router.get("/api/subjects/overview")
async def subjects_overview(request: Request, ids: list[str] = Query(default=[])):
    loader = request.app.state.loader
    cfg = request.app.state.exam_config
    if not ids:
        return {"duration": format_time(cfg.session_duration_seconds), "subjects": []}
    try:
        subjects = await asyncio.to_thread(loader.list_subjects)
    except Exception as e:
        logger.error(f"Failed to fetch subjects: {e}")
        raise HTTPException(status_code=503, detail="Failed to fetch subjects.")

    selected = [s for s in subjects if s.id in ids]
    ordered = order_and_label(selected, pinned_predicate_for(cfg.pinned_term), cfg.pinned_label)
    return {
        "duration": format_time(cfg.session_duration_seconds),
        "subjects": [
            {
                "id": d.subject.id,
                "name": d.subject.name,
                "label": d.label,
                "pinned": d.pinned,
                "question_count": question_cap(d.subject, cfg),
            }
            for d in ordered
        ],
    }


@router.post("/api/exam/start")
async def start_exam(request: Request, body: StartExamBody):
    sid = _sid(request)
    cfg = request.app.state.exam_config

    # a failed load yields an empty session, same as a load with zero content
    pool = await request.app.state.loader.load(body.subject_ids, cfg)
    exam = ExamSession(pool, cfg)
    if exam.has_content and request.app.state.start_clock:
        exam.start_clock()
    session.replace_exam(sid, exam)
    session.put(sid, "subject_ids", body.subject_ids)
    return {
        "total": exam.total_questions,
        "subjects": len(exam.subjects),
        "error": exam.load_error,
        "ok": exam.load_error is None,
    }


@router.get("/api/exam/state")
async def get_exam_state(request: Request):
    exam = _require_exam(request)
    remaining = exam.time_remaining_seconds
    return {
        "active_subject": exam.active_subject,
        "subjects": [
            {"id": d.subject.id, "label": d.label, "pinned": d.pinned}
            for d in exam.display_subjects()
        ],
        "cursors": dict(exam.cursors),
        "time_remaining": remaining,
        "time_display": format_time(remaining),
        "timer_state": exam.timer_state.value,
        "total": exam.total_questions,
        "answered_count": exam.answered_count,
        "flagged": exam.flagged_question_ids(),
        "is_submitted": exam.submitted,
    }


@router.get("/api/exam/question")
async def get_current_question(request: Request):
    exam = _require_exam(request)
    q = exam.current_question()
    if q is None:
        raise HTTPException(status_code=404, detail="No questions found.")

    d = _question_to_dict(q, reveal=exam.submitted)
    d.update({
        "saved_answer": exam.answer_for(q.id),
        "flagged": exam.is_flagged(q.id),
        "index": exam.current_index(),
        "total": len(exam.questions_by_subject[q.subject_id]),
    })
    return d


@router.get("/api/exam/navigator")
async def get_navigator(request: Request):
    exam = _require_exam(request)
    return {"active_subject": exam.active_subject, "questions": exam.navigator()}


@router.post("/api/exam/select-subject")
async def select_subject(request: Request, body: SelectSubjectBody):
    exam = _require_exam(request)
    exam.select_subject(body.subject_id)
    return {"active_subject": exam.active_subject, "index": exam.current_index(), "ok": True}


@router.post("/api/exam/navigate")
async def navigate(request: Request, body: NavigateBody):
    exam = _require_exam(request)
    exam.go_to(body.index)
    return {"index": exam.current_index(), "ok": True}


@router.post("/api/exam/answer")
async def save_answer(request: Request, body: AnswerBody):
    exam = _require_exam(request)
    if body.option_key:
        outcome = exam.record_answer(body.question_id, body.option_key)
    else:
        outcome = exam.clear_answer(body.question_id)
    _raise_for(outcome)
    return {"ok": True, "answered_count": exam.answered_count}


@router.post("/api/exam/flag")
async def toggle_flag(request: Request, body: FlagBody):
    exam = _require_exam(request)
    _raise_for(exam.toggle_flag(body.question_id))
    return {"ok": True, "flagged": exam.is_flagged(body.question_id)}


@router.post("/api/exam/submit")
async def submit_exam(request: Request):
    exam = _require_exam(request)
    exam.submit()
    return _result_to_dict(exam)


@router.get("/api/exam/result")
async def get_result(request: Request):
    exam = _require_exam(request)
    if not exam.submitted:
        raise HTTPException(status_code=400, detail="The exam has not been submitted yet.")

    d = _result_to_dict(exam)
    d["incorrect_question_ids"] = [q.id for q in exam.incorrect_questions()]
    d["review"] = [
        {
            "question": _question_to_dict(item.question, reveal=True),
            "user_answer": item.user_answer,
            "is_correct": item.is_correct,
            "flagged": item.flagged,
        }
        for item in exam.review()
    ]
    return d


@router.post("/api/exam/quit")
async def quit_exam(request: Request):
    session.reset(_sid(request))
    return {"ok": True}
