"""
api/app.py

FastAPI app instance + CORS + session middleware. JSON API only: the exam
front end is served separately and must be listed in ALLOWED_ORIGINS.
"""

import logging
import threading
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import ALLOWED_ORIGINS, SESSION_SWEEP_INTERVAL, SESSION_TTL, SUPABASE_URL
from api.routes import router
import api.session as session
from prepwise_exam.models.session_state import ExamConfig
from prepwise_exam.services.question_loader import JsonQuestionLoader, QuestionLoader, SupabaseQuestionLoader

SESSION_COOKIE = "prepwise_session"

logger = logging.getLogger(__name__)


def default_loader() -> QuestionLoader:
    """Supabase when credentials are configured, otherwise the local question bank."""
    if SUPABASE_URL:
        return SupabaseQuestionLoader()
    return JsonQuestionLoader()


def create_app(
    loader: QuestionLoader | None = None,
    exam_config: ExamConfig | None = None,
    start_clock: bool = True,
    allowed_origins: list[str] | None = None,
) -> FastAPI:
    app = FastAPI(title="Prepwise Exam", docs_url=None, redoc_url=None)

    app.state.loader = loader or default_loader()
    app.state.exam_config = exam_config or ExamConfig()
    app.state.start_clock = start_clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS if allowed_origins is None else allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # session middleware: read the session id cookie, issue a new one if missing
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=SESSION_TTL,
        )
        return response

    app.include_router(router)

    # periodic sweep of expired sessions
    def _cleanup_loop():
        while True:
            time.sleep(SESSION_SWEEP_INTERVAL)
            removed = session.cleanup_expired()
            if removed:
                logger.info(f"Removed {removed} expired sessions")

    t = threading.Thread(target=_cleanup_loop, daemon=True)
    t.start()

    return app
