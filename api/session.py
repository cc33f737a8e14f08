"""
api/session.py

Multi-user in-memory session store (cookie based).

Each browser gets a UUID session id and its own state: at most one
ExamSession at a time. Sessions expire after SESSION_TTL seconds without
access; expiring or resetting a session stops its exam clock.
"""

import threading
import time
import uuid
from typing import Any

from config import SESSION_TTL
from prepwise_exam.services.exam_session import ExamSession

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}


def _new_state() -> dict[str, Any]:
    return {
        "exam": None,
        "subject_ids": [],
    }


def _close_exam(state: dict[str, Any]) -> None:
    exam: ExamSession | None = state.get("exam")
    if exam is not None:
        exam.close()


def create_session() -> str:
    """Create a session and return its id."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """Session data for `sid`, or None if it is unknown or expired."""
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            _close_exam(_sessions.pop(sid))
            del _timestamps[sid]
            return None
        _timestamps[sid] = time.time()  # refresh on access
        return _sessions[sid]


def get(sid: str, key: str, default=None):
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


def replace_exam(sid: str, exam: ExamSession | None) -> None:
    """Install a new exam for `sid`, stopping the clock of the previous one."""
    with _lock:
        if sid in _sessions:
            _close_exam(_sessions[sid])
            _sessions[sid]["exam"] = exam
            _timestamps[sid] = time.time()


def reset(sid: str) -> None:
    """Discard the exam and selections of `sid`."""
    with _lock:
        if sid in _sessions:
            _close_exam(_sessions[sid])
            _sessions[sid] = _new_state()
            _timestamps[sid] = time.time()


def cleanup_expired() -> int:
    """Drop expired sessions. Returns how many were removed."""
    now = time.time()
    removed = 0
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        for sid in expired:
            _close_exam(_sessions.pop(sid))
            del _timestamps[sid]
            removed += 1
    return removed
