"""Tests for the HTTP surface in api.routes."""
import pytest
from fastapi.testclient import TestClient

from api.app import create_app


@pytest.fixture
def client(fake_loader, exam_config):
    app = create_app(loader=fake_loader, exam_config=exam_config, start_clock=False)
    with TestClient(app) as c:
        yield c


def _start(client, ids=("eng", "mth", "bio")):
    res = client.post("/api/exam/start", json={"subject_ids": list(ids)})
    assert res.status_code == 200
    return res.json()


def test_requests_without_exam_are_404(client) -> None:
    assert client.get("/api/exam/state").status_code == 404
    assert client.post("/api/exam/submit").status_code == 404


def test_subjects_listing_and_overview(client) -> None:
    res = client.get("/api/subjects")
    assert [s["name"] for s in res.json()] == ["Biology", "English Language", "Mathematics"]

    res = client.get("/api/subjects/overview", params=[("ids", "mth"), ("ids", "eng"), ("ids", "bio")])
    body = res.json()
    assert body["duration"] == "02:00:00"
    assert [(s["label"], s["question_count"]) for s in body["subjects"]] == [
        ("English", 10), ("Biology", 5), ("Mathematics", 5),
    ]


def test_start_and_state(client) -> None:
    started = _start(client)
    assert started == {"total": 18, "subjects": 3, "error": None, "ok": True}

    state = client.get("/api/exam/state").json()
    assert state["active_subject"] == "bio"
    assert [s["label"] for s in state["subjects"]] == ["English", "Biology", "Mathematics"]
    assert state["time_display"] == "02:00:00"
    assert state["timer_state"] == "running"
    assert state["is_submitted"] is False


def test_question_hides_answer_until_submitted(client) -> None:
    _start(client)
    q = client.get("/api/exam/question").json()
    assert q["id"] == "bio-0"
    assert "answer" not in q
    assert q["saved_answer"] is None
    assert q["total"] == 3


def test_navigation_is_clamped(client) -> None:
    _start(client)
    client.post("/api/exam/select-subject", json={"subject_id": "eng"})
    assert client.post("/api/exam/navigate", json={"index": 99}).json()["index"] == 9
    assert client.post("/api/exam/navigate", json={"index": -3}).json()["index"] == 0

    nav = client.get("/api/exam/navigator").json()
    assert nav["active_subject"] == "eng"
    assert len(nav["questions"]) == 10
    assert nav["questions"][0]["current"] is True


def test_answer_outcomes_map_to_status_codes(client) -> None:
    _start(client)
    assert client.post("/api/exam/answer", json={"question_id": "bio-0", "option_key": "A"}).status_code == 200

    res = client.post("/api/exam/answer", json={"question_id": "bio-0", "option_key": "Z"})
    assert res.status_code == 422
    assert res.json()["detail"]["outcome"] == "invalid_option"

    res = client.post("/api/exam/answer", json={"question_id": "missing", "option_key": "A"})
    assert res.status_code == 404

    res = client.post("/api/exam/answer", json={"question_id": "bio-0", "option_key": ""})
    assert res.json()["answered_count"] == 0


def test_flag_toggle(client) -> None:
    _start(client)
    assert client.post("/api/exam/flag", json={"question_id": "bio-1"}).json()["flagged"] is True
    assert client.post("/api/exam/flag", json={"question_id": "bio-1"}).json()["flagged"] is False


def test_submit_result_and_freeze(client) -> None:
    _start(client)
    assert client.get("/api/exam/result").status_code == 400

    for i in range(3):
        client.post("/api/exam/answer", json={"question_id": f"bio-{i}", "option_key": "A"})
    client.post("/api/exam/answer", json={"question_id": "eng-0", "option_key": "A"})

    first = client.post("/api/exam/submit").json()
    assert first["score"] == 3
    assert first["total"] == 18
    assert first["best_subject"] == "Biology"
    assert first["per_subject"]["bio"]["percentage"] == 100.0
    assert client.post("/api/exam/submit").json() == first

    res = client.post("/api/exam/answer", json={"question_id": "mth-0", "option_key": "C"})
    assert res.status_code == 409

    result = client.get("/api/exam/result").json()
    assert len(result["review"]) == 18
    assert len(result["incorrect_question_ids"]) == 15
    assert "bio-0" not in result["incorrect_question_ids"]
    assert result["review"][0]["question"]["answer"] == "A"


def test_load_failure_gives_empty_session(catalog, make_loader, exam_config) -> None:
    subjects, questions = catalog
    loader = make_loader(subjects, questions, fail=ConnectionError("db offline"))
    app = create_app(loader=loader, exam_config=exam_config, start_clock=False)
    with TestClient(app) as client:
        res = client.post("/api/exam/start", json={"subject_ids": ["eng"]})
        assert res.status_code == 200
        assert res.json() == {"total": 0, "subjects": 0, "error": "db offline", "ok": False}
        assert client.get("/api/exam/question").status_code == 404
        assert client.get("/api/exam/state").json()["timer_state"] == "stopped"

        result = client.post("/api/exam/submit").json()
        assert result["best_subject"] == "-"
        assert result["worst_subject"] == "-"

        assert client.get("/api/subjects").status_code == 503


def test_quit_discards_exam(client) -> None:
    _start(client)
    assert client.post("/api/exam/quit").json() == {"ok": True}
    assert client.get("/api/exam/state").status_code == 404


def test_no_static_root_is_served(client) -> None:
    assert client.get("/").status_code == 404
    assert client.get("/static/index.html").status_code == 404


def test_cors_only_echoes_listed_origins(fake_loader, exam_config) -> None:
    app = create_app(
        loader=fake_loader,
        exam_config=exam_config,
        start_clock=False,
        allowed_origins=["http://exam.local"],
    )
    with TestClient(app) as client:
        res = client.get("/api/subjects", headers={"Origin": "http://exam.local"})
        assert res.headers["access-control-allow-origin"] == "http://exam.local"
        assert res.headers["access-control-allow-credentials"] == "true"

        res = client.get("/api/subjects", headers={"Origin": "http://evil.example"})
        assert res.status_code == 200
        assert "access-control-allow-origin" not in res.headers

        preflight = client.options(
            "/api/exam/answer",
            headers={"Origin": "http://evil.example", "Access-Control-Request-Method": "POST"},
        )
        assert preflight.status_code == 400
        assert "access-control-allow-origin" not in preflight.headers
