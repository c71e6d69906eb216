import io
import urllib.error

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import JANE, valid_answer
from flyer_questionnaire.core.questions import QUESTIONS
from flyer_questionnaire.server import mailer as mailer_mod
from flyer_questionnaire.server import sessions as sessions_mod
from flyer_questionnaire.server.app import app
from flyer_questionnaire.server.config import get_settings
from flyer_questionnaire.server.sessions import reset_sessions

SID = "test-session"


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    monkeypatch.delenv("FLYER_RESEND_API_KEY", raising=False)
    monkeypatch.delenv("FLYER_DELIVERY_URL", raising=False)
    monkeypatch.setenv("FLYER_STATIC_DIR", str(tmp_path))
    monkeypatch.setenv("FLYER_STORAGE_PATH", str(tmp_path / "state.db"))
    get_settings.cache_clear()
    reset_sessions()
    with TestClient(app) as c:
        yield c
    reset_sessions()
    get_settings.cache_clear()


def _api(path=""):
    return f"/api/sessions/{SID}{path}"


def _drive_to_review(client):
    client.put(_api("/contact"), json=JANE)
    assert client.post(_api("/advance")).json()["step"] == 1
    for q in QUESTIONS:
        client.put(_api(f"/answers/{q.id}"), json={"value": valid_answer(q)})
        client.post(_api("/advance"))
    client.post(_api("/advance"))
    state = client.post(_api("/advance")).json()
    assert state["kind"] == "review"
    return state


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_index_redirects_to_new_session(client):
    res = client.get("/", follow_redirects=False)
    assert res.status_code == 303
    assert res.headers["location"].startswith("/apply/")


def test_questionnaire_page_embeds_session(client):
    res = client.get(f"/apply/{SID}")
    assert res.status_code == 200
    assert f'"{SID}"' in res.text
    assert "Bee Flyer Application" in res.text


def test_bad_session_id_is_rejected(client):
    assert client.get("/api/sessions/not%20valid").status_code == 422


def test_questions_endpoint_lists_config(client):
    ids = [q["id"] for q in client.get("/api/questions").json()["questions"]]
    assert ids == [q.id for q in QUESTIONS]


def test_contact_validation_gates_advance(client):
    state = client.put(_api("/contact"), json={"name": "Jane Doe", "phone": "123"}).json()
    assert state["canAdvance"] is False
    assert client.post(_api("/advance")).json()["step"] == 0

    state = client.put(_api("/contact"), json={"phone": "+447123456789", "email": "jane@example.com"}).json()
    assert state["canAdvance"] is True
    assert state["contact"]["name"] == "Jane Doe"
    assert client.post(_api("/advance")).json()["kind"] == "question"


def test_state_survives_session_reload(client):
    client.put(_api("/contact"), json=JANE)
    client.post(_api("/advance"))
    reset_sessions()

    state = client.get(_api()).json()
    assert state["step"] == 1
    assert state["contact"] == JANE


def test_multi_answer_toggle_and_unknown_question(client):
    state = client.post(_api("/answers/availability_days/toggle"), json={"option": "Sunday"}).json()
    assert state["answers"]["availability_days"] == ["Sunday"]

    assert client.put(_api("/answers/nope"), json={"value": "x"}).status_code == 404
    assert client.put(_api("/answers/walk10mi"), json={"value": "Perhaps"}).status_code == 422


def test_sketch_websocket_commits_and_discards(client):
    with client.websocket_connect(f"/ws/{SID}/sketches/mapA") as ws:
        assert ws.receive_json()["t"] == "hello"

        ws.send_json({"t": "pointer", "phase": "down", "x": 10, "y": 10})
        ws.send_json({"t": "pointer", "phase": "move", "x": 30, "y": 12})
        ws.send_json({"t": "pointer", "phase": "up", "x": 30, "y": 12})
        assert ws.receive_json() == {"t": "stroke_committed", "sketch": "mapA", "count": 1}

        ws.send_json({"t": "pointer", "phase": "down", "x": 5, "y": 5})
        ws.send_json({"t": "pointer", "phase": "up", "x": 5, "y": 5})
        assert ws.receive_json() == {"t": "stroke_discarded", "sketch": "mapA", "count": 1}

        ws.send_json({"t": "pointer", "phase": "sideways"})
        assert ws.receive_json()["t"] == "error"

    state = client.get(_api()).json()
    assert state["sketches"]["mapA"]["strokeCount"] == 1

    state = client.post(_api("/sketches/mapA/undo")).json()
    assert state["sketches"]["mapA"]["strokeCount"] == 0


def test_unknown_sketch_websocket_is_closed(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/{SID}/sketches/mapZ") as ws:
            ws.receive_json()


def test_sketch_settings_and_render(client):
    state = client.put(_api("/sketches/mapB/tool"), json={"tool": "eraser"}).json()
    assert state["sketches"]["mapB"]["tool"] == "eraser"
    state = client.put(_api("/sketches/mapB/width"), json={"width": 8}).json()
    assert state["sketches"]["mapB"]["strokeWidth"] == 8
    assert client.put(_api("/sketches/mapB/width"), json={"width": 0}).status_code == 422
    assert client.put(_api("/sketches/mapB/tool"), json={"tool": "spray"}).status_code == 422
    assert client.post(_api("/sketches/mapQ/clear")).status_code == 404

    client.put(_api("/sketches/mapB/size"), json={"width": 50, "height": 20, "pixel_ratio": 2})
    res = client.get(_api("/sketches/mapB/render.png"))
    assert res.headers["content-type"] == "image/png"
    assert res.content.startswith(b"\x89PNG")


def test_reset_requires_confirm(client):
    client.put(_api("/contact"), json=JANE)
    assert client.post(_api("/reset"), json={}).status_code == 400
    state = client.post(_api("/reset"), json={"confirm": True}).json()
    assert state["contact"]["name"] == ""


def test_submit_failure_then_success(client, monkeypatch):
    _drive_to_review(client)

    res = client.post(_api("/submit")).json()
    assert res["ok"] is False
    assert res["message"] == "Could not send application automatically"
    assert res["state"]["submitted"] is False

    sent = []
    monkeypatch.setattr(mailer_mod, "_call_resend_sync", lambda **kw: sent.append(kw) or "{}")
    # key arrives after the session was built; hand it to that session's relay
    sessions_mod.SESSIONS[SID].packager.delivery.mailer.api_key = "re_test"

    res = client.post(_api("/submit")).json()
    assert res["ok"] is True
    assert res["state"]["submitted"] is True
    assert "Jane Doe" in sent[0]["body"]["subject"]

    assert client.put(_api("/contact"), json={"name": "Other"}).status_code == 409


def test_relay_missing_key_is_distinct_500(client):
    res = client.post("/send-email", json={"contact": JANE, "answers": {}})
    assert res.status_code == 500
    assert res.json() == {"ok": False, "error": "RESEND_API_KEY not set"}


def test_relay_provider_failure_and_success(client, monkeypatch):
    monkeypatch.setenv("RESEND_API_KEY", "re_test")
    get_settings.cache_clear()

    def rejected(**kwargs):
        raise urllib.error.HTTPError("u", 403, "Forbidden", None, io.BytesIO(b"domain not verified"))

    monkeypatch.setattr(mailer_mod, "_call_resend_sync", rejected)
    res = client.post("/send-email", json={"contact": JANE})
    assert res.status_code == 500
    assert res.json() == {"ok": False, "error": "Resend error", "details": "domain not verified"}

    monkeypatch.setattr(mailer_mod, "_call_resend_sync", lambda **kw: "{}")
    res = client.post("/send-email", json={"contact": JANE, "mapA": {"png": "data:image/png;base64,AA=="}})
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_relay_rejects_get(client):
    assert client.get("/send-email").status_code == 405


def test_oversized_surface_request_is_rejected(client):
    res = client.put(_api("/sketches/mapA/size"), json={"width": 100000, "pixel_ratio": 8})
    assert res.status_code == 422
    res = client.put(_api("/sketches/mapA/size"), json={"width": 400, "pixel_ratio": 50})
    assert res.status_code == 422
