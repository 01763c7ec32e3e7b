import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from claryx.app import create_app
from claryx.config import get_settings
from claryx.routers import speech as speech_router
from claryx.services.speech import PlaybackController, VoiceCatalog, VoiceEntry

TEXT = "Hello world. How are you?"


def make_client(backend, catalog=None) -> TestClient:
    """Build a TestClient around a controller driven by a fake backend."""
    controller = PlaybackController(
        backend,
        backend.events,
        catalog=catalog,
        settle_delay=0,
    )
    app = FastAPI()
    app.state.playback_controller = controller
    app.include_router(speech_router.router)
    return TestClient(app)


@pytest.fixture
def speech_app(monkeypatch, tmp_path):
    monkeypatch.setenv("SPEECH_SETTLE_DELAY_MS", "0")
    monkeypatch.setenv("LOGGING_SETTINGS_PATH", str(tmp_path / "missing.conf"))
    monkeypatch.delenv("LOG_DIR", raising=False)
    get_settings.cache_clear()
    yield create_app()
    get_settings.cache_clear()


def _receive_until(websocket, predicate, limit: int = 50) -> dict:
    for _ in range(limit):
        message = websocket.receive_json()
        if predicate(message):
            return message
    raise AssertionError("expected message never arrived")


def test_state_starts_idle(manual_backend) -> None:
    client = make_client(manual_backend)

    response = client.get("/api/speech/state")

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "idle"
    assert body["progress"] == 0
    assert body["session_id"] is None
    assert body["highlight"] is None


def test_missing_controller_is_unavailable() -> None:
    app = FastAPI()
    app.include_router(speech_router.router)
    client = TestClient(app)

    assert client.get("/api/speech/state").status_code == 503


def test_speak_pause_resume_stop(manual_backend) -> None:
    with make_client(manual_backend) as client:
        response = client.post("/api/speech/speak", json={"text": TEXT, "rate": 1.5})
        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "playing"
        assert body["segment_count"] == 2
        assert body["session_id"]

        assert client.post("/api/speech/resume").status_code == 409
        assert client.post("/api/speech/pause").json()["state"] == "paused"
        assert client.post("/api/speech/pause").status_code == 409
        assert client.post("/api/speech/resume").json()["state"] == "playing"

        stopped = client.post("/api/speech/stop").json()
        assert stopped["state"] == "idle"
        assert stopped["last_end_reason"] == "stopped"
        assert client.post("/api/speech/stop").status_code == 409


def test_blank_speak_stays_idle(manual_backend) -> None:
    with make_client(manual_backend) as client:
        response = client.post("/api/speech/speak", json={"text": "   "})

    assert response.status_code == 200
    assert response.json()["state"] == "idle"


def test_speak_rejects_bad_rate(manual_backend) -> None:
    client = make_client(manual_backend)

    response = client.post("/api/speech/speak", json={"text": TEXT, "rate": 0})

    assert response.status_code == 422


def test_toggle_starts_then_stops(manual_backend) -> None:
    with make_client(manual_backend) as client:
        assert client.post("/api/speech/toggle", json={"text": TEXT}).json()["state"] == "playing"
        assert client.post("/api/speech/toggle", json={"text": TEXT}).json()["state"] == "idle"


def test_voices_and_resolve(manual_backend) -> None:
    catalog = VoiceCatalog([VoiceEntry("Samantha", "en-US"), VoiceEntry("Anna", "de-DE")])
    client = make_client(manual_backend, catalog=catalog)

    voices = client.get("/api/speech/voices").json()
    assert [v["name"] for v in voices] == ["Samantha", "Anna"]

    resolved = client.get(
        "/api/speech/voices/resolve",
        params={"language_tag": "de-DE", "preferred_name": "Samantha"},
    ).json()
    assert resolved["name"] == "Anna"

    fallback = client.get("/api/speech/voices/resolve", params={"language_tag": "ja-JP"}).json()
    assert fallback["name"] == "Samantha"


def test_resolve_with_empty_catalog_returns_null(manual_backend) -> None:
    client = make_client(manual_backend)

    response = client.get("/api/speech/voices/resolve")

    assert response.status_code == 200
    assert response.json() is None


def test_health(speech_app) -> None:
    with TestClient(speech_app) as client:
        body = client.get("/health").json()

    assert body == {"status": "ok", "playback": "idle", "speech_clients": 0, "voices": 0}


def test_websocket_client_reads_text_aloud(speech_app) -> None:
    with TestClient(speech_app) as client:
        with client.websocket_connect("/api/speech/connect?client_id=tab1") as ws:
            initial = ws.receive_json()
            assert initial["type"] == "state"
            assert initial["state"] == "idle"

            ws.send_json(
                {
                    "type": "voices",
                    "voices": [
                        {"name": "Alex", "language_tag": "en-GB"},
                        {"name": "Samantha", "language_tag": "en-US"},
                    ],
                }
            )
            ws.send_text("not json")
            ws.send_json({"type": "heartbeat"})
            for _ in range(20):
                if len(client.get("/api/speech/voices").json()) == 2:
                    break
            else:
                raise AssertionError("voice list was not published")

            client.post(
                "/api/speech/speak",
                json={"text": TEXT, "preferred_voice_name": "Samantha"},
            )

            first = _receive_until(ws, lambda m: m["type"] == "speak")
            assert first["text"] == "Hello world."
            assert first["segment_index"] == 0
            assert first["voice"] == "Samantha"
            session_id = first["session_id"]

            ws.send_json(
                {
                    "type": "boundary",
                    "session_id": session_id,
                    "segment_index": 0,
                    "char_index": 6,
                    "char_length": 6,
                    "name": "word",
                }
            )
            highlight = _receive_until(
                ws, lambda m: m["type"] == "highlight" and m["range"] is not None
            )
            assert highlight["range"] == {"start": 6, "end": 12}
            progress = _receive_until(ws, lambda m: m["type"] == "progress" and m["percent"] > 0)
            assert progress["percent"] == 24

            ws.send_json({"type": "end", "session_id": session_id, "segment_index": 0})
            second = _receive_until(ws, lambda m: m["type"] == "speak")
            assert second["text"] == "How are you?"
            assert second["segment_index"] == 1

            ws.send_json({"type": "end", "session_id": session_id, "segment_index": 1})
            _receive_until(ws, lambda m: m["type"] == "session_end")

            state = client.get("/api/speech/state").json()
            assert state["state"] == "idle"
            assert state["progress"] == 100
            assert state["last_end_reason"] == "completed"
