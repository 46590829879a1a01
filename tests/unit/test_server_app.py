# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path

from fastapi.testclient import TestClient

from config import AppConfig
from server.app import create_app
from session.gateway import SessionGateway


def make_config(static_dir: Path) -> AppConfig:
    return AppConfig(
        env="test",
        log_level="INFO",
        backend_base_url="http://127.0.0.1:9",
        resolve_timeout_s=0.5,
        static_dir=str(static_dir),
        enable_json_logs=True,
    )


def test_health(tmp_path: Path):
    with TestClient(create_app(make_config(tmp_path))) as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_greeting_asset_is_served(tmp_path: Path):
    (tmp_path / "shevanta_greeting.wav").write_bytes(b"RIFF0000WAVE")

    with TestClient(create_app(make_config(tmp_path))) as client:
        resp = client.get("/shevanta_greeting.wav")

    assert resp.status_code == 200
    assert resp.content == b"RIFF0000WAVE"


def test_websocket_session_greets_silently_without_capabilities(tmp_path: Path):
    with TestClient(create_app(make_config(tmp_path))) as client:
        with client.websocket_connect("/ws") as ws:
            init = ws.receive_json()
            assert init["type"] == "SESSION_INIT"

            ws.send_json({
                "type": "CLIENT_READY",
                "capabilities": {},
                "permission": "prompt",
            })

            modes = []
            while modes[-1:] != ["IDLE"]:
                msg = ws.receive_json()
                if msg["type"] == "STATE":
                    modes.append(msg["mode"])

    assert modes == ["SPEAKING", "IDLE"]


def test_websocket_fatal_error_is_logged_with_timestamp(tmp_path: Path, monkeypatch):
    logged: list[dict] = []
    monkeypatch.setattr("server.routes.log_event", logged.append)

    async def broken(self, text: str):
        raise RuntimeError("boom")

    monkeypatch.setattr(SessionGateway, "on_json_message", broken)

    with TestClient(create_app(make_config(tmp_path))) as client:
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json()["type"] == "SESSION_INIT"
            ws.send_json({"type": "CLIENT_READY"})

    (fatal,) = [e for e in logged if e["event_type"] == "WS_FATAL_ERROR"]
    assert isinstance(fatal["ts_ms"], int)
    assert fatal["exception"] == "RuntimeError"
