from __future__ import annotations

import asyncio
import base64

import pytest

from fastapi.testclient import TestClient

import web_app

client = TestClient(web_app.app)


def kp_payload(angle_pose):
    return [{"name": k.name, "x": k.x, "y": k.y, "score": k.score} for k in angle_pose]


def test_health():
    assert client.get("/health").json() == {"status": "ok"}


def test_index_serves_page():
    r = client.get("/")
    assert r.status_code == 200
    assert "/ws/live" in r.text


def test_live_socket_counts_rep(make_leg):
    angles = [90] * 10 + [170] * 30 + [90] * 20
    with client.websocket_connect("/ws/live") as ws:
        ws.send_text("not json")
        ws.send_json({"type": "unknown"})
        last = None
        for i, a in enumerate(angles):
            ws.send_json({"type": "pose", "keypoints": kp_payload(make_leg(a)), "timestamp": i * 0.2})
            last = ws.receive_json()
        assert last["rep_count"] == 1
        assert last["status"] == "tracking"
        assert last["angle_feedback"]["text"] == "Rep 1: Excellent extension!"
        ws.send_json({"type": "stop"})
        summary = ws.receive_json()
    assert summary["type"] == "summary"
    assert summary["rep_count"] == 1
    assert summary["last_rep"]["extension_tier"] == "ok"


def test_live_socket_no_person():
    with client.websocket_connect("/ws/live") as ws:
        ws.send_json({"type": "pose", "keypoints": None})
        r = ws.receive_json()
        assert r["status"] == "undetected"
        assert r["rep_count"] == 0
        ws.send_json({"type": "stop"})
        ws.receive_json()


def test_undecodable_image_is_skipped():
    bogus = base64.b64encode(b"not an image").decode()
    with client.websocket_connect("/ws/live") as ws:
        ws.send_json({"image": bogus})
        ws.send_json({"type": "pose", "keypoints": None, "timestamp": 1.0})
        r = ws.receive_json()
        assert r["status"] == "undetected"
        ws.send_json({"type": "stop"})
        ws.receive_json()


def test_data_url_without_comma_is_skipped():
    with client.websocket_connect("/ws/live") as ws:
        ws.send_json({"image": "data:garbage"})
        ws.send_json({"type": "pose", "keypoints": None, "timestamp": 1.0})
        r = ws.receive_json()
        assert r["status"] == "undetected"
        ws.send_json({"type": "stop"})
        ws.receive_json()


def test_non_list_keypoints_are_treated_as_no_person():
    with client.websocket_connect("/ws/live") as ws:
        ws.send_json({"type": "pose", "keypoints": 5, "timestamp": 0.0})
        assert ws.receive_json()["status"] == "undetected"
        ws.send_json({"type": "pose", "keypoints": {"name": "right_knee"}, "timestamp": 0.1})
        assert ws.receive_json()["status"] == "undetected"
        ws.send_json({"type": "stop"})
        ws.receive_json()


class ConnectionClosedOK(Exception):
    pass


class _ClosingSocket:
    def __init__(self, exc: Exception):
        self.exc = exc

    async def accept(self) -> None:
        pass

    async def receive_text(self) -> str:
        raise self.exc


def test_normal_close_ends_session_quietly():
    asyncio.run(web_app.live_socket(_ClosingSocket(ConnectionClosedOK("received 1000 (OK)"))))


def test_unexpected_errors_propagate():
    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(web_app.live_socket(_ClosingSocket(RuntimeError("boom"))))
