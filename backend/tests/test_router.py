"""Tests for the HTTP surface, with the camera and classifier faked out."""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from capture3d.observers import EventBroadcaster, ObserverGroup
from capture3d.pipeline import CapturePipeline
from capture3d.reconstruction.synthesizer import build_descriptor
from capture3d.routes.router import router
from conftest import FakeCamera, FakeDetector, RecordingObserver, det


@pytest.fixture
def pipeline(settings):
    settings.capture_interval = 60
    return CapturePipeline(
        settings,
        detector=FakeDetector(),
        camera=FakeCamera(),
        observers=ObserverGroup([RecordingObserver()]),
    )


@pytest.fixture
def client(pipeline):
    app = FastAPI()
    app.include_router(router)
    app.state.pipeline = pipeline
    app.state.broadcaster = EventBroadcaster()
    with TestClient(app) as client:
        yield client
        pipeline.scheduler.shutdown()


def test_status_when_idle(client):
    response = client.get("/api/status")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "idle"
    assert body["frames_captured"] == 0
    assert body["camera_active"] is True
    assert body["model"] is None


def test_start_without_object_is_rejected(client):
    response = client.post("/api/capture/start")
    assert response.status_code == 409


def test_capture_then_abort_with_too_few_frames(client, pipeline):
    pipeline.handle_detections([det("cup", 0.9)], now=0.0)

    response = client.post("/api/capture/start")
    assert response.status_code == 200
    assert response.json()["status"] == "capturing"
    assert response.json()["frames_captured"] == 1
    assert response.json()["current_side"] == "right"

    response = client.post("/api/capture/manual")
    assert response.json()["frames_captured"] == 2

    response = client.post("/api/capture/start")
    assert response.status_code == 409

    response = client.post("/api/capture/abort")
    body = response.json()
    assert body["status"] == "idle"
    assert body["last_failure"] == "insufficient-frames"


def test_manual_and_abort_need_a_session(client):
    assert client.post("/api/capture/manual").status_code == 409
    assert client.post("/api/capture/abort").status_code == 409


def test_model_endpoints(client, pipeline):
    assert client.get("/api/model").status_code == 404

    pipeline.scheduler.last_model = build_descriptor("cup")
    body = client.get("/api/model").json()
    assert body["geometry_kind"] == "cylinder"
    assert body["color_hex"] == "#3e8201"
    assert body["dimensions"] == {"width": 1.0, "height": 2.0, "depth": 1.0}

    primitive = client.get("/api/model/primitive").json()
    assert primitive["kind"] == "cylinder"


def test_showcase_lookup(client):
    body = client.get("/api/showcase/cell phone").json()
    assert body["model_url"] == "/models/taj_mahal.glb"


def test_stop_stream_releases_camera(client, pipeline):
    camera = pipeline.camera
    response = client.post("/api/control/stop")
    assert response.status_code == 200
    assert response.json()["camera_active"] is False
    assert camera.stop_calls == 1


def test_detection_toggle(client):
    response = client.post("/api/control/detection", params={"enabled": False})
    assert response.json()["detection_enabled"] is False


def test_missing_pipeline_is_unavailable():
    app = FastAPI()
    app.include_router(router)
    with TestClient(app) as client:
        assert client.get("/api/status").status_code == 503


def test_event_stream_forwards_events_and_drops_closed_clients(client):
    broadcaster = client.app.state.broadcaster
    with client.websocket_connect("/ws/events") as websocket:
        assert len(broadcaster.subscribers) == 1
        client.portal.call(broadcaster.on_capture_failed, "no-object")
        assert websocket.receive_json() == {
            "type": "capture_failed",
            "data": {"reason": "no-object"},
        }

        # No further events are queued, the closed socket must still be noticed
        websocket.close()
        client.portal.call(asyncio.sleep, 0.05)
        assert broadcaster.subscribers == set()
