"""Tests for event fan-out to observers and network listeners."""

import asyncio

import pytest

from capture3d.network.presenter import NetworkPresenter
from capture3d.observers import CaptureObserver, EventBroadcaster, ObserverGroup
from capture3d.reconstruction.synthesizer import build_descriptor
from conftest import RecordingObserver, det


class ExplodingObserver(CaptureObserver):
    def on_capture_failed(self, reason):
        raise RuntimeError("presentation layer crashed")


class FakeLAN:
    def __init__(self):
        self.sent = []

    def async_send(self, data):
        self.sent.append(data)

    def close(self):
        pass


class FakeOSC:
    def __init__(self):
        self.sent = []

    def async_send(self, address, data):
        self.sent.append((address, data))

    def close(self):
        pass


def test_group_isolates_failing_observer():
    recorder = RecordingObserver()
    group = ObserverGroup([ExplodingObserver(), recorder])
    group.on_capture_failed("insufficient-frames")
    assert recorder.failures == ["insufficient-frames"]


def test_group_remove():
    recorder = RecordingObserver()
    group = ObserverGroup([recorder])
    group.remove(recorder)
    group.on_capture_progress(50.0, "back")
    assert recorder.progress == []


@pytest.mark.asyncio
async def test_broadcaster_forwards_detection_changes_only():
    broadcaster = EventBroadcaster()
    queue = broadcaster.subscribe()

    broadcaster.on_detection(det("cup", 0.81))
    broadcaster.on_detection(det("cup", 0.811))
    broadcaster.on_detection(None)
    broadcaster.on_capture_progress(100 / 6, "front")

    events = [queue.get_nowait() for _ in range(queue.qsize())]
    assert [e["type"] for e in events] == ["detection", "detection", "capture_progress"]
    assert events[0]["data"]["detection"] == {"label": "cup", "confidence": 0.81}
    assert events[1]["data"]["detection"] is None


@pytest.mark.asyncio
async def test_broadcaster_drops_oldest_for_slow_clients():
    broadcaster = EventBroadcaster(max_queue=2)
    queue = broadcaster.subscribe()
    for reason in ("a", "b", "c"):
        broadcaster.on_capture_failed(reason)

    assert queue.qsize() == 2
    assert queue.get_nowait()["data"]["reason"] == "b"
    broadcaster.unsubscribe(queue)
    broadcaster.on_capture_failed("d")
    assert queue.qsize() == 1


@pytest.mark.asyncio
async def test_broadcaster_serializes_model():
    broadcaster = EventBroadcaster()
    queue = broadcaster.subscribe()
    broadcaster.on_model_ready(build_descriptor("Taj Mahal"))
    event = await asyncio.wait_for(queue.get(), timeout=1)
    assert event["type"] == "model_ready"
    assert event["data"]["model"]["geometry_kind"] == "complex"


def test_presenter_publishes_to_lan_and_osc():
    lan, osc = FakeLAN(), FakeOSC()
    presenter = NetworkPresenter(lan=lan, osc=osc)

    presenter.on_detection(det("cup", 0.9))
    presenter.on_model_ready(build_descriptor("sports ball"))
    presenter.on_capture_failed("no-object")

    assert [m["type"] for m in lan.sent] == ["detection", "model_ready", "capture_failed"]
    assert osc.sent[0] == ("/detection", {"label": "cup", "confidence": 0.9})
    address, payload = osc.sent[1]
    assert address == "/model_ready"
    assert payload["geometry"] == "sphere"
    assert payload["width"] == 0.0
    assert payload["model_url"] == ""
    assert osc.sent[2] == ("/capture_failed", {"reason": "no-object"})


@pytest.mark.asyncio
async def test_progress_event_names_the_next_side():
    broadcaster = EventBroadcaster()
    queue = broadcaster.subscribe()
    broadcaster.on_capture_progress(
        50.0, "back", "left", "Turn to show the left side of the object"
    )
    event = queue.get_nowait()
    assert event["data"] == {
        "percent": 50.0,
        "side": "back",
        "next_side": "left",
        "guidance": "Turn to show the left side of the object",
    }


def test_group_forwards_next_side():
    recorder = RecordingObserver()
    ObserverGroup([recorder]).on_capture_progress(50.0, "back", "left", "Turn left")
    assert recorder.progress == [(50.0, "back")]
    assert recorder.prompts == [("left", "Turn left")]


def test_presenter_progress_carries_guidance():
    lan, osc = FakeLAN(), FakeOSC()
    presenter = NetworkPresenter(lan=lan, osc=osc)

    presenter.on_capture_progress(100 / 3, "right", "back", "Rotate to show the back of the object")
    presenter.on_capture_progress(100.0, "bottom")

    assert lan.sent[0]["data"]["next_side"] == "back"
    assert osc.sent[0] == ("/capture_progress", {
        "percent": pytest.approx(100 / 3),
        "side": "right",
        "next_side": "back",
        "guidance": "Rotate to show the back of the object",
    })
    assert osc.sent[1][1]["next_side"] == ""
    assert osc.sent[1][1]["guidance"] == ""
