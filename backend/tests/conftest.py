"""Shared fakes for the capture pipeline tests."""

import asyncio

import numpy as np
import pytest

from capture3d.config import Settings
from capture3d.observers import CaptureObserver
from capture3d.schemas.detection import DetectionResult

STILL = "data:image/png;base64,iVBORw0KGgo="


class FakeCamera:
    def __init__(self, frame=None):
        self.frame = frame if frame is not None else np.full((48, 64, 3), 127, dtype=np.uint8)
        self.running = True
        self.stop_calls = 0

    async def get_frame(self, timeout: float = 1.0):
        await asyncio.sleep(0)
        return self.frame.copy() if self.running else None

    def get_current_frame(self):
        return self.frame.copy() if self.running else None

    def is_capturing(self):
        return self.running

    async def stop(self):
        self.running = False
        self.stop_calls += 1


class FakeDetector:
    """Returns the same detections for every frame until told otherwise"""

    def __init__(self, detections=None):
        self.detections = list(detections or [])
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        return list(self.detections)


class RecordingObserver(CaptureObserver):
    def __init__(self):
        self.detections = []
        self.progress = []
        self.prompts = []
        self.models = []
        self.failures = []
        self.finished = asyncio.Event()

    def on_detection(self, result):
        self.detections.append(result)

    def on_capture_progress(self, percent, side, next_side=None, guidance=None):
        self.progress.append((percent, side))
        self.prompts.append((next_side, guidance))

    def on_model_ready(self, descriptor):
        self.models.append(descriptor)
        self.finished.set()

    def on_capture_failed(self, reason):
        self.failures.append(reason)
        self.finished.set()


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def det(label: str, confidence: float) -> DetectionResult:
    return DetectionResult(label=label, confidence=confidence)


@pytest.fixture
def settings():
    return Settings(
        capture_interval=0.05,
        synthesis_delay=0.0,
        dwell_seconds=2.0,
        confidence_threshold=0.70,
        detection_fps=200.0,
        lan_enabled=False,
        osc_enabled=False,
    )


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def clock():
    return FakeClock()
