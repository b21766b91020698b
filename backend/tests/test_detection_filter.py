"""Tests for per-frame detection filtering and the auto-start timer."""

import pytest

from capture3d.detection.detection_filter import (
    DENYLIST,
    DetectionDebouncer,
    filter_detections,
    is_denied,
)
from conftest import FakeClock, det


def test_keeps_most_confident_allowed_detection():
    raw = [det("person", 0.95), det("cup", 0.82)]
    assert filter_detections(raw) == det("cup", 0.82)


@pytest.mark.parametrize("label", sorted(DENYLIST))
@pytest.mark.parametrize("confidence", [0.0, 0.7, 1.0])
def test_denylisted_labels_never_survive(label, confidence):
    assert filter_detections([det(label, confidence)]) is None


def test_denylist_ignores_case():
    assert is_denied("Person")
    assert filter_detections([det("FACE", 0.99)]) is None


def test_empty_frame_yields_none():
    assert filter_detections([]) is None


def test_filter_is_pure():
    raw = [det("bottle", 0.4), det("woman", 0.9), det("book", 0.75)]
    first = filter_detections(raw)
    second = filter_detections(raw)
    assert first == second == det("book", 0.75)
    assert len(raw) == 3


def test_equal_confidence_keeps_first():
    assert filter_detections([det("cup", 0.8), det("vase", 0.8)]).label == "cup"


class TestDetectionDebouncer:
    def setup_method(self):
        self.clock = FakeClock()
        self.debouncer = DetectionDebouncer(threshold=0.70, dwell_seconds=2.0, clock=self.clock)

    def test_threshold_boundary_qualifies(self):
        assert self.debouncer.qualifies(det("cup", 0.70))
        assert not self.debouncer.qualifies(det("cup", 0.69))
        assert not self.debouncer.qualifies(None)

    def test_triggers_after_dwell(self):
        assert not self.debouncer.update(det("cup", 0.85))
        self.clock.advance(1.0)
        assert not self.debouncer.update(det("cup", 0.85))
        self.clock.advance(1.1)
        assert self.debouncer.update(det("cup", 0.85))

    def test_exactly_two_seconds_triggers(self):
        self.debouncer.update(det("cup", 0.85), now=10.0)
        assert self.debouncer.update(det("cup", 0.85), now=12.0)

    def test_two_seconds_with_float_drift_triggers(self):
        # 4.1 - 2.1 is 1.9999999999999996 in floating point
        self.debouncer.update(det("cup", 0.85), now=2.1)
        assert not self.debouncer.update(det("cup", 0.85), now=4.0)
        assert self.debouncer.update(det("cup", 0.85), now=4.1)

    def test_break_resets_timer(self):
        self.debouncer.update(det("cup", 0.85), now=0.0)
        self.debouncer.update(None, now=1.5)
        assert self.debouncer.detected_since is None
        assert not self.debouncer.update(det("cup", 0.85), now=2.1)
        assert self.debouncer.held_for(now=3.0) == pytest.approx(0.9)

    def test_low_confidence_resets_timer(self):
        self.debouncer.update(det("cup", 0.85), now=0.0)
        self.debouncer.update(det("cup", 0.5), now=1.0)
        assert not self.debouncer.update(det("cup", 0.85), now=2.5)

    def test_busy_never_triggers(self):
        self.debouncer.update(det("cup", 0.85), now=0.0)
        assert not self.debouncer.update(det("cup", 0.85), busy=True, now=5.0)
        assert self.debouncer.detected_since is None
