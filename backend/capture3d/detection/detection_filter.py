# ~/capture3d/detection/detection_filter.py
"""Per-frame detection filtering and the continuous-detection timer"""
import logging
import time
from typing import Callable, Iterable, Optional

from capture3d.schemas.detection import DetectionResult

logger = logging.getLogger(__name__)

# Human-related classes never start a capture
DENYLIST = frozenset(["person", "man", "woman", "child", "boy", "girl", "face", "human"])


def is_denied(label: str) -> bool:
    return label.lower() in DENYLIST


def filter_detections(raw: Iterable[DetectionResult]) -> Optional[DetectionResult]:
    """Drop denylisted labels and keep the most confident survivor.

    Returns None when nothing survives. On equal confidence the earlier
    detection wins.
    """
    best = None
    for det in raw:
        if is_denied(det.label):
            continue
        if best is None or det.confidence > best.confidence:
            best = det
    return best


class DetectionDebouncer:
    """Tracks how long a qualifying detection has been held without a break.

    A detection qualifies when its confidence is at or above ``threshold``.
    The timer starts on the first qualifying frame and clears on any frame
    that does not qualify or that arrives while a capture is busy.
    """

    def __init__(
        self,
        threshold: float = 0.70,
        dwell_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.threshold = threshold
        self.dwell_seconds = dwell_seconds
        self.clock = clock
        self.detected_since: Optional[float] = None
        self.label: Optional[str] = None

    def qualifies(self, detection: Optional[DetectionResult]) -> bool:
        return detection is not None and detection.confidence >= self.threshold

    def reset(self):
        self.detected_since = None
        self.label = None

    def held_for(self, now: Optional[float] = None) -> float:
        if self.detected_since is None:
            return 0.0
        now = self.clock() if now is None else now
        return now - self.detected_since

    def update(
        self,
        detection: Optional[DetectionResult],
        busy: bool = False,
        now: Optional[float] = None,
    ) -> bool:
        """Feed one frame's filtered outcome, True means start a capture"""
        if busy or not self.qualifies(detection):
            self.reset()
            return False

        now = self.clock() if now is None else now
        if self.detected_since is None:
            self.detected_since = now
            self.label = detection.label
            logger.debug(f"Qualifying detection started: {detection.label}")
            return False

        self.label = detection.label
        # Whole milliseconds, so 2.1 -> 4.1 counts as the full two seconds
        held_ms = round((now - self.detected_since) * 1000)
        if held_ms >= round(self.dwell_seconds * 1000):
            logger.info(
                f"{detection.label} held for {held_ms}ms, "
                "triggering capture"
            )
            return True
        return False
