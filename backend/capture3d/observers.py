# ~/capture3d/observers.py
import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from capture3d.schemas.detection import DetectionResult, ModelDescriptor

logger = logging.getLogger(__name__)


class CaptureObserver:
    """Receives capture events. Subclasses override what they care about."""

    def on_detection(self, result: Optional[DetectionResult]):
        pass

    def on_capture_progress(
        self,
        percent: float,
        side: str,
        next_side: Optional[str] = None,
        guidance: Optional[str] = None,
    ):
        """``next_side`` and ``guidance`` are None once every side is in"""
        pass

    def on_model_ready(self, descriptor: ModelDescriptor):
        pass

    def on_capture_failed(self, reason: str):
        pass


class ObserverGroup(CaptureObserver):
    """Fans events out; a failing observer is logged and skipped"""

    def __init__(self, observers: Optional[List[CaptureObserver]] = None):
        self.observers = list(observers or [])

    def add(self, observer: CaptureObserver):
        self.observers.append(observer)

    def remove(self, observer: CaptureObserver):
        if observer in self.observers:
            self.observers.remove(observer)

    def _dispatch(self, method: str, *args):
        for observer in list(self.observers):
            try:
                getattr(observer, method)(*args)
            except Exception as e:
                logger.error(f"{type(observer).__name__}.{method} failed: {str(e)}")

    def on_detection(self, result):
        self._dispatch("on_detection", result)

    def on_capture_progress(self, percent, side, next_side=None, guidance=None):
        self._dispatch("on_capture_progress", percent, side, next_side, guidance)

    def on_model_ready(self, descriptor):
        self._dispatch("on_model_ready", descriptor)

    def on_capture_failed(self, reason):
        self._dispatch("on_capture_failed", reason)


def event_payload(event: str, **data: Any) -> Dict[str, Any]:
    return {"type": event, "data": data}


class EventBroadcaster(CaptureObserver):
    """Queues events for websocket subscribers.

    Detection events fire every frame, so they are only forwarded when the
    filtered outcome changes.
    """

    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self.subscribers: Set[asyncio.Queue] = set()
        self._last_detection = None

    def subscribe(self) -> asyncio.Queue:
        queue = asyncio.Queue(maxsize=self.max_queue)
        self.subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self.subscribers.discard(queue)

    def publish(self, payload: Dict[str, Any]):
        for queue in list(self.subscribers):
            # Drop the oldest event if a client is falling behind
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(payload)

    def on_detection(self, result):
        key = (result.label, round(result.confidence, 2)) if result else None
        if key == self._last_detection:
            return
        self._last_detection = key
        self.publish(event_payload(
            "detection",
            detection=result.model_dump() if result else None,
        ))

    def on_capture_progress(self, percent, side, next_side=None, guidance=None):
        self.publish(event_payload(
            "capture_progress",
            percent=percent,
            side=side,
            next_side=next_side,
            guidance=guidance,
        ))

    def on_model_ready(self, descriptor):
        self.publish(event_payload("model_ready", model=descriptor.model_dump(mode="json")))

    def on_capture_failed(self, reason):
        self.publish(event_payload("capture_failed", reason=reason))
