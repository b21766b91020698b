# ~/capture3d/capture/scheduler.py
"""Six-sided capture sequence.

States run ``idle -> capturing -> processing -> idle`` on success, or
``capturing -> idle`` when a session is aborted with too few frames. The
scheduler owns the frame store, the side index and the one pending
automatic-capture timer. Everything runs on the event loop; nothing here
blocks.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from capture3d.capture.frame_store import FrameStore
from capture3d.capture.sides import SIX_SIDES, guidance_for, next_side, side_at
from capture3d.errors import Capture3DError, CaptureInProgressError
from capture3d.observers import CaptureObserver
from capture3d.reconstruction.synthesizer import MIN_FRAMES, ModelSynthesizer
from capture3d.schemas.detection import (
    CapturedFrame,
    CaptureSession,
    CaptureStatus,
    ModelDescriptor,
)

logger = logging.getLogger(__name__)

# Returns an encoded still of whatever the camera sees now, or None
FrameGrabber = Callable[[], Optional[str]]


class CaptureScheduler:
    def __init__(
        self,
        grab_frame: FrameGrabber,
        synthesizer: ModelSynthesizer,
        observer: Optional[CaptureObserver] = None,
        capture_interval: float = 3.0,
    ):
        self.grab_frame = grab_frame
        self.synthesizer = synthesizer
        self.observer = observer or CaptureObserver()
        self.capture_interval = capture_interval

        self.store = FrameStore(capacity=len(SIX_SIDES))
        self.status = CaptureStatus.IDLE
        self.current_side_index = 0
        self.object_label: Optional[str] = None
        self.started_at: Optional[datetime] = None

        # Single slot for the next automatic capture
        self._next_capture: Optional[asyncio.TimerHandle] = None
        self._processing_task: Optional[asyncio.Task] = None

        self.last_session: Optional[CaptureSession] = None
        self.last_model: Optional[ModelDescriptor] = None
        self.last_failure: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.status != CaptureStatus.IDLE

    @property
    def frame_count(self) -> int:
        return len(self.store)

    @property
    def progress(self) -> float:
        return len(self.store) / len(SIX_SIDES) * 100

    @property
    def current_side(self) -> str:
        return side_at(self.current_side_index)

    @property
    def guidance(self) -> str:
        return guidance_for(self.current_side)

    @property
    def pending_capture(self) -> Optional[asyncio.TimerHandle]:
        return self._next_capture

    def session(self) -> CaptureSession:
        return CaptureSession(
            status=self.status,
            frames=list(self.store.frames),
            current_side_index=self.current_side_index,
            started_at=self.started_at or datetime.now(),
            object_label=self.object_label,
        )

    def start(self, label: str) -> CapturedFrame:
        """Begin a session: capture the front immediately, then arm the timer"""
        if self.status != CaptureStatus.IDLE:
            raise CaptureInProgressError(
                f"Cannot start capture while {self.status.value}"
            )

        self._cancel_next_capture()
        self.store.clear()
        self.current_side_index = 0
        self.object_label = label
        self.started_at = datetime.now()
        self.last_failure = None
        self.status = CaptureStatus.CAPTURING
        logger.info(f"Starting 3D capture of {label}")

        frame = self._capture()
        if not self._check_complete():
            self._schedule_next_capture()
        return frame

    def track_label(self, label: str):
        """Follow the object currently in view while capturing"""
        if self.status == CaptureStatus.CAPTURING and label != self.object_label:
            logger.debug(f"Tracked object changed: {self.object_label} -> {label}")
            self.object_label = label

    def manual_capture(self) -> Optional[CapturedFrame]:
        """Capture now and leave the next side to the user.

        The pending automatic capture is cancelled and not re-armed.
        """
        if self.status != CaptureStatus.CAPTURING:
            return None

        self._cancel_next_capture()
        frame = self._capture()
        self._check_complete()
        return frame

    def abort(self) -> bool:
        """Stop capturing and process whatever has been captured so far"""
        if self.status != CaptureStatus.CAPTURING:
            return False

        logger.info(f"Capture aborted after {len(self.store)} frames")
        self._cancel_next_capture()
        self._begin_processing()
        return True

    def shutdown(self):
        """Tear down without notifying: cancel the timer and any processing"""
        self._cancel_next_capture()
        if self._processing_task is not None and not self._processing_task.done():
            self._processing_task.cancel()
        self._processing_task = None
        self._reset()

    def _schedule_next_capture(self):
        self._cancel_next_capture()
        loop = asyncio.get_running_loop()
        self._next_capture = loop.call_later(self.capture_interval, self._on_capture_timer)

    def _cancel_next_capture(self):
        if self._next_capture is not None:
            self._next_capture.cancel()
            self._next_capture = None

    def _on_capture_timer(self):
        self._next_capture = None
        if self.status != CaptureStatus.CAPTURING or self.store.is_full():
            return

        self._capture()
        if not self._check_complete():
            self._schedule_next_capture()

    def _capture(self) -> Optional[CapturedFrame]:
        index = self.current_side_index
        side = side_at(index)
        try:
            image_data = self.grab_frame()
        except Exception as e:
            logger.error(f"Failed to grab {side} frame: {str(e)}")
            image_data = None

        if image_data is None:
            logger.warning(f"No camera frame available for {side} side")
            return None

        # Label with the current side, then advance
        frame = self.store.append(image_data, side)
        self.current_side_index = (index + 1) % len(SIX_SIDES)
        logger.info(f"Captured side: {side} ({len(self.store)}/{len(SIX_SIDES)})")

        if self.store.is_full():
            upcoming, prompt = None, None
        else:
            upcoming = next_side(index)
            prompt = guidance_for(upcoming)
        self.observer.on_capture_progress(self.progress, side, upcoming, prompt)
        return frame

    def _check_complete(self) -> bool:
        if len(self.store) < len(SIX_SIDES):
            return False

        logger.info(f"Captured all {len(SIX_SIDES)} sides, processing...")
        self._cancel_next_capture()
        self._begin_processing()
        return True

    def _begin_processing(self):
        if len(self.store) < MIN_FRAMES:
            logger.warning(
                f"Not enough images: {len(self.store)} captured, need {MIN_FRAMES}"
            )
            self._fail("insufficient-frames")
            return

        self.status = CaptureStatus.PROCESSING
        loop = asyncio.get_running_loop()
        self._processing_task = loop.create_task(self._process())

    async def _process(self):
        label = self.object_label
        try:
            descriptor = await self.synthesizer.synthesize(label, len(self.store))
        except Capture3DError as e:
            logger.error(f"Error creating 3D model: {str(e)}")
            self._fail(getattr(e, "reason", "synthesis-failed"))
        except Exception as e:
            logger.error(f"Unexpected error creating 3D model: {str(e)}")
            self._fail("synthesis-failed")
        else:
            self.last_model = descriptor
            session = self.session()
            session.status = CaptureStatus.COMPLETE
            self.last_session = session
            self._reset()
            logger.info(f"3D model created for {label}")
            self.observer.on_model_ready(descriptor)
        finally:
            if self._processing_task is asyncio.current_task():
                self._processing_task = None

    def _fail(self, reason: str):
        self.last_failure = reason
        self.last_session = self.session()
        self._reset()
        self.observer.on_capture_failed(reason)

    def _reset(self):
        self.status = CaptureStatus.IDLE
        self.store.clear()
        self.current_side_index = 0
