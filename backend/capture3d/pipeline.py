# ~/capture3d/pipeline.py
"""Detection loop feeding the capture scheduler.

One inference at a time: the next camera frame is only requested after the
previous detection resolved, so a slow model never queues work.
"""
import asyncio
import logging
import time
from concurrent.futures import Executor
from typing import Awaitable, Callable, Iterable, Optional

from capture3d.camera.capture import AsyncCameraCapture
from capture3d.camera_factory import CameraFactory
from capture3d.capture.frame_store import encode_frame
from capture3d.capture.scheduler import CaptureScheduler
from capture3d.config import Settings
from capture3d.detection.detection_filter import DetectionDebouncer, filter_detections
from capture3d.detection.object_detector import ObjectDetector
from capture3d.errors import CameraAccessError, ClassifierInitError, NoQualifyingObjectError
from capture3d.observers import ObserverGroup
from capture3d.reconstruction.synthesizer import ModelSynthesizer, sleep_delay
from capture3d.schemas.detection import (
    CapturedFrame,
    CaptureStatus,
    DetectionResult,
    SessionSnapshot,
)

logger = logging.getLogger(__name__)

CameraOpener = Callable[[Settings], Awaitable[AsyncCameraCapture]]


async def open_camera(settings: Settings) -> AsyncCameraCapture:
    return await CameraFactory.create_camera(
        source=settings.camera_source,
        max_retries=settings.camera_retries,
        width=settings.camera_width,
        height=settings.camera_height,
    )


class CapturePipeline:
    def __init__(
        self,
        settings: Settings,
        detector=None,
        camera=None,
        observers: Optional[ObserverGroup] = None,
        synthesizer: Optional[ModelSynthesizer] = None,
        camera_opener: CameraOpener = open_camera,
        clock: Callable[[], float] = time.monotonic,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings
        self.detector = detector
        self.camera = camera
        self.observers = observers or ObserverGroup()
        self.camera_opener = camera_opener
        self.executor = executor

        self.debouncer = DetectionDebouncer(
            threshold=settings.confidence_threshold,
            dwell_seconds=settings.dwell_seconds,
            clock=clock,
        )
        self.scheduler = CaptureScheduler(
            grab_frame=self._grab_still,
            synthesizer=synthesizer or ModelSynthesizer(sleep_delay(settings.synthesis_delay)),
            observer=self.observers,
            capture_interval=settings.capture_interval,
        )

        self.enabled = True
        self.last_detection: Optional[DetectionResult] = None
        self.error: Optional[str] = None
        self._detection_cleared = False
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def current_object(self) -> Optional[str]:
        if self.debouncer.qualifies(self.last_detection):
            return self.last_detection.label
        return None

    @property
    def is_running(self) -> bool:
        return self._running

    async def load_detector(self):
        """Load the classifier once. A failure is kept as a persistent error."""
        if self.detector is not None:
            return
        loop = asyncio.get_running_loop()
        try:
            self.detector = await loop.run_in_executor(
                self.executor,
                lambda: ObjectDetector(
                    model_path=self.settings.weights_path,
                    conf_threshold=self.settings.detector_confidence,
                    iou_threshold=self.settings.detector_iou,
                    min_box_size=self.settings.min_box_size,
                ),
            )
        except ClassifierInitError as e:
            self.error = str(e)
            raise

    async def start_camera(self):
        if self.camera is not None and self.camera.is_capturing():
            return
        try:
            self.camera = await self.camera_opener(self.settings)
        except CameraAccessError as e:
            self.camera = None
            self.error = str(e)
            raise
        logger.info("Camera activated")

    async def stop_camera(self):
        """Stop the camera; any capture in progress is torn down with it"""
        self.scheduler.shutdown()
        self.debouncer.reset()
        if self.camera is not None:
            await self.camera.stop()
            self.camera = None
        self._clear_detection()
        logger.info("Camera deactivated")

    def start(self):
        if self._running:
            return
        if self.detector is None:
            raise ClassifierInitError(self.error or "Object detection model is not loaded")
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self.run())
        logger.info("Detection loop started")

    async def stop(self):
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.stop_camera()
        logger.info("Detection loop stopped")

    async def run(self):
        interval = 1 / self.settings.detection_fps
        while self._running:
            try:
                if not self.enabled or self.camera is None:
                    self._clear_detection()
                elif self.scheduler.status == CaptureStatus.PROCESSING:
                    pass
                else:
                    frame = await self.camera.get_frame()
                    if frame is not None:
                        await self.process_frame(frame)
            except Exception as e:
                logger.error(f"Error detecting objects: {str(e)}")
                self._clear_detection()
                await asyncio.sleep(1)
            await asyncio.sleep(interval)

    async def process_frame(self, frame) -> Optional[DetectionResult]:
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(self.executor, self.detector.detect, frame)
        return self.handle_detections(raw)

    def handle_detections(
        self, raw: Iterable[DetectionResult], now: Optional[float] = None
    ) -> Optional[DetectionResult]:
        """Filter one frame's detections, notify, and maybe auto-start"""
        filtered = filter_detections(raw)
        self.last_detection = filtered
        self._detection_cleared = False
        self.observers.on_detection(filtered)

        if self.debouncer.qualifies(filtered):
            self.scheduler.track_label(filtered.label)

        if self.debouncer.update(filtered, busy=self.scheduler.busy, now=now):
            self.start_capture()
        return filtered

    def start_capture(self) -> Optional[CapturedFrame]:
        detection = self.last_detection
        if not self.debouncer.qualifies(detection):
            self.observers.on_capture_failed(NoQualifyingObjectError.reason)
            raise NoQualifyingObjectError("No clear object detected")

        frame = self.scheduler.start(detection.label)
        self.debouncer.reset()
        return frame

    def manual_capture(self) -> Optional[CapturedFrame]:
        return self.scheduler.manual_capture()

    def abort_capture(self) -> bool:
        return self.scheduler.abort()

    def set_enabled(self, enabled: bool):
        self.enabled = enabled
        if not enabled:
            self.debouncer.reset()
            self._clear_detection()

    def snapshot(self) -> SessionSnapshot:
        scheduler = self.scheduler
        capturing = scheduler.status == CaptureStatus.CAPTURING
        return SessionSnapshot(
            status=scheduler.status,
            frames_captured=scheduler.frame_count,
            progress=scheduler.progress,
            current_side=scheduler.current_side if capturing else None,
            guidance=scheduler.guidance if capturing else None,
            object_label=scheduler.object_label if scheduler.busy else self.current_object,
            detection=self.last_detection,
            confidence_percent=self.last_detection.confidence * 100 if self.last_detection else 0.0,
            camera_active=self.camera is not None and self.camera.is_capturing(),
            detection_enabled=self.enabled,
            error=self.error,
            last_failure=scheduler.last_failure,
            model=scheduler.last_model,
        )

    def _grab_still(self) -> Optional[str]:
        if self.camera is None:
            return None
        frame = self.camera.get_current_frame()
        if frame is None:
            return None
        return encode_frame(frame, self.settings.frame_format)

    def _clear_detection(self):
        if self._detection_cleared:
            return
        self.last_detection = None
        self._detection_cleared = True
        self.observers.on_detection(None)
