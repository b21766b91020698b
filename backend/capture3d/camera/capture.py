# ~/capture3d/camera/capture.py
import asyncio
import logging
from typing import Optional, Union

import cv2
import numpy as np

from capture3d.errors import CameraAccessError

logger = logging.getLogger(__name__)


class AsyncCameraCapture:
    """OpenCV camera read on a background task, newest frame wins.

    Frames stay in OpenCV's BGR order, which is what both the detector and
    the still encoder expect.
    """

    def __init__(self, source: Union[str, int] = 0, width: int = 640, height: int = 480):
        self.source = source
        self.target_width = width
        self.target_height = height
        self.cap = None
        self.frame_queue = asyncio.Queue(maxsize=1)
        self._running = False
        self._current_frame = None
        self._capture_task = None

    async def start(self):
        """Open the camera and start the read loop"""
        if self._running:
            logger.warning("Camera is already capturing")
            return

        source = int(self.source) if str(self.source).isdigit() else self.source
        self.cap = cv2.VideoCapture(source)
        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            raise CameraAccessError(f"Could not open camera source {self.source}")

        # Not every backend honours these
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.target_width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.target_height)

        self._running = True
        self._capture_task = asyncio.create_task(self._capture_loop())
        logger.info(f"Async camera started (source: {self.source})")

    async def stop(self):
        """Stop the read loop and release every camera handle"""
        if not self._running and self.cap is None:
            return

        self._running = False
        if self._capture_task:
            await self._capture_task
            self._capture_task = None
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        self._current_frame = None
        logger.info("Async camera stopped")

    def is_capturing(self) -> bool:
        return self._running

    async def _capture_loop(self):
        loop = asyncio.get_running_loop()
        while self._running:
            try:
                ret, frame = await loop.run_in_executor(None, self.cap.read)
                if not ret or not self._is_valid_frame(frame):
                    await asyncio.sleep(0.01)
                    continue

                # Skip queue if consumer is slow
                if self.frame_queue.full():
                    self.frame_queue.get_nowait()
                self.frame_queue.put_nowait(frame)
                self._current_frame = frame

                await asyncio.sleep(0)
            except Exception as e:
                logger.error(f"Capture error: {str(e)}")
                await asyncio.sleep(0.1)

    async def get_frame(self, timeout: float = 1.0) -> Optional[np.ndarray]:
        """Wait for the next frame, None on timeout or when stopped"""
        if not self._running:
            return None

        try:
            frame = await asyncio.wait_for(self.frame_queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Timeout while waiting for frame")
            return None
        return frame if self._is_valid_frame(frame) else None

    def get_current_frame(self) -> Optional[np.ndarray]:
        """Most recent frame, without waiting"""
        if not self._running or self._current_frame is None:
            return None
        return self._current_frame.copy()

    @staticmethod
    def _is_valid_frame(frame: np.ndarray) -> bool:
        return (frame is not None and
                isinstance(frame, np.ndarray) and
                frame.size > 0 and
                frame.shape[0] > 0 and
                frame.shape[1] > 0)
