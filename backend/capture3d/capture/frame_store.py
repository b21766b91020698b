# ~/capture3d/capture/frame_store.py
import base64
import logging
from typing import Tuple

import cv2
import numpy as np

from capture3d.capture.sides import SIX_SIDES
from capture3d.errors import FrameStoreFullError
from capture3d.schemas.detection import CapturedFrame

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


def encode_frame(frame: np.ndarray, fmt: str = ".png") -> str:
    """Serialize a video frame to a still-image data URI"""
    if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0:
        raise ValueError("Cannot encode an empty frame")

    mime = MIME_TYPES.get(fmt.lower())
    if mime is None:
        raise ValueError(f"Unsupported image format: {fmt}")

    ok, buffer = cv2.imencode(fmt, frame)
    if not ok:
        raise ValueError(f"OpenCV failed to encode frame as {fmt}")

    payload = base64.b64encode(buffer.tobytes()).decode("ascii")
    return f"data:{mime};base64,{payload}"


class FrameStore:
    """Append-only sequence of captured stills, at most one per side"""

    def __init__(self, capacity: int = len(SIX_SIDES)):
        self.capacity = capacity
        self._frames = []

    def append(self, image_data: str, side_label: str) -> CapturedFrame:
        if self.is_full():
            raise FrameStoreFullError(
                f"Frame store already holds {self.capacity} frames"
            )
        if any(f.side_label == side_label for f in self._frames):
            raise ValueError(f"Side '{side_label}' was already captured")

        frame = CapturedFrame(image_data=image_data, side_label=side_label)
        self._frames.append(frame)
        logger.debug(f"Stored {side_label} frame ({len(self._frames)}/{self.capacity})")
        return frame

    def clear(self):
        self._frames = []

    def is_full(self) -> bool:
        return len(self._frames) >= self.capacity

    @property
    def frames(self) -> Tuple[CapturedFrame, ...]:
        return tuple(self._frames)

    def __len__(self) -> int:
        return len(self._frames)
