# ~/capture3d/camera_factory.py
import asyncio
import logging
from typing import List, Optional, Union

from capture3d.camera.capture import AsyncCameraCapture
from capture3d.errors import CameraAccessError

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = [0, 1, 2, '/dev/video0', '/dev/video1', '/dev/video2']


class CameraFactory:
    @staticmethod
    async def create_camera(
        source: Optional[Union[int, str]] = None,
        max_retries: int = 3,
        preferred_indices: Optional[List[Union[int, str]]] = None,
        width: int = 640,
        height: int = 480,
        retry_delay: float = 1.0,
    ) -> AsyncCameraCapture:
        """Open the first camera that actually delivers frames.

        Args:
            source: Camera tried before the fallback list
            max_retries: Passes over the candidate list
            preferred_indices: Ordered list of fallback camera sources
            width: Requested frame width
            height: Requested frame height
            retry_delay: Seconds to wait between failed attempts

        Returns:
            A started camera

        Raises:
            CameraAccessError: When no candidate produced a frame
        """
        candidates = list(preferred_indices or DEFAULT_SOURCES)
        if source is not None:
            candidates = [source] + [c for c in candidates if c != source]

        last_error = None
        for attempt in range(max_retries):
            for candidate in candidates:
                camera = AsyncCameraCapture(source=candidate, width=width, height=height)
                try:
                    logger.info(f"Attempt {attempt + 1}: Trying camera source {candidate}")
                    await camera.start()

                    # Verify we can actually get a frame
                    test_frame = await camera.get_frame(timeout=2.0)
                    if test_frame is None:
                        raise CameraAccessError("Camera returned no frames")

                    logger.info(f"Successfully initialized camera at source {candidate}")
                    return camera
                except Exception as e:
                    last_error = f"Source {candidate}: {str(e)}"
                    logger.warning(f"Camera initialization failed: {last_error}")
                    await camera.stop()
                    await asyncio.sleep(retry_delay)

        logger.error(f"Failed to initialize any camera after {max_retries} attempts")
        raise CameraAccessError(f"Could not access camera. Last error: {last_error}")
