# ~/capture3d/errors.py
"""Exceptions raised by the capture pipeline.

Every failure is caught at a component boundary and turned into state plus a
notification, so none of these are fatal to the running service.
"""


class Capture3DError(Exception):
    """Base class for all capture3d errors"""


class NoQualifyingObjectError(Capture3DError):
    """No detection cleared the denylist and the confidence threshold"""

    reason = "no-object"


class InsufficientFramesError(Capture3DError):
    """Fewer frames were captured than a model needs"""

    reason = "insufficient-frames"

    def __init__(self, frame_count: int, minimum: int):
        super().__init__(
            f"Not enough images: got {frame_count}, need at least {minimum}"
        )
        self.frame_count = frame_count
        self.minimum = minimum


class SynthesisError(Capture3DError):
    """Model synthesis failed, the caller may retry"""

    reason = "synthesis-failed"


class CameraAccessError(Capture3DError):
    """The camera could not be opened or stopped delivering frames"""


class ClassifierInitError(Capture3DError):
    """The object detection model could not be loaded"""


class CaptureInProgressError(Capture3DError):
    """A capture session is already running"""


class FrameStoreFullError(Capture3DError):
    """All six sides have already been captured"""
