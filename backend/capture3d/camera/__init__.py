# ~/capture3d/camera/__init__.py
from .capture import AsyncCameraCapture

__all__ = [
    'AsyncCameraCapture',
]
