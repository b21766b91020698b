# ~/capture3d/schemas/detection.py

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class CaptureStatus(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    PROCESSING = "processing"
    COMPLETE = "complete"


class GeometryKind(str, Enum):
    BOX = "box"
    SPHERE = "sphere"
    CYLINDER = "cylinder"
    COMPLEX = "complex"
    COMPLEX_FURNITURE = "complex-furniture"


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: float
    height: float
    depth: float


class ModelDescriptor(BaseModel):
    """Placeholder 3D representation built for a completed capture"""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    geometry_kind: GeometryKind
    color_hex: str = Field(pattern=r"^#[0-9a-f]{6}$")
    scale: float = Field(gt=0)
    source_label: str
    dimensions: Optional[Dimensions] = None
    model_reference_url: Optional[str] = None


class CapturedFrame(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_data: str  # data URI
    side_label: str


class CaptureSession(BaseModel):
    status: CaptureStatus = CaptureStatus.IDLE
    frames: List[CapturedFrame] = []
    current_side_index: int = Field(default=0, ge=0, lt=6)
    started_at: datetime
    object_label: Optional[str] = None


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    status: CaptureStatus
    frames_captured: int
    progress: float
    current_side: Optional[str] = None
    guidance: Optional[str] = None
    object_label: Optional[str] = None
    detection: Optional[DetectionResult] = None
    confidence_percent: float = 0.0
    camera_active: bool = False
    detection_enabled: bool = True
    error: Optional[str] = None
    last_failure: Optional[str] = None
    model: Optional[ModelDescriptor] = None


class ShowcaseModel(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_url: str
    scale: float
    description: str


class RenderPrimitive(BaseModel):
    kind: str
    parameters: dict
