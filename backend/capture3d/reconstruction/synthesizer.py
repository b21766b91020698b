# ~/capture3d/reconstruction/synthesizer.py
"""Label-keyed model synthesis.

No geometry is recovered from pixel data. A completed capture is turned into a
placeholder descriptor (geometry kind, color, scale, dimensions) by looking the
detected label up in a fixed table. The captured frames only have to clear a
minimum count.
"""
import asyncio
import logging
from typing import Awaitable, Callable, NamedTuple, Optional, Tuple

from capture3d.errors import InsufficientFramesError, SynthesisError
from capture3d.schemas.detection import Dimensions, GeometryKind, ModelDescriptor

logger = logging.getLogger(__name__)

MIN_FRAMES = 3

DelayStrategy = Callable[[], Awaitable[None]]


class LabelGroup(NamedTuple):
    name: str
    terms: Tuple[str, ...]
    geometry_kind: GeometryKind
    scale: float
    dimensions: Optional[Dimensions] = None
    model_reference_url: Optional[str] = None
    # Per-term overrides of ``dimensions``
    term_dimensions: Tuple[Tuple[str, Dimensions], ...] = ()

    def dimensions_for(self, term: str) -> Optional[Dimensions]:
        for candidate, dims in self.term_dimensions:
            if candidate == term:
                return dims
        return self.dimensions


LABEL_GROUPS: Tuple[LabelGroup, ...] = (
    LabelGroup(
        name="colosseum",
        terms=("colosseum", "rome", "roman", "amphitheatre"),
        geometry_kind=GeometryKind.COMPLEX,
        scale=1.0,
        model_reference_url="/models/colosseum.glb",
    ),
    LabelGroup(
        name="taj-mahal",
        terms=("taj mahal", "india", "agra", "mausoleum"),
        geometry_kind=GeometryKind.COMPLEX,
        scale=1.0,
        model_reference_url="/models/taj_mahal.glb",
    ),
    LabelGroup(
        name="parthenon",
        terms=("parthenon", "athens", "greek", "temple"),
        geometry_kind=GeometryKind.COMPLEX,
        scale=1.0,
        model_reference_url="/models/parthenon.glb",
    ),
    LabelGroup(
        name="container",
        terms=("cup", "bottle", "vase", "wine glass", "glass"),
        geometry_kind=GeometryKind.CYLINDER,
        scale=0.8,
        dimensions=Dimensions(width=1, height=2, depth=1),
    ),
    LabelGroup(
        name="flat-device",
        terms=("book", "cell phone", "remote", "keyboard", "laptop"),
        geometry_kind=GeometryKind.BOX,
        scale=0.7,
        dimensions=Dimensions(width=1.5, height=0.3, depth=1),
        term_dimensions=(
            ("book", Dimensions(width=2, height=0.3, depth=1.5)),
            ("cell phone", Dimensions(width=1, height=0.1, depth=2)),
            ("laptop", Dimensions(width=2, height=0.2, depth=1.5)),
        ),
    ),
    LabelGroup(
        name="round",
        terms=("apple", "orange", "ball", "sports ball"),
        geometry_kind=GeometryKind.SPHERE,
        scale=0.6,
    ),
    LabelGroup(
        name="furniture",
        terms=("chair", "table", "desk"),
        geometry_kind=GeometryKind.COMPLEX_FURNITURE,
        scale=1.2,
        dimensions=Dimensions(width=2, height=2, depth=2),
    ),
)

DEFAULT_GROUP = LabelGroup(
    name="default",
    terms=(),
    geometry_kind=GeometryKind.BOX,
    scale=0.9,
)


def _utf16_units(text: str):
    data = text.encode("utf-16-be", "surrogatepass")
    for i in range(0, len(data), 2):
        yield (data[i] << 8) | data[i + 1]


def color_from_label(label: str) -> str:
    """Stable pseudo-random color for a label, as ``#rrggbb``.

    Rolling hash ``hash = c + ((hash << 5) - hash)`` over the UTF-16 code
    units, kept to 32 bits, then the low three bytes become R, G and B.
    Case matters: "Cup" and "cup" get different colors.
    """
    value = 0
    for unit in _utf16_units(label):
        value = (unit + (value << 5) - value) & 0xFFFFFFFF

    color = "#"
    for i in range(3):
        color += f"{(value >> (i * 8)) & 0xFF:02x}"
    return color


def classify_label(label: str) -> Tuple[LabelGroup, str]:
    """Return the group the lower-cased label belongs to, and that term"""
    term = label.lower()
    for group in LABEL_GROUPS:
        if term in group.terms:
            return group, term
    return DEFAULT_GROUP, term


def build_descriptor(label: str) -> ModelDescriptor:
    group, term = classify_label(label)
    return ModelDescriptor(
        geometry_kind=group.geometry_kind,
        color_hex=color_from_label(label),
        scale=group.scale,
        source_label=label,
        dimensions=group.dimensions_for(term),
        model_reference_url=group.model_reference_url,
    )


def sleep_delay(seconds: float) -> DelayStrategy:
    async def _delay():
        await asyncio.sleep(seconds)
    return _delay


async def no_delay():
    return None


class ModelSynthesizer:
    """Asynchronous front for ``build_descriptor`` with the frame-count rule.

    The delay strategy stands in for reconstruction work; pass ``no_delay``
    to resolve on the next loop iteration.
    """

    def __init__(self, delay: Optional[DelayStrategy] = None, min_frames: int = MIN_FRAMES):
        self.delay = delay or no_delay
        self.min_frames = min_frames

    async def synthesize(self, label: str, frame_count: int) -> ModelDescriptor:
        if frame_count < self.min_frames:
            raise InsufficientFramesError(frame_count, self.min_frames)

        logger.info(f"Creating 3D model for {label} from {frame_count} images")
        try:
            await self.delay()
            descriptor = build_descriptor(label)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise SynthesisError(f"Model synthesis failed for '{label}': {str(e)}") from e

        logger.info(
            f"Generated {descriptor.geometry_kind.value} model for {label} "
            f"(color={descriptor.color_hex}, scale={descriptor.scale})"
        )
        return descriptor
