# ~/capture3d/utils/primitives.py

from capture3d.schemas.detection import (
    Dimensions,
    GeometryKind,
    ModelDescriptor,
    RenderPrimitive,
)

UNIT_DIMENSIONS = Dimensions(width=1, height=1, depth=1)
SEGMENTS = 32


def primitive_for(descriptor: ModelDescriptor) -> RenderPrimitive:
    """Translate a descriptor into the primitive a 3D engine should build.

    Complex shapes have no primitive of their own and fall back to a box
    sized by the descriptor's dimensions.
    """
    dims = descriptor.dimensions or UNIT_DIMENSIONS

    if descriptor.geometry_kind == GeometryKind.SPHERE:
        return RenderPrimitive(
            kind="sphere",
            parameters={
                "radius": 1.0,
                "width_segments": SEGMENTS,
                "height_segments": SEGMENTS,
            },
        )

    if descriptor.geometry_kind == GeometryKind.CYLINDER:
        return RenderPrimitive(
            kind="cylinder",
            parameters={
                "radius_top": dims.width / 2,
                "radius_bottom": dims.width / 2,
                "height": dims.height,
                "radial_segments": SEGMENTS,
            },
        )

    return RenderPrimitive(
        kind="box",
        parameters={
            "width": dims.width,
            "height": dims.height,
            "depth": dims.depth,
        },
    )
