# ~/capture3d/capture/sides.py

# Canonical scan order, one capture per side
SIX_SIDES = ("front", "right", "back", "left", "top", "bottom")

SIDE_GUIDANCE = {
    "front": "Position the object facing the camera",
    "right": "Turn the object to show its right side",
    "back": "Rotate to show the back of the object",
    "left": "Turn to show the left side of the object",
    "top": "Tilt to show the top of the object",
    "bottom": "Tilt to show the bottom of the object",
}


def side_at(index: int) -> str:
    return SIX_SIDES[index % len(SIX_SIDES)]


def next_side(index: int) -> str:
    """Side the user should present after the one at ``index``"""
    return side_at(index + 1)


def guidance_for(side: str) -> str:
    return SIDE_GUIDANCE.get(side, "Rotate the object slowly")
