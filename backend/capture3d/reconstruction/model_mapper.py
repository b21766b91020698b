# ~/capture3d/reconstruction/model_mapper.py
"""Map common COCO labels onto the showcase models served to the AR viewer"""
from typing import Dict

from capture3d.schemas.detection import ShowcaseModel

OBJECT_MODEL_MAPPINGS: Dict[str, ShowcaseModel] = {
    "person": ShowcaseModel(
        model_url="/models/monument.glb",
        scale=0.5,
        description="A human figure detected in the scene",
    ),
    "laptop": ShowcaseModel(
        model_url="/models/colosseum.glb",
        scale=0.4,
        description="A laptop computer",
    ),
    "cell phone": ShowcaseModel(
        model_url="/models/taj_mahal.glb",
        scale=0.3,
        description="A mobile phone device",
    ),
    "book": ShowcaseModel(
        model_url="/models/parthenon.glb",
        scale=0.4,
        description="A printed book",
    ),
    "bottle": ShowcaseModel(
        model_url="/models/angkor_wat.glb",
        scale=0.3,
        description="A bottle",
    ),
    "cup": ShowcaseModel(
        model_url="/models/chichen_itza.glb",
        scale=0.25,
        description="A drinking cup",
    ),
    "keyboard": ShowcaseModel(
        model_url="/models/machu_picchu.glb",
        scale=0.4,
        description="A computer keyboard",
    ),
    "mouse": ShowcaseModel(
        model_url="/models/colosseum.glb",
        scale=0.3,
        description="A computer mouse",
    ),
    "remote": ShowcaseModel(
        model_url="/models/parthenon.glb",
        scale=0.35,
        description="A remote control",
    ),
    "chair": ShowcaseModel(
        model_url="/models/taj_mahal.glb",
        scale=0.5,
        description="A chair or seat",
    ),
    "tv": ShowcaseModel(
        model_url="/models/angkor_wat.glb",
        scale=0.45,
        description="A television or monitor",
    ),
    "default": ShowcaseModel(
        model_url="/models/monument.glb",
        scale=0.5,
        description="An object detected in the scene",
    ),
}


def get_model_for_object(label: str) -> ShowcaseModel:
    # Keys are exact COCO class names
    return OBJECT_MODEL_MAPPINGS.get(label, OBJECT_MODEL_MAPPINGS["default"])
