# ~/capture3d/detection/object_detector.py
import logging
from typing import List

import numpy as np
from ultralytics import YOLO

from capture3d.errors import ClassifierInitError
from capture3d.schemas.detection import DetectionResult

logger = logging.getLogger(__name__)


class ObjectDetector:
    def __init__(
        self,
        model_path: str = "yolov8n.pt",
        conf_threshold: float = 0.25,
        iou_threshold: float = 0.45,
        min_box_size: int = 20,
    ):
        try:
            self.model = YOLO(model_path)
        except Exception as e:
            logger.error(f"Failed to load detection model {model_path}: {str(e)}")
            raise ClassifierInitError(
                f"Failed to load object detection model '{model_path}'"
            ) from e

        self.class_names = self.model.names
        self.conf_threshold = conf_threshold
        self.iou_threshold = iou_threshold
        # Boxes smaller than this in either direction are noise
        self.min_box_size = min_box_size
        logger.info(f"Loaded detection model {model_path} ({len(self.class_names)} classes)")

    def detect(self, image: np.ndarray) -> List[DetectionResult]:
        """Classify objects in a frame, one (label, confidence) per box"""
        results = self.model(
            image,
            conf=self.conf_threshold,
            iou=self.iou_threshold,
            agnostic_nms=True,
            max_det=100,
            verbose=False
        )

        detections = []
        for result in results:
            for box in result.boxes:
                x1, y1, x2, y2 = map(int, box.xyxy[0].tolist())
                if (x2 - x1) < self.min_box_size or (y2 - y1) < self.min_box_size:
                    continue

                detections.append(DetectionResult(
                    label=self.class_names[int(box.cls[0])],
                    confidence=min(max(float(box.conf[0]), 0.0), 1.0)
                ))

        return detections
