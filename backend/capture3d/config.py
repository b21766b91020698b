# ~/capture3d/config.py
"""Runtime settings, read from CAPTURE3D_* environment variables or .env"""
from functools import lru_cache
from typing import Union

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CAPTURE3D_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Classifier
    weights_path: str = "yolov8n.pt"
    detector_confidence: float = 0.25
    detector_iou: float = 0.45
    min_box_size: int = 20
    detection_fps: float = 30.0

    # Auto-start gate
    confidence_threshold: float = 0.70
    dwell_seconds: float = 2.0

    # Capture sequence
    capture_interval: float = 3.0
    synthesis_delay: float = 3.0
    frame_format: str = ".png"

    # Camera
    camera_source: Union[int, str] = 0
    camera_retries: int = 3
    camera_width: int = 640
    camera_height: int = 480

    # Presentation outputs
    lan_enabled: bool = True
    lan_host: str = "255.255.255.255"
    lan_port: int = 5000
    lan_protocol: str = "udp"
    osc_enabled: bool = True
    osc_ip: str = "localhost"
    osc_port: int = 5005
    output_debug: bool = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
