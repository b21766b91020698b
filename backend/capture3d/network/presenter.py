# ~/capture3d/network/presenter.py
import datetime
import logging
from typing import Optional

from capture3d.network.lan_output import LANOutput
from capture3d.network.osc_output import OSCOutput
from capture3d.observers import CaptureObserver

logger = logging.getLogger(__name__)


class NetworkPresenter(CaptureObserver):
    """Publishes capture events to LAN and OSC listeners"""

    def __init__(self, lan: Optional[LANOutput] = None, osc: Optional[OSCOutput] = None):
        self.lan = lan
        self.osc = osc

    def _emit(self, event: str, data: dict):
        if self.lan:
            self.lan.async_send({
                "type": event,
                "timestamp": datetime.datetime.now().isoformat(),
                "data": data,
            })
        if self.osc:
            self.osc.async_send(f"/{event}", data)

    def on_detection(self, result):
        if result is None:
            self._emit("detection", {"label": "", "confidence": 0.0})
        else:
            self._emit("detection", {"label": result.label, "confidence": result.confidence})

    def on_capture_progress(self, percent, side, next_side=None, guidance=None):
        self._emit("capture_progress", {
            "percent": float(percent),
            "side": side,
            "next_side": next_side or "",
            "guidance": guidance or "",
        })

    def on_model_ready(self, descriptor):
        dims = descriptor.dimensions
        self._emit("model_ready", {
            "geometry": descriptor.geometry_kind.value,
            "color": descriptor.color_hex,
            "scale": descriptor.scale,
            "label": descriptor.source_label,
            "width": dims.width if dims else 0.0,
            "height": dims.height if dims else 0.0,
            "depth": dims.depth if dims else 0.0,
            "model_url": descriptor.model_reference_url or "",
        })

    def on_capture_failed(self, reason):
        logger.info(f"Capture failed: {reason}")
        self._emit("capture_failed", {"reason": reason})

    def close(self):
        if self.lan:
            self.lan.close()
        if self.osc:
            self.osc.close()
