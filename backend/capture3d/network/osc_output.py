# ~/capture3d/network/osc_output.py
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Union

from pythonosc import udp_client

logger = logging.getLogger(__name__)


class OSCOutput:
    def __init__(self, ip: str = "localhost", port: int = 5005, debug: bool = False):
        """
        Initialize OSC output handler
        :param ip: Target IP address
        :param port: Target OSC port
        """
        self.ip = ip
        self.port = port
        self.debug = debug
        self.executor = ThreadPoolExecutor(max_workers=2)
        try:
            self.client = udp_client.SimpleUDPClient(ip, port)
            logger.info(f"Initialized OSC client for {ip}:{port}")
        except OSError as e:
            logger.error(f"Failed to initialize OSC client: {str(e)}")
            self.client = None

    def send_data(self, address: str, data: Union[Dict[str, Any], List[Any], Any]):
        """Send data via OSC, one message per key for dictionaries"""
        if not self.client:
            logger.warning("Attempting to reconnect OSC client")
            try:
                self.client = udp_client.SimpleUDPClient(self.ip, self.port)
            except OSError as e:
                logger.error(f"OSC reconnect failed: {str(e)}")
                return

        if self.debug:
            logger.debug(f"OSC {self.ip}:{self.port} {address} {data}")

        try:
            if isinstance(data, dict):
                for key, value in data.items():
                    self._send_single_message(f"{address}/{key}", value)
            elif isinstance(data, list):
                self.client.send_message(address, data)
            else:
                self._send_single_message(address, data)
            logger.debug(f"Sent OSC data to {address}")
        except OSError as e:
            logger.error(f"Failed to send OSC data: {str(e)}")

    def _send_single_message(self, address: str, value: Any):
        # OSC has no null, numpy scalars need unwrapping
        if value is None:
            value = ""
        elif hasattr(value, 'item'):
            value = value.item()
        self.client.send_message(address, value)

    def async_send(self, address: str, data: Union[Dict[str, Any], List[Any], Any]):
        if self.client:
            self.executor.submit(self.send_data, address, data)

    def close(self):
        self.executor.shutdown(wait=True)
        logger.info("OSC output closed")
