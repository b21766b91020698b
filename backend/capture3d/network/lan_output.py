# ~/capture3d/network/lan_output.py
import json
import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from pprint import pformat
from typing import Any, Dict

logger = logging.getLogger(__name__)


class LANOutput:
    def __init__(self, host: str = '255.255.255.255', port: int = 5000, protocol: str = 'udp', debug: bool = False):
        """
        Initialize LAN output handler
        :param host: Target host or broadcast address
        :param port: Target port
        :param protocol: 'udp' or 'tcp'
        """
        self.host = host
        self.port = port
        self.protocol = protocol.lower()
        self.debug = debug
        self.executor = ThreadPoolExecutor(max_workers=2)
        self.socket = None

        if self.protocol not in ('udp', 'tcp'):
            raise ValueError(f"Unsupported LAN protocol: {protocol}")
        if self.protocol == 'tcp':
            self._setup_tcp_connection()

    def _setup_tcp_connection(self):
        try:
            self.socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.socket.connect((self.host, self.port))
            logger.info(f"TCP connection established to {self.host}:{self.port}")
        except OSError as e:
            logger.error(f"Failed to establish TCP connection: {str(e)}")
            self.socket = None

    def encode(self, data: Dict[str, Any]) -> bytes:
        return json.dumps(data, default=str).encode('utf-8')

    def send_data(self, data: Dict[str, Any]):
        """Send one JSON document to the LAN target"""
        if self.protocol == 'tcp' and self.socket is None:
            self._setup_tcp_connection()
        try:
            payload = self.encode(data)
            if self.debug:
                logger.debug(f"LAN OUTPUT:\n{pformat(data)}")

            if self.protocol == 'udp':
                with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                    s.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                    s.sendto(payload, (self.host, self.port))
            elif self.socket:
                self.socket.sendall(payload + b'\n')

            logger.debug(f"Sent data to {self.host}:{self.port}")
        except OSError as e:
            logger.error(f"Failed to send LAN data: {str(e)}")
            if self.protocol == 'tcp':
                self._reconnect_tcp()

    def _reconnect_tcp(self):
        if self.socket:
            self.socket.close()
            self.socket = None
        self._setup_tcp_connection()

    def async_send(self, data: Dict[str, Any]):
        """Send data without blocking the event loop"""
        self.executor.submit(self.send_data, data)

    def close(self):
        if self.socket:
            self.socket.close()
        self.executor.shutdown(wait=True)
