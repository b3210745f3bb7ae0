"""
Hardware Map - registry of named camera devices.
"""

import logging
from threading import Lock
from typing import Dict, List, Mapping

import cv2

from core.camera_manager import CameraConfig
from core.enums import CameraDirection
from core.exceptions import CameraNotFoundError

logger = logging.getLogger(__name__)


class HardwareMap:
    """Named camera devices configured on the robot"""

    def __init__(self):
        self._devices: Dict[str, CameraConfig] = {}
        self.lock = Lock()

    @classmethod
    def from_mapping(cls, webcams: Mapping[str, int]) -> "HardwareMap":
        """Build a hardware map from {webcam name: device index}."""
        hardware_map = cls()
        for name, index in webcams.items():
            hardware_map.register(name, CameraConfig.webcam(name, index))
        return hardware_map

    @classmethod
    def discover(cls, name_prefix: str = "Webcam", max_devices: int = 5) -> "HardwareMap":
        """
        Probe USB device indices and register every camera that opens.

        Devices are named "<prefix> 1", "<prefix> 2", ... in index order.
        """
        hardware_map = cls()
        for index in range(max_devices):
            cap = cv2.VideoCapture(index)
            try:
                if cap.isOpened():
                    name = f"{name_prefix} {len(hardware_map) + 1}"
                    hardware_map.register(name, CameraConfig.webcam(name, index))
            finally:
                cap.release()
        logger.info(f"Discovered cameras: {hardware_map.names()}")
        return hardware_map

    def register(self, name: str, device: CameraConfig):
        with self.lock:
            if name in self._devices:
                logger.warning(f"Replacing hardware device {name}")
            self._devices[name] = device

    def get(self, name: str) -> CameraConfig:
        """
        Look up a camera by name.

        Raises:
            CameraNotFoundError: If no device with that name is registered
        """
        with self.lock:
            device = self._devices.get(name)
        if device is None:
            raise CameraNotFoundError(name)
        return device

    def names(self) -> List[str]:
        with self.lock:
            return list(self._devices)

    def __contains__(self, name: str) -> bool:
        with self.lock:
            return name in self._devices

    def __len__(self) -> int:
        with self.lock:
            return len(self._devices)

    @staticmethod
    def builtin_camera(direction: CameraDirection) -> CameraConfig:
        """Built-in cameras are always present and selected by direction."""
        return CameraConfig.builtin(direction)
