"""
Camera handles - wraps webcams and built-in cameras behind one capture interface
"""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Optional

import cv2
import numpy as np

from core.constants import CameraConstants
from core.enums import CameraDirection, CameraType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraConfig:
    """Camera configuration"""
    id: str
    name: str
    type: CameraType
    source: Any  # device index
    resolution: tuple = (CameraConstants.DEFAULT_IMAGE_WIDTH, CameraConstants.DEFAULT_IMAGE_HEIGHT)
    fps: int = CameraConstants.DEFAULT_FPS

    @classmethod
    def webcam(cls, name: str, index: int, **kwargs) -> "CameraConfig":
        return cls(id=f"webcam_{index}", name=name, type=CameraType.WEBCAM, source=index, **kwargs)

    @classmethod
    def builtin(cls, direction: CameraDirection, **kwargs) -> "CameraConfig":
        return cls(
            id=f"builtin_{direction.value}",
            name=f"Built-in camera ({direction.value})",
            type=CameraType.BUILTIN,
            source=CameraConstants.BUILTIN_CAMERA_INDEX[direction],
            **kwargs,
        )

    def with_resolution(self, width: int, height: int, fps: Optional[int] = None) -> "CameraConfig":
        return CameraConfig(
            id=self.id,
            name=self.name,
            type=self.type,
            source=self.source,
            resolution=(width, height),
            fps=fps or self.fps,
        )


class Camera:
    """Single capture device"""

    def __init__(self, config: CameraConfig):
        self.config = config
        self.cap = None
        self.connected = False
        self.lock = Lock()
        self.last_capture_time = 0.0

    def connect(self) -> bool:
        """Connect to camera"""
        try:
            with self.lock:
                self.cap = cv2.VideoCapture(self.config.source)

                if self.cap and self.cap.isOpened():
                    self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.resolution[0])
                    self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.resolution[1])
                    self.cap.set(cv2.CAP_PROP_FPS, self.config.fps)

                    self.connected = True
                    logger.info(f"Camera {self.config.name} connected")
                    return True

                if self.cap is not None:
                    self.cap.release()
                    self.cap = None
                return False

        except cv2.error as e:
            logger.error(f"Failed to connect camera {self.config.name}: {e}")
            return False

    def disconnect(self):
        """Disconnect camera"""
        with self.lock:
            if self.cap:
                self.cap.release()
                self.cap = None
            self.connected = False
            logger.info(f"Camera {self.config.name} disconnected")

    def capture(self) -> Optional[np.ndarray]:
        """Capture single frame"""
        if not self.connected:
            return None

        with self.lock:
            if self.cap and self.cap.isOpened():
                ret, frame = self.cap.read()
                if ret:
                    self.last_capture_time = time.time()
                    return frame

        return None

    def __repr__(self) -> str:
        return f"Camera({self.config.name!r}, source={self.config.source!r})"
