"""
Core modules for Robot Vision
"""

from .camera_manager import Camera, CameraConfig
from .enums import CameraDirection, CameraType, ProcessorKind
from .exceptions import (
    CameraNotFoundError,
    ConfigurationError,
    ModelNotFoundError,
    ResourceNotFoundError,
    VisionException,
)
from .hardware_map import HardwareMap
from .vision_portal import VisionPortal

__all__ = [
    "Camera",
    "CameraConfig",
    "CameraType",
    "CameraDirection",
    "ProcessorKind",
    "HardwareMap",
    "VisionPortal",
    "VisionException",
    "ResourceNotFoundError",
    "CameraNotFoundError",
    "ModelNotFoundError",
    "ConfigurationError",
]
