"""
Centralized enums for the robot vision system.
"""

import math
from enum import Enum


class ProcessorKind(str, Enum):
    """Vision processors the robot can run."""

    APRIL_TAG = "april_tag"
    RED_BLOB = "red_blob"
    BLUE_BLOB = "blue_blob"
    TENSOR_FLOW = "tensor_flow"


class CameraType(Enum):
    WEBCAM = "webcam"
    BUILTIN = "builtin"


class CameraDirection(str, Enum):
    """Built-in camera selection."""

    BACK = "back"
    FRONT = "front"


class TagFamily(str, Enum):
    """AprilTag families supported by the OpenCV aruco module."""

    TAG_16h5 = "TAG_16h5"
    TAG_25h9 = "TAG_25h9"
    TAG_36h10 = "TAG_36h10"
    TAG_36h11 = "TAG_36h11"


class VisionObjectType(str, Enum):
    APRIL_TAG = "april_tag"
    COLOR_BLOB = "color_blob"
    DETECTED_OBJECT = "detected_object"


class DistanceUnit(str, Enum):
    """Output distance units, expressed relative to inches."""

    INCH = "inch"
    FOOT = "foot"
    METER = "meter"
    CM = "cm"
    MM = "mm"

    def from_inches(self, value: float) -> float:
        return value * _PER_INCH[self]


_PER_INCH = {
    DistanceUnit.INCH: 1.0,
    DistanceUnit.FOOT: 1.0 / 12.0,
    DistanceUnit.METER: 0.0254,
    DistanceUnit.CM: 2.54,
    DistanceUnit.MM: 25.4,
}


class AngleUnit(str, Enum):
    DEGREES = "degrees"
    RADIANS = "radians"

    def from_radians(self, value: float) -> float:
        return math.degrees(value) if self is AngleUnit.DEGREES else value
