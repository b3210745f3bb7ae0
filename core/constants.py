"""
Constants and configuration values for the robot vision system.
Centralizes all magic numbers and static processor configuration.
"""

import cv2

from core.enums import AngleUnit, CameraDirection, DistanceUnit, TagFamily


# Camera Constants
class CameraConstants:
    """Constants related to camera operations."""

    DEFAULT_WEBCAM_NAME = "Webcam 1"
    DEFAULT_IMAGE_WIDTH = 640
    DEFAULT_IMAGE_HEIGHT = 480
    DEFAULT_FPS = 30

    # Device index used for each built-in camera
    BUILTIN_CAMERA_INDEX = {
        CameraDirection.BACK: 0,
        CameraDirection.FRONT: 1,
    }

    # Capture loop
    CAPTURE_RETRY_DELAY_SEC = 0.01
    STREAM_JOIN_TIMEOUT_SEC = 2.0
    VIEW_WINDOW_NAME = "Robot Vision"


# Lens intrinsics for the default webcam at 640x480 (pixels)
class LensIntrinsics:
    """Default lens intrinsics."""

    FX = 622.001
    FY = 622.001
    CX = 319.803
    CY = 241.251


# Homography Constants
class HomographyDefaults:
    """
    Default camera/world quadrilaterals for mapping image points to the field.

    Points are (top_left, top_right, bottom_left, bottom_right). Camera points
    are in pixels, world points are in inches relative to the robot center.
    """

    CAMERA_RECT = ((0.0, 120.0), (639.0, 120.0), (0.0, 479.0), (639.0, 479.0))
    WORLD_RECT = ((-12.5626, 48.0), (11.4375, 44.75), (-2.5625, 21.0), (2.5626, 21.0))


# Color Blob Default Parameters
class ColorBlobDefaults:
    """Static configuration for the color blob processors."""

    # Frames arrive as BGR, thresholds are expressed in RGB channel order
    COLOR_CONVERSION = cv2.COLOR_BGR2RGB

    # (min0, max0, min1, max1, min2, max2)
    RED_BLOB_COLOR_THRESHOLDS = (100.0, 255.0, 0.0, 100.0, 0.0, 60.0)
    BLUE_BLOB_COLOR_THRESHOLDS = (0.0, 60.0, 0.0, 100.0, 100.0, 255.0)

    RED_BLOB_NAME = "RedBlob"
    BLUE_BLOB_NAME = "BlueBlob"

    MORPH_KERNEL_SIZE = 3

    # Visualization
    LINE_THICKNESS = 2
    CONTOUR_COLOR = (0, 255, 0)  # Green (BGR)
    RECT_COLOR = (255, 0, 255)  # Magenta (BGR)


# Contour filter defaults shared by both color blob processors
class FilterContourDefaults:
    MIN_AREA = 1000.0
    MIN_PERIMETER = 100.0
    WIDTH_RANGE = (10.0, 1000.0)
    HEIGHT_RANGE = (10.0, 1000.0)
    SOLIDITY_RANGE = (0.0, 100.0)
    VERTICES_RANGE = (0.0, 1000.0)
    ASPECT_RATIO_RANGE = (0.0, 10.0)


# AprilTag Detection Default Parameters
class AprilTagDefaults:
    """Static configuration for the AprilTag processor."""

    TAG_FAMILY = TagFamily.TAG_36h11
    TAG_SIZE_INCHES = 2.0

    DRAW_TAG_ID = True
    DRAW_TAG_OUTLINE = True
    DRAW_AXES = False
    DRAW_CUBE_PROJECTION = False

    DISTANCE_UNIT = DistanceUnit.INCH
    ANGLE_UNIT = AngleUnit.DEGREES

    # Visualization
    LINE_THICKNESS = 2
    OUTLINE_COLOR = (0, 255, 0)  # Green (BGR)
    TEXT_COLOR = (0, 0, 255)  # Red (BGR)
    AXIS_LENGTH_RATIO = 0.5


# Object Detection Default Parameters
class ObjectDetectionDefaults:
    """Static configuration for the neural object detector."""

    MODEL_ASSET = "MyObject.tflite"
    MIN_CONFIDENCE = 0.75
    TARGET_LABELS = ("MyObject",)

    INPUT_SIZE = (300, 300)
    INPUT_SCALE = 1.0 / 127.5
    INPUT_MEAN = (127.5, 127.5, 127.5)
    SWAP_RB = True

    # DetectionOutput reserves class 0 for background
    DETECTION_OUTPUT_CLASS_OFFSET = 1

    # Visualization
    LINE_THICKNESS = 2
    BOX_COLOR = (0, 255, 255)  # Yellow (BGR)
    TEXT_COLOR = (0, 255, 255)


# System Constants
class SystemConstants:
    """Constants for system operations."""

    LOG_LEVEL_DEFAULT = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ENV_PREFIX = "ROBOT_VISION"
    DEFAULT_MODELS_DIR = "models"


# API Constants
class APIConstants:
    DEFAULT_HOST = "0.0.0.0"
    DEFAULT_PORT = 8000


# Error Messages
class ErrorMessages:
    """Standard error messages."""

    CAMERA_NOT_FOUND = "Camera {name} not found in hardware map"
    MODEL_NOT_FOUND = "Model asset {path} not found"
    PROCESSOR_NOT_ATTACHED = "Processor {processor} is not attached to this vision portal"
    INVALID_THRESHOLDS = "Color thresholds must be 6 values (min, max per channel): {thresholds}"
    INVALID_RANGE = "Invalid {name} range: {low} > {high}"
    INVALID_CONFIDENCE = "Minimum confidence must be within [0, 1]: {value}"
    CONFIGURATION_ERROR = "Configuration error: {error}"
