"""
Pytest configuration and fixtures for Robot Vision tests
"""

from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from config import ObjectDetectionSettings, Preferences, Settings
from core.constants import CameraConstants, ObjectDetectionDefaults
from core.hardware_map import HardwareMap
from services.vision_service import VisionService


@pytest.fixture
def test_image():
    """Create a blank test frame"""
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def red_blob_image():
    """Frame with one large red rectangle and one small red square (BGR)"""
    image = np.zeros((480, 640, 3), dtype=np.uint8)
    cv2.rectangle(image, (100, 100), (200, 180), (0, 0, 255), -1)
    cv2.rectangle(image, (400, 300), (415, 315), (0, 0, 255), -1)
    return image


@pytest.fixture
def april_tag_image():
    """White frame with AprilTag 36h11 id 5 in the middle"""
    dictionary = cv2.aruco.getPredefinedDictionary(cv2.aruco.DICT_APRILTAG_36h11)
    tag = cv2.aruco.generateImageMarker(dictionary, 5, 200)
    image = np.full((480, 640), 255, dtype=np.uint8)
    image[140:340, 220:420] = tag
    return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)


@pytest.fixture
def hardware_map():
    """Hardware map with the default webcam registered"""
    return HardwareMap.from_mapping({CameraConstants.DEFAULT_WEBCAM_NAME: 0})


@pytest.fixture
def model_dir(tmp_path):
    """Directory containing a placeholder model asset"""
    (tmp_path / ObjectDetectionDefaults.MODEL_ASSET).write_bytes(b"tflite")
    return tmp_path


@pytest.fixture
def mock_net():
    """Mock OpenCV DNN network returned by cv2.dnn.readNet"""
    net = MagicMock()
    net.getUnconnectedOutLayersNames.return_value = ("boxes", "classes", "scores", "count")
    net.forward.return_value = (
        np.zeros((1, 10, 4), dtype=np.float32),
        np.zeros((1, 10), dtype=np.float32),
        np.zeros((1, 10), dtype=np.float32),
        np.array([0], dtype=np.float32),
    )
    with patch("vision.object_detection.cv2.dnn.readNet", return_value=net):
        yield net


@pytest.fixture
def make_settings(model_dir):
    """Factory for settings with the given preference switches"""

    def _make(**preferences):
        return Settings(
            preferences=Preferences(**preferences),
            object_detection=ObjectDetectionSettings(models_dir=str(model_dir)),
        )

    return _make


@pytest.fixture
def make_vision_service(make_settings, hardware_map, mock_net):
    """Factory for vision services built against the test hardware map"""
    services = []

    def _make(**preferences):
        service = VisionService(make_settings(**preferences), hardware_map)
        services.append(service)
        return service

    yield _make
    for service in services:
        service.close()
