"""
Homography mapping from camera image pixels to field (world) coordinates.
"""

from typing import Tuple

import cv2
import numpy as np

from schemas.common import Quadrilateral


class HomographyMapper:
    """Maps image points onto the floor plane using a perspective transform."""

    def __init__(self, camera_rect: Quadrilateral, world_rect: Quadrilateral):
        """
        Initialize mapper.

        Args:
            camera_rect: Four reference points in the camera image (pixels)
            world_rect: The same four points measured on the field
        """
        self.camera_rect = camera_rect
        self.world_rect = world_rect
        src = np.array(camera_rect.corners(), dtype=np.float32)
        dst = np.array(world_rect.corners(), dtype=np.float32)
        self.matrix = cv2.getPerspectiveTransform(src, dst)

    def map_point(self, point: Tuple[float, float]) -> Tuple[float, float]:
        """Map a single image point to world coordinates."""
        src = np.array([[point]], dtype=np.float32)
        mapped = cv2.perspectiveTransform(src, self.matrix)
        return (float(mapped[0, 0, 0]), float(mapped[0, 0, 1]))
