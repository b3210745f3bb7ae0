"""
AprilTag detection for the robot.
Detects fiducial tags and estimates their pose relative to the camera.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import List, Optional

import cv2
import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from core.constants import AprilTagDefaults
from core.enums import AngleUnit, DistanceUnit, TagFamily, VisionObjectType
from core.exceptions import ConfigurationError
from schemas.common import ROI
from vision.processor import VisionProcessor, VisionTargetInfo

logger = logging.getLogger(__name__)

APRILTAG_DICTIONARIES = {
    TagFamily.TAG_16h5: cv2.aruco.DICT_APRILTAG_16h5,
    TagFamily.TAG_25h9: cv2.aruco.DICT_APRILTAG_25h9,
    TagFamily.TAG_36h10: cv2.aruco.DICT_APRILTAG_36h10,
    TagFamily.TAG_36h11: cv2.aruco.DICT_APRILTAG_36h11,
}


class AprilTagParams(BaseModel):
    """AprilTag processor parameters."""

    model_config = ConfigDict(frozen=True)

    draw_tag_id: bool = AprilTagDefaults.DRAW_TAG_ID
    draw_tag_outline: bool = AprilTagDefaults.DRAW_TAG_OUTLINE
    draw_axes: bool = AprilTagDefaults.DRAW_AXES
    draw_cube_projection: bool = AprilTagDefaults.DRAW_CUBE_PROJECTION

    # Lens intrinsics (pixels); pose is only estimated when all four are known
    fx: Optional[float] = Field(default=None, gt=0)
    fy: Optional[float] = Field(default=None, gt=0)
    cx: Optional[float] = Field(default=None, ge=0)
    cy: Optional[float] = Field(default=None, ge=0)

    distance_unit: DistanceUnit = AprilTagDefaults.DISTANCE_UNIT
    angle_unit: AngleUnit = AprilTagDefaults.ANGLE_UNIT
    tag_size_inches: float = Field(default=AprilTagDefaults.TAG_SIZE_INCHES, gt=0)

    def with_lens_intrinsics(self, fx: float, fy: float, cx: float, cy: float) -> "AprilTagParams":
        return self.model_copy(update={"fx": fx, "fy": fy, "cx": cx, "cy": cy})

    def with_output_units(self, distance_unit: DistanceUnit, angle_unit: AngleUnit) -> "AprilTagParams":
        return self.model_copy(update={"distance_unit": distance_unit, "angle_unit": angle_unit})

    def camera_matrix(self) -> Optional[np.ndarray]:
        if None in (self.fx, self.fy, self.cx, self.cy):
            return None
        return np.array(
            [[self.fx, 0.0, self.cx], [0.0, self.fy, self.cy], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )


@dataclass
class AprilTagPose:
    """
    Tag pose relative to the camera.

    x is right, y is forward (away from the lens), z is up. Distances and angles
    are in the processor's output units.
    """

    x: float
    y: float
    z: float
    yaw: float
    pitch: float
    roll: float
    range: float
    bearing: float
    elevation: float


@dataclass
class AprilTagDetection:
    id: int
    corners: np.ndarray  # 4x2, top-left, top-right, bottom-right, bottom-left
    center: tuple
    area: float
    rotation: float
    pose: Optional[AprilTagPose] = None
    confidence: float = 1.0  # Tag decoding is binary (found/not found)


class AprilTagProcessor(VisionProcessor):
    """AprilTag detector built on the OpenCV aruco module."""

    def __init__(self, params: AprilTagParams, tag_family: TagFamily = AprilTagDefaults.TAG_FAMILY):
        super().__init__(f"AprilTag-{tag_family.value}")
        if tag_family not in APRILTAG_DICTIONARIES:
            raise ConfigurationError(f"Unknown AprilTag family: {tag_family}")

        self.params = params
        self.tag_family = tag_family
        dictionary = cv2.aruco.getPredefinedDictionary(APRILTAG_DICTIONARIES[tag_family])
        self.detector = cv2.aruco.ArucoDetector(dictionary, cv2.aruco.DetectorParameters())
        self.camera_matrix = params.camera_matrix()
        self.dist_coeffs = np.zeros((4, 1), dtype=np.float64)

        half = params.tag_size_inches / 2.0
        # Object point order required by SOLVEPNP_IPPE_SQUARE
        self.object_points = np.array(
            [[-half, half, 0.0], [half, half, 0.0], [half, -half, 0.0], [-half, -half, 0.0]],
            dtype=np.float64,
        )

    def detect(self, frame: np.ndarray) -> List[VisionTargetInfo]:
        if len(frame.shape) == 3:
            gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        else:
            gray = frame

        corners, ids, _ = self.detector.detectMarkers(gray)

        targets = []
        if ids is not None and len(ids) > 0:
            for corner, tag_id in zip(corners, ids.flatten()):
                detection = self._process_tag(corner[0], int(tag_id))
                x_min, y_min = detection.corners.min(axis=0)
                x_max, y_max = detection.corners.max(axis=0)
                targets.append(
                    VisionTargetInfo.create(
                        detection,
                        ROI.from_points(x_min, y_min, x_max, y_max),
                        VisionObjectType.APRIL_TAG.value,
                        tag_id=detection.id,
                        pose=asdict(detection.pose) if detection.pose else None,
                    )
                )
        return targets

    def _process_tag(self, corners: np.ndarray, tag_id: int) -> AprilTagDetection:
        center = (float(np.mean(corners[:, 0])), float(np.mean(corners[:, 1])))

        # Angle of the top edge, 0 = horizontal right
        dx = corners[1][0] - corners[0][0]
        dy = corners[1][1] - corners[0][1]
        angle_deg = float(np.degrees(np.arctan2(dy, dx)))
        if angle_deg < 0:
            angle_deg += 360.0

        return AprilTagDetection(
            id=tag_id,
            corners=corners.astype(np.float64),
            center=center,
            area=float(cv2.contourArea(corners.astype(np.float32))),
            rotation=angle_deg,
            pose=self._estimate_pose(corners),
        )

    def _estimate_pose(self, corners: np.ndarray) -> Optional[AprilTagPose]:
        if self.camera_matrix is None:
            return None

        ok, rvec, tvec = cv2.solvePnP(
            self.object_points,
            corners.astype(np.float64),
            self.camera_matrix,
            self.dist_coeffs,
            flags=cv2.SOLVEPNP_IPPE_SQUARE,
        )
        if not ok:
            return None

        # Camera frame (x right, y down, z forward) to robot convention (x right, y forward, z up)
        tx, ty, tz = (float(v) for v in tvec.flatten())
        x, y, z = tx, tz, -ty

        rotation, _ = cv2.Rodrigues(rvec)
        yaw = math.atan2(rotation[1, 0], rotation[0, 0])
        pitch = math.atan2(-rotation[2, 0], math.hypot(rotation[0, 0], rotation[1, 0]))
        roll = math.atan2(rotation[2, 1], rotation[2, 2])

        distance_unit = self.params.distance_unit
        angle_unit = self.params.angle_unit
        return AprilTagPose(
            x=distance_unit.from_inches(x),
            y=distance_unit.from_inches(y),
            z=distance_unit.from_inches(z),
            yaw=angle_unit.from_radians(yaw),
            pitch=angle_unit.from_radians(pitch),
            roll=angle_unit.from_radians(roll),
            range=distance_unit.from_inches(math.hypot(x, y)),
            bearing=angle_unit.from_radians(math.atan2(-x, y)),
            elevation=angle_unit.from_radians(math.atan2(z, y)),
        )

    def draw(self, frame: np.ndarray, results: List[VisionTargetInfo]):
        for target in results:
            detection = target.detected_obj
            points = detection.corners.astype(np.int32)

            if self.params.draw_tag_outline:
                cv2.polylines(
                    frame, [points], True, AprilTagDefaults.OUTLINE_COLOR, AprilTagDefaults.LINE_THICKNESS
                )

            if self.params.draw_tag_id:
                cv2.putText(
                    frame,
                    f"ID {detection.id}",
                    (int(detection.center[0]), int(detection.center[1])),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.6,
                    AprilTagDefaults.TEXT_COLOR,
                    AprilTagDefaults.LINE_THICKNESS,
                )

            if self.camera_matrix is not None and (
                self.params.draw_axes or self.params.draw_cube_projection
            ):
                self._draw_pose(frame, detection)

    def _draw_pose(self, frame: np.ndarray, detection: AprilTagDetection):
        ok, rvec, tvec = cv2.solvePnP(
            self.object_points,
            detection.corners,
            self.camera_matrix,
            self.dist_coeffs,
            flags=cv2.SOLVEPNP_IPPE_SQUARE,
        )
        if not ok:
            return

        size = self.params.tag_size_inches
        if self.params.draw_axes:
            cv2.drawFrameAxes(
                frame,
                self.camera_matrix,
                self.dist_coeffs,
                rvec,
                tvec,
                size * AprilTagDefaults.AXIS_LENGTH_RATIO,
            )

        if self.params.draw_cube_projection:
            # Cube sits on the tag and extends out towards the camera
            top = self.object_points.copy()
            top[:, 2] = -size
            cube = np.vstack([self.object_points, top])
            projected, _ = cv2.projectPoints(cube, rvec, tvec, self.camera_matrix, self.dist_coeffs)
            pts = projected.reshape(-1, 2).astype(np.int32)
            for i in range(4):
                j = (i + 1) % 4
                for a, b in ((i, j), (i + 4, j + 4), (i, i + 4)):
                    cv2.line(
                        frame,
                        tuple(int(v) for v in pts[a]),
                        tuple(int(v) for v in pts[b]),
                        AprilTagDefaults.OUTLINE_COLOR,
                        AprilTagDefaults.LINE_THICKNESS,
                    )


class AprilTagVision:
    """AprilTag adapter: owns the processor and answers target queries."""

    def __init__(
        self,
        params: AprilTagParams,
        tag_family: TagFamily = AprilTagDefaults.TAG_FAMILY,
        tracer: Optional[logging.Logger] = None,
    ):
        self.tracer = tracer or logger
        self.processor = AprilTagProcessor(params, tag_family)
        self.tracer.debug(f"Created {self.processor} (pose={params.camera_matrix() is not None})")

    def get_vision_processor(self) -> AprilTagProcessor:
        return self.processor

    def get_detected_april_tags(self) -> List[VisionTargetInfo]:
        return self.processor.latest_results()

    def get_detected_april_tag(self, tag_id: Optional[int] = None) -> Optional[VisionTargetInfo]:
        """
        Get the best detected tag.

        Args:
            tag_id: Only consider this tag ID (None for any tag)

        Returns:
            The largest matching tag in the latest frame, or None
        """
        candidates = [
            target
            for target in self.processor.latest_results()
            if tag_id is None or target.detected_obj.id == tag_id
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda target: target.detected_obj.area)
