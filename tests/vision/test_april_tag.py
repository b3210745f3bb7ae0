"""
Unit tests for AprilTag detection
"""

import cv2
import numpy as np
import pytest

from core.constants import LensIntrinsics
from core.enums import AngleUnit, DistanceUnit
from vision.april_tag import AprilTagParams, AprilTagProcessor, AprilTagVision


@pytest.fixture
def params():
    return AprilTagParams().with_lens_intrinsics(
        LensIntrinsics.FX, LensIntrinsics.FY, LensIntrinsics.CX, LensIntrinsics.CY
    )


def _add_tag(image, tag_id, x, y, size):
    dictionary = cv2.aruco.getPredefinedDictionary(cv2.aruco.DICT_APRILTAG_36h11)
    tag = cv2.aruco.generateImageMarker(dictionary, tag_id, size)
    image[y:y + size, x:x + size] = cv2.cvtColor(tag, cv2.COLOR_GRAY2BGR)


class TestAprilTagParams:
    def test_without_intrinsics_has_no_camera_matrix(self):
        assert AprilTagParams().camera_matrix() is None

    def test_camera_matrix(self, params):
        matrix = params.camera_matrix()

        assert matrix.shape == (3, 3)
        assert matrix[0, 0] == pytest.approx(LensIntrinsics.FX)
        assert matrix[1, 2] == pytest.approx(LensIntrinsics.CY)

    def test_with_output_units_returns_copy(self, params):
        metric = params.with_output_units(DistanceUnit.CM, AngleUnit.RADIANS)

        assert metric.distance_unit == DistanceUnit.CM
        assert params.distance_unit == DistanceUnit.INCH
        assert metric.fx == params.fx


class TestAprilTagProcessor:
    def test_detects_tag(self, params, april_tag_image):
        processor = AprilTagProcessor(params)

        targets = processor.detect(april_tag_image)

        assert len(targets) == 1
        target = targets[0]
        assert target.detected_obj.id == 5
        assert target.properties["tag_id"] == 5
        assert target.object_type == "april_tag"
        center_x, center_y = target.detected_obj.center
        assert center_x == pytest.approx(320, abs=3)
        assert center_y == pytest.approx(240, abs=3)

    def test_pose_in_front_of_camera(self, params, april_tag_image):
        processor = AprilTagProcessor(params)

        pose = processor.detect(april_tag_image)[0].detected_obj.pose

        assert pose is not None
        # Tag is centered, so it is straight ahead of the lens
        assert pose.y > 0
        assert abs(pose.x) < 0.1 * pose.y
        assert pose.range == pytest.approx(np.hypot(pose.x, pose.y))
        # 2 in tag spanning 200 px at f=622 px is about 6.2 in away
        assert pose.y == pytest.approx(2.0 * LensIntrinsics.FX / 200, rel=0.1)

    def test_pose_skipped_without_intrinsics(self, april_tag_image):
        processor = AprilTagProcessor(AprilTagParams())

        targets = processor.detect(april_tag_image)

        assert targets[0].detected_obj.pose is None
        assert targets[0].properties["pose"] is None

    def test_pose_units(self, params, april_tag_image):
        inches = AprilTagProcessor(params).detect(april_tag_image)[0].detected_obj.pose
        metric = AprilTagProcessor(
            params.with_output_units(DistanceUnit.CM, AngleUnit.RADIANS)
        ).detect(april_tag_image)[0].detected_obj.pose

        assert metric.y == pytest.approx(inches.y * 2.54, rel=1e-3)
        assert metric.bearing == pytest.approx(np.radians(inches.bearing), abs=1e-3)

    def test_blank_frame(self, params, test_image):
        assert AprilTagProcessor(params).detect(test_image) == []

    def test_draw_annotates(self, april_tag_image):
        draw_params = AprilTagParams(draw_axes=True, draw_cube_projection=True).with_lens_intrinsics(
            LensIntrinsics.FX, LensIntrinsics.FY, LensIntrinsics.CX, LensIntrinsics.CY
        )
        processor = AprilTagProcessor(draw_params)
        annotated = april_tag_image.copy()

        processor.draw(annotated, processor.detect(april_tag_image))

        assert not np.array_equal(annotated, april_tag_image)


class TestAprilTagVision:
    def test_largest_tag_selected(self, params):
        image = np.full((480, 640, 3), 255, dtype=np.uint8)
        _add_tag(image, 1, 40, 40, 80)
        _add_tag(image, 2, 300, 150, 200)
        vision = AprilTagVision(params)

        vision.get_vision_processor().process_frame(image)

        assert len(vision.get_detected_april_tags()) == 2
        assert vision.get_detected_april_tag().detected_obj.id == 2
        assert vision.get_detected_april_tag(tag_id=1).detected_obj.id == 1
        assert vision.get_detected_april_tag(tag_id=3) is None

    def test_no_results_before_first_frame(self, params):
        vision = AprilTagVision(params)

        assert vision.get_detected_april_tags() == []
        assert vision.get_detected_april_tag() is None
