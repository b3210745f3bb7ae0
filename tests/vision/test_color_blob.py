"""
Unit tests for color blob detection
"""

import cv2
import numpy as np
import pytest

from core.constants import ColorBlobDefaults
from core.exceptions import ConfigurationError
from vision.color_blob import (
    DEFAULT_FILTER_CONTOUR_PARAMS,
    ColorBlobPipeline,
    ColorBlobVision,
    FilterContourParams,
)


@pytest.fixture
def red_pipeline():
    return ColorBlobPipeline(
        ColorBlobDefaults.RED_BLOB_NAME,
        ColorBlobDefaults.COLOR_CONVERSION,
        ColorBlobDefaults.RED_BLOB_COLOR_THRESHOLDS,
        DEFAULT_FILTER_CONTOUR_PARAMS,
    )


@pytest.fixture
def blue_pipeline():
    return ColorBlobPipeline(
        ColorBlobDefaults.BLUE_BLOB_NAME,
        ColorBlobDefaults.COLOR_CONVERSION,
        ColorBlobDefaults.BLUE_BLOB_COLOR_THRESHOLDS,
        DEFAULT_FILTER_CONTOUR_PARAMS,
    )


class TestColorBlobPipeline:
    def test_detects_red_blob(self, red_pipeline, red_blob_image):
        blobs = red_pipeline.process(red_blob_image)

        # Small square falls below the minimum area
        assert len(blobs) == 1
        blob = blobs[0]
        assert blob.rect.x == 100
        assert blob.rect.y == 100
        assert blob.area > DEFAULT_FILTER_CONTOUR_PARAMS.min_area
        assert blob.solidity == pytest.approx(100.0)

    def test_blue_ignores_red(self, blue_pipeline, red_blob_image):
        assert blue_pipeline.process(red_blob_image) == []

    def test_detects_blue_blob(self, blue_pipeline, test_image):
        cv2.rectangle(test_image, (300, 200), (400, 300), (255, 0, 0), -1)

        blobs = blue_pipeline.process(test_image)

        assert len(blobs) == 1

    def test_blobs_sorted_by_area(self, red_pipeline, test_image):
        cv2.rectangle(test_image, (10, 10), (60, 60), (0, 0, 255), -1)
        cv2.rectangle(test_image, (200, 200), (350, 320), (0, 0, 255), -1)

        blobs = red_pipeline.process(test_image)

        assert len(blobs) == 2
        assert blobs[0].area > blobs[1].area
        assert blobs[0].rect.x == 200

    def test_empty_frame(self, red_pipeline, test_image):
        assert red_pipeline.process(test_image) == []

    def test_aspect_ratio_filter(self, test_image):
        params = DEFAULT_FILTER_CONTOUR_PARAMS.model_copy(update={"aspect_ratio_range": (0.0, 2.0)})
        pipeline = ColorBlobPipeline(
            "Wide",
            ColorBlobDefaults.COLOR_CONVERSION,
            ColorBlobDefaults.RED_BLOB_COLOR_THRESHOLDS,
            params,
        )
        cv2.rectangle(test_image, (10, 200), (400, 240), (0, 0, 255), -1)

        assert pipeline.process(test_image) == []

    def test_no_filter_keeps_small_blobs(self, red_blob_image):
        pipeline = ColorBlobPipeline(
            "Unfiltered",
            ColorBlobDefaults.COLOR_CONVERSION,
            ColorBlobDefaults.RED_BLOB_COLOR_THRESHOLDS,
            None,
        )

        assert len(pipeline.process(red_blob_image)) == 2

    def test_threshold_mask(self, red_pipeline, red_blob_image):
        mask = red_pipeline.threshold(red_blob_image)

        assert mask.shape == red_blob_image.shape[:2]
        assert mask[140, 150] == 255
        assert mask[10, 10] == 0

    @pytest.mark.parametrize(
        "thresholds",
        [
            (0, 255, 0, 255),
            (200.0, 100.0, 0.0, 100.0, 0.0, 60.0),
        ],
    )
    def test_invalid_thresholds(self, thresholds):
        with pytest.raises(ConfigurationError):
            ColorBlobPipeline("Bad", None, thresholds)

    def test_invalid_filter_range(self):
        params = FilterContourParams(width_range=(100.0, 10.0))

        with pytest.raises(ConfigurationError):
            ColorBlobPipeline("Bad", None, ColorBlobDefaults.RED_BLOB_COLOR_THRESHOLDS, params)


class TestColorBlobVision:
    def test_targets_from_processor(self, red_blob_image):
        vision = ColorBlobVision(
            ColorBlobDefaults.RED_BLOB_NAME,
            ColorBlobDefaults.COLOR_CONVERSION,
            ColorBlobDefaults.RED_BLOB_COLOR_THRESHOLDS,
            DEFAULT_FILTER_CONTOUR_PARAMS,
        )
        processor = vision.get_vision_processor()
        assert vision.get_best_detected_target() is None

        results = processor.process_frame(red_blob_image)

        assert vision.get_detected_targets() == results
        best = vision.get_best_detected_target()
        assert best.object_type == "color_blob"
        assert best.properties["name"] == "RedBlob"
        assert best.world_point is None

    def test_draw_annotates(self, red_blob_image):
        vision = ColorBlobVision(
            "RedBlob",
            ColorBlobDefaults.COLOR_CONVERSION,
            ColorBlobDefaults.RED_BLOB_COLOR_THRESHOLDS,
            DEFAULT_FILTER_CONTOUR_PARAMS,
        )
        processor = vision.get_vision_processor()
        annotated = red_blob_image.copy()

        processor.draw(annotated, processor.process_frame(red_blob_image))

        assert not np.array_equal(annotated, red_blob_image)
