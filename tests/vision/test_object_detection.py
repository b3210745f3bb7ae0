"""
Unit tests for neural network object detection
"""

import cv2
import numpy as np
import pytest

from config import CameraSettings
from core.exceptions import ConfigurationError, ModelNotFoundError
from vision.object_detection import ObjectDetectionProcessor, ObjectDetectionVision


def _outputs(detections, max_detections=10):
    """Build TFLite postprocess outputs from (box, class_id, score) tuples"""
    boxes = np.zeros((1, max_detections, 4), dtype=np.float32)
    classes = np.zeros((1, max_detections), dtype=np.float32)
    scores = np.zeros((1, max_detections), dtype=np.float32)
    for i, (box, class_id, score) in enumerate(detections):
        boxes[0, i] = box
        classes[0, i] = class_id
        scores[0, i] = score
    return (boxes, classes, scores, np.array([len(detections)], dtype=np.float32))


def _detection_output(rows, max_detections=10):
    """Build a DetectionOutput blob from (class_id, score, xmin, ymin, xmax, ymax) rows"""
    blob = np.zeros((1, 1, max_detections, 7), dtype=np.float32)
    for i, row in enumerate(rows):
        blob[0, 0, i, 1:] = row
    return (blob,)


@pytest.fixture
def model_path(model_dir):
    return model_dir / "MyObject.tflite"


@pytest.fixture
def processor(model_path, mock_net):
    return ObjectDetectionProcessor(model_path, ["MyObject", "Other"])


class TestObjectDetectionProcessor:
    def test_missing_model(self, tmp_path, mock_net):
        with pytest.raises(ModelNotFoundError):
            ObjectDetectionProcessor(tmp_path / "missing.tflite", ["MyObject"])
        mock_net.getUnconnectedOutLayersNames.assert_not_called()

    def test_empty_labels(self, model_path, mock_net):
        with pytest.raises(ConfigurationError):
            ObjectDetectionProcessor(model_path, [])

    def test_unloadable_model(self, model_path, monkeypatch):
        def fail(path):
            raise cv2.error("unsupported model")

        monkeypatch.setattr("vision.object_detection.cv2.dnn.readNet", fail)

        with pytest.raises(ConfigurationError):
            ObjectDetectionProcessor(model_path, ["MyObject"])

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_invalid_min_confidence(self, processor, value):
        with pytest.raises(ConfigurationError):
            processor.set_min_result_confidence(value)

    def test_parse_outputs(self, processor):
        outputs = _outputs(
            [
                ((0.25, 0.5, 0.75, 1.0), 0, 0.9),
                ((0.0, 0.0, 0.5, 0.5), 1, 0.8),
            ]
        )

        detections = processor.parse_outputs(outputs, 640, 480)

        assert [d.label for d in detections] == ["MyObject", "Other"]
        first = detections[0]
        assert first.rect.x == 320
        assert first.rect.y == 120
        assert first.rect.width == 320
        assert first.rect.height == 240
        assert first.confidence == pytest.approx(0.9)

    def test_parse_outputs_filters_low_confidence(self, processor):
        outputs = _outputs([((0.1, 0.1, 0.2, 0.2), 0, 0.5), ((0.1, 0.1, 0.2, 0.2), 0, 0.76)])

        detections = processor.parse_outputs(outputs, 640, 480)

        assert len(detections) == 1
        assert detections[0].confidence == pytest.approx(0.76)

    def test_parse_outputs_ignores_unknown_class(self, processor):
        outputs = _outputs([((0.1, 0.1, 0.2, 0.2), 7, 0.99)])

        assert processor.parse_outputs(outputs, 640, 480) == []

    def test_parse_outputs_respects_count(self, processor):
        boxes, classes, scores, _ = _outputs([((0.1, 0.1, 0.2, 0.2), 0, 0.9)] * 3)

        detections = processor.parse_outputs((boxes, classes, scores, np.array([1.0])), 640, 480)

        assert len(detections) == 1

    def test_parse_detection_output(self, processor):
        # Class ids count background as 0
        outputs = _detection_output(
            [
                (1, 0.9, 0.5, 0.25, 1.0, 0.75),
                (2, 0.8, 0.0, 0.0, 0.5, 0.5),
            ]
        )

        detections = processor.parse_outputs(outputs, 640, 480)

        assert [d.label for d in detections] == ["MyObject", "Other"]
        first = detections[0]
        assert (first.rect.x, first.rect.y) == (320, 120)
        assert (first.rect.width, first.rect.height) == (320, 240)
        assert first.class_id == 0
        assert first.confidence == pytest.approx(0.9)

    def test_parse_detection_output_filters(self, processor):
        outputs = _detection_output(
            [
                (1, 0.5, 0.1, 0.1, 0.2, 0.2),  # below min confidence
                (0, 0.99, 0.1, 0.1, 0.2, 0.2),  # background
                (9, 0.99, 0.1, 0.1, 0.2, 0.2),  # unknown class
                (1, 0.76, 0.1, 0.1, 0.2, 0.2),
            ]
        )

        detections = processor.parse_outputs(outputs, 640, 480)

        assert len(detections) == 1
        assert detections[0].confidence == pytest.approx(0.76)

    def test_parse_detection_output_single_row(self, processor):
        outputs = (np.array([[[[0, 1, 0.9, 0.1, 0.1, 0.5, 0.5]]]], dtype=np.float32),)

        detections = processor.parse_outputs(outputs, 640, 480)

        assert len(detections) == 1
        assert detections[0].rect.x == 64

    def test_detect_with_detection_output(self, processor, mock_net, test_image):
        mock_net.forward.return_value = _detection_output([(1, 0.95, 0.25, 0.5, 0.75, 1.0)])

        targets = processor.detect(test_image)

        assert len(targets) == 1
        assert targets[0].properties["label"] == "MyObject"

    def test_detect_runs_network(self, processor, mock_net, test_image):
        mock_net.forward.return_value = _outputs([((0.5, 0.25, 1.0, 0.75), 0, 0.95)])

        targets = processor.detect(test_image)

        mock_net.setInput.assert_called_once()
        blob = mock_net.setInput.call_args[0][0]
        assert blob.shape == (1, 3, 300, 300)
        mock_net.forward.assert_called_once_with(("boxes", "classes", "scores", "count"))
        assert len(targets) == 1
        assert targets[0].object_type == "detected_object"
        assert targets[0].properties["label"] == "MyObject"


class TestObjectDetectionVision:
    def test_filter_and_sort(self, model_path, mock_net, test_image):
        vision = ObjectDetectionVision(model_path, ["MyObject", "Other"])
        mock_net.forward.return_value = _outputs(
            [
                ((0.1, 0.1, 0.2, 0.2), 0, 0.80),
                ((0.3, 0.3, 0.4, 0.4), 1, 0.99),
                ((0.5, 0.5, 0.6, 0.6), 0, 0.92),
            ]
        )
        vision.get_vision_processor().process_frame(test_image)

        def by_confidence(a, b):
            return (a.confidence < b.confidence) - (a.confidence > b.confidence)

        ordered = vision.get_detected_targets(comparator=by_confidence)
        assert [round(t.confidence, 2) for t in ordered] == [0.99, 0.92, 0.80]

        mine = vision.get_detected_targets("MyObject", by_confidence)
        assert [round(t.confidence, 2) for t in mine] == [0.92, 0.80]

        unsorted = vision.get_detected_targets()
        assert [round(t.confidence, 2) for t in unsorted] == [0.80, 0.99, 0.92]

    def test_homography_applied(self, model_path, mock_net, test_image):
        camera = CameraSettings()
        vision = ObjectDetectionVision(model_path, ["MyObject"], camera.camera_rect, camera.world_rect)
        mock_net.forward.return_value = _outputs([((0.5, 0.25, 1.0, 0.75), 0, 0.95)])

        targets = vision.get_vision_processor().process_frame(test_image)

        assert targets[0].world_point is not None
