"""
Neural network object detection for the robot.

Runs an SSD-style TensorFlow Lite model through the OpenCV DNN module. The
model is expected to end in the standard TFLite detection postprocess op.
OpenCV imports that op as a single DetectionOutput layer ([1, 1, N, 7] rows);
the four-tensor layout of the TFLite runtime (boxes, classes, scores, count)
is accepted as well.
"""

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import cv2
import numpy as np

from core.constants import ErrorMessages, ObjectDetectionDefaults
from core.enums import VisionObjectType
from core.exceptions import ConfigurationError, ModelNotFoundError
from schemas.common import ROI, Quadrilateral
from vision.homography import HomographyMapper
from vision.processor import VisionProcessor, VisionTargetInfo

logger = logging.getLogger(__name__)


@dataclass
class DetectedObject:
    label: str
    class_id: int
    confidence: float
    rect: ROI

    @property
    def area(self) -> float:
        return float(self.rect.area_pixels)


class ObjectDetectionProcessor(VisionProcessor):
    """OpenCV DNN detector for a fixed label set."""

    def __init__(
        self,
        model_path: Union[str, Path],
        labels: Sequence[str],
        mapper: Optional[HomographyMapper] = None,
        min_confidence: float = ObjectDetectionDefaults.MIN_CONFIDENCE,
        input_size: tuple = ObjectDetectionDefaults.INPUT_SIZE,
    ):
        """
        Initialize detector.

        Args:
            model_path: Path to the model file
            labels: Class labels indexed by the model's class output
            mapper: Optional homography for projecting detections to the field
            min_confidence: Minimum score for a detection to be reported
            input_size: Network input size (width, height)

        Raises:
            ModelNotFoundError: If the model file does not exist
            ConfigurationError: If the label list is empty or the model cannot be loaded
        """
        super().__init__(Path(model_path).stem)
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise ModelNotFoundError(str(self.model_path))
        if not labels:
            raise ConfigurationError(ErrorMessages.CONFIGURATION_ERROR.format(error="no target labels"))

        self.labels = list(labels)
        self.mapper = mapper
        self.input_size = input_size
        self.min_confidence = ObjectDetectionDefaults.MIN_CONFIDENCE
        self.set_min_result_confidence(min_confidence)

        try:
            self.net = cv2.dnn.readNet(str(self.model_path))
        except cv2.error as e:
            raise ConfigurationError(
                ErrorMessages.CONFIGURATION_ERROR.format(error=f"cannot load {self.model_path}: {e}")
            ) from e
        self.output_names = self.net.getUnconnectedOutLayersNames()
        logger.info(f"Loaded model {self.model_path} with labels {self.labels}")

    def set_min_result_confidence(self, min_confidence: float):
        if not 0.0 <= min_confidence <= 1.0:
            raise ConfigurationError(ErrorMessages.INVALID_CONFIDENCE.format(value=min_confidence))
        self.min_confidence = float(min_confidence)

    def detect(self, frame: np.ndarray) -> List[VisionTargetInfo]:
        height, width = frame.shape[:2]
        blob = cv2.dnn.blobFromImage(
            frame,
            scalefactor=ObjectDetectionDefaults.INPUT_SCALE,
            size=self.input_size,
            mean=ObjectDetectionDefaults.INPUT_MEAN,
            swapRB=ObjectDetectionDefaults.SWAP_RB,
        )
        self.net.setInput(blob)
        outputs = self.net.forward(self.output_names)
        return [
            VisionTargetInfo.create(
                detection,
                detection.rect,
                VisionObjectType.DETECTED_OBJECT.value,
                self.mapper,
                label=detection.label,
            )
            for detection in self.parse_outputs(outputs, width, height)
        ]

    def parse_outputs(self, outputs: Sequence[np.ndarray], width: int, height: int) -> List[DetectedObject]:
        """
        Convert raw network outputs into detections above the confidence floor.

        Two layouts are accepted:
            - a single DetectionOutput blob [1, 1, N, 7] of
              (image_id, class_id, score, xmin, ymin, xmax, ymax), class 0 being background
            - four postprocess outputs: boxes (ymin, xmin, ymax, xmax), classes, scores, count

        Coordinates are normalized to [0, 1].
        """
        if len(outputs) == 1 or np.asarray(outputs[0]).shape[-1] == 7:
            candidates = self._detection_output_candidates(np.asarray(outputs[0]))
        else:
            candidates = self._postprocess_candidates(outputs)

        detections = []
        for class_id, score, box in candidates:
            detection = self._make_detection(class_id, score, box, width, height)
            if detection is not None:
                detections.append(detection)
        return detections

    @staticmethod
    def _detection_output_candidates(output: np.ndarray):
        for row in output.reshape(-1, 7):
            _, class_id, score, xmin, ymin, xmax, ymax = row
            class_id = int(class_id) - ObjectDetectionDefaults.DETECTION_OUTPUT_CLASS_OFFSET
            yield class_id, float(score), (xmin, ymin, xmax, ymax)

    @staticmethod
    def _postprocess_candidates(outputs: Sequence[np.ndarray]):
        boxes, classes, scores, count = (np.asarray(output) for output in outputs[:4])
        boxes = boxes.reshape(-1, 4)
        classes = classes.flatten()
        scores = scores.flatten()
        num_detections = min(int(count.flatten()[0]), len(scores))
        for i in range(num_detections):
            ymin, xmin, ymax, xmax = boxes[i]
            yield int(classes[i]), float(scores[i]), (xmin, ymin, xmax, ymax)

    def _make_detection(
        self, class_id: int, score: float, box, width: int, height: int
    ) -> Optional[DetectedObject]:
        if score < self.min_confidence:
            return None
        if not 0 <= class_id < len(self.labels):
            logger.debug(f"Ignoring detection with unknown class {class_id}")
            return None

        xmin, ymin, xmax, ymax = np.clip(np.asarray(box, dtype=np.float64), 0.0, 1.0)
        return DetectedObject(
            label=self.labels[class_id],
            class_id=class_id,
            confidence=score,
            rect=ROI.from_points(xmin * width, ymin * height, xmax * width, ymax * height),
        )

    def draw(self, frame: np.ndarray, results: List[VisionTargetInfo]):
        for target in results:
            rect = target.rect
            cv2.rectangle(
                frame,
                (rect.x, rect.y),
                (rect.x2, rect.y2),
                ObjectDetectionDefaults.BOX_COLOR,
                ObjectDetectionDefaults.LINE_THICKNESS,
            )
            cv2.putText(
                frame,
                f"{target.detected_obj.label} ({target.confidence * 100:.0f}%)",
                (rect.x, max(rect.y - 10, 0)),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.5,
                ObjectDetectionDefaults.TEXT_COLOR,
                ObjectDetectionDefaults.LINE_THICKNESS,
            )


class ObjectDetectionVision:
    """Object detection adapter: loads the model and answers target queries."""

    def __init__(
        self,
        model_path: Union[str, Path],
        target_labels: Sequence[str],
        camera_rect: Optional[Quadrilateral] = None,
        world_rect: Optional[Quadrilateral] = None,
        tracer: Optional[logging.Logger] = None,
    ):
        self.tracer = tracer or logger
        mapper = None
        if camera_rect is not None and world_rect is not None:
            mapper = HomographyMapper(camera_rect, world_rect)
        self.processor = ObjectDetectionProcessor(model_path, target_labels, mapper)

    def get_vision_processor(self) -> ObjectDetectionProcessor:
        return self.processor

    def get_detected_targets(
        self,
        label: Optional[str] = None,
        comparator: Optional[Callable[[VisionTargetInfo, VisionTargetInfo], int]] = None,
    ) -> List[VisionTargetInfo]:
        """
        Get detections from the latest frame.

        Args:
            label: Only return detections with this label (None for all)
            comparator: Optional three-way comparator used to sort the result

        Returns:
            List of matching detections
        """
        targets = [
            target
            for target in self.processor.latest_results()
            if label is None or target.detected_obj.label == label
        ]
        if comparator is not None:
            targets.sort(key=functools.cmp_to_key(comparator))
        return targets
