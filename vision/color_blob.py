"""
Color blob detection for the robot.

Thresholds each frame against a fixed color range, extracts external contours
and keeps the ones matching a shape profile (area, perimeter, size, solidity,
vertex count, aspect ratio).
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np
from pydantic import BaseModel, ConfigDict

from core.constants import ColorBlobDefaults, ErrorMessages, FilterContourDefaults
from core.enums import VisionObjectType
from core.exceptions import ConfigurationError
from schemas.common import ROI, Quadrilateral
from vision.homography import HomographyMapper
from vision.processor import VisionProcessor, VisionTargetInfo

logger = logging.getLogger(__name__)


class FilterContourParams(BaseModel):
    """Shape profile a contour must match to be reported as a blob."""

    model_config = ConfigDict(frozen=True)

    min_area: float = 0.0
    min_perimeter: float = 0.0
    width_range: Tuple[float, float] = (0.0, math.inf)
    height_range: Tuple[float, float] = (0.0, math.inf)
    solidity_range: Tuple[float, float] = (0.0, 100.0)  # percent
    vertices_range: Tuple[float, float] = (0.0, math.inf)
    aspect_ratio_range: Tuple[float, float] = (0.0, math.inf)  # width / height

    def validate_ranges(self):
        """
        Raises:
            ConfigurationError: If any range has its minimum above its maximum
        """
        for name in (
            "width_range",
            "height_range",
            "solidity_range",
            "vertices_range",
            "aspect_ratio_range",
        ):
            low, high = getattr(self, name)
            if low > high:
                raise ConfigurationError(
                    ErrorMessages.INVALID_RANGE.format(name=name, low=low, high=high)
                )


DEFAULT_FILTER_CONTOUR_PARAMS = FilterContourParams(
    min_area=FilterContourDefaults.MIN_AREA,
    min_perimeter=FilterContourDefaults.MIN_PERIMETER,
    width_range=FilterContourDefaults.WIDTH_RANGE,
    height_range=FilterContourDefaults.HEIGHT_RANGE,
    solidity_range=FilterContourDefaults.SOLIDITY_RANGE,
    vertices_range=FilterContourDefaults.VERTICES_RANGE,
    aspect_ratio_range=FilterContourDefaults.ASPECT_RATIO_RANGE,
)


@dataclass
class ColorBlob:
    contour: np.ndarray
    rect: ROI
    area: float
    perimeter: float
    solidity: float
    vertices: int
    aspect_ratio: float
    rotation: float
    confidence: float = 1.0


def _in_range(value: float, value_range: Tuple[float, float]) -> bool:
    return value_range[0] <= value <= value_range[1]


class ColorBlobPipeline:
    """Threshold + contour filter pipeline."""

    def __init__(
        self,
        name: str,
        color_conversion: Optional[int],
        color_thresholds: Sequence[float],
        filter_params: Optional[FilterContourParams] = None,
    ):
        """
        Initialize pipeline.

        Args:
            name: Pipeline name (used in logs and overlays)
            color_conversion: cv2.COLOR_* code applied before thresholding (None for as-is)
            color_thresholds: (min0, max0, min1, max1, min2, max2) in the converted space
            filter_params: Contour filter (None to keep every contour)

        Raises:
            ConfigurationError: On malformed thresholds or filter ranges
        """
        if len(color_thresholds) != 6:
            raise ConfigurationError(
                ErrorMessages.INVALID_THRESHOLDS.format(thresholds=list(color_thresholds))
            )
        lower = np.array(color_thresholds[0::2], dtype=np.float64)
        upper = np.array(color_thresholds[1::2], dtype=np.float64)
        if np.any(lower > upper):
            raise ConfigurationError(
                ErrorMessages.INVALID_THRESHOLDS.format(thresholds=list(color_thresholds))
            )

        self.name = name
        self.color_conversion = color_conversion
        self.lower = lower
        self.upper = upper
        self.filter_params = filter_params
        if filter_params is not None:
            filter_params.validate_ranges()
        self.kernel = np.ones(
            (ColorBlobDefaults.MORPH_KERNEL_SIZE, ColorBlobDefaults.MORPH_KERNEL_SIZE), np.uint8
        )

    def threshold(self, frame: np.ndarray) -> np.ndarray:
        """Binary mask of pixels within the color range."""
        converted = frame
        if self.color_conversion is not None:
            converted = cv2.cvtColor(frame, self.color_conversion)
        mask = cv2.inRange(converted, self.lower, self.upper)
        return cv2.morphologyEx(mask, cv2.MORPH_OPEN, self.kernel)

    def process(self, frame: np.ndarray) -> List[ColorBlob]:
        """Find blobs in a frame, largest first."""
        mask = self.threshold(frame)
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        blobs = []
        for contour in contours:
            blob = self._filter_contour(contour)
            if blob is not None:
                blobs.append(blob)

        blobs.sort(key=lambda blob: blob.area, reverse=True)
        return blobs

    def _filter_contour(self, contour: np.ndarray) -> Optional[ColorBlob]:
        params = self.filter_params or FilterContourParams()

        area = float(cv2.contourArea(contour))
        if area < params.min_area:
            return None

        perimeter = float(cv2.arcLength(contour, True))
        if perimeter < params.min_perimeter:
            return None

        x, y, w, h = cv2.boundingRect(contour)
        if not _in_range(w, params.width_range) or not _in_range(h, params.height_range):
            return None

        hull_area = float(cv2.contourArea(cv2.convexHull(contour)))
        if hull_area <= 0:
            return None
        solidity = 100.0 * area / hull_area
        if not _in_range(solidity, params.solidity_range):
            return None

        vertices = len(contour)
        if not _in_range(vertices, params.vertices_range):
            return None

        aspect_ratio = w / h
        if not _in_range(aspect_ratio, params.aspect_ratio_range):
            return None

        _, _, angle = cv2.minAreaRect(contour)
        return ColorBlob(
            contour=contour,
            rect=ROI(x=x, y=y, width=w, height=h),
            area=area,
            perimeter=perimeter,
            solidity=solidity,
            vertices=vertices,
            aspect_ratio=aspect_ratio,
            rotation=float(angle),
        )


class ColorBlobProcessor(VisionProcessor):
    """Runs a color blob pipeline on every frame."""

    def __init__(
        self,
        pipeline: ColorBlobPipeline,
        mapper: Optional[HomographyMapper] = None,
        annotate: bool = True,
    ):
        super().__init__(pipeline.name)
        self.pipeline = pipeline
        self.mapper = mapper
        self.annotate = annotate

    def detect(self, frame: np.ndarray) -> List[VisionTargetInfo]:
        return [
            VisionTargetInfo.create(
                blob,
                blob.rect,
                VisionObjectType.COLOR_BLOB.value,
                self.mapper,
                name=self.name,
                solidity=blob.solidity,
                vertices=blob.vertices,
                aspect_ratio=blob.aspect_ratio,
            )
            for blob in self.pipeline.process(frame)
        ]

    def draw(self, frame: np.ndarray, results: List[VisionTargetInfo]):
        if not self.annotate:
            return
        for target in results:
            rect = target.rect
            cv2.drawContours(
                frame,
                [target.detected_obj.contour],
                -1,
                ColorBlobDefaults.CONTOUR_COLOR,
                ColorBlobDefaults.LINE_THICKNESS,
            )
            cv2.rectangle(
                frame,
                (rect.x, rect.y),
                (rect.x2, rect.y2),
                ColorBlobDefaults.RECT_COLOR,
                ColorBlobDefaults.LINE_THICKNESS,
            )


class ColorBlobVision:
    """Color blob adapter: builds the pipeline and answers target queries."""

    def __init__(
        self,
        name: str,
        color_conversion: Optional[int],
        color_thresholds: Sequence[float],
        filter_contour_params: Optional[FilterContourParams],
        camera_rect: Optional[Quadrilateral] = None,
        world_rect: Optional[Quadrilateral] = None,
        annotate: bool = True,
        tracer: Optional[logging.Logger] = None,
    ):
        self.tracer = tracer or logger
        self.name = name
        pipeline = ColorBlobPipeline(name, color_conversion, color_thresholds, filter_contour_params)
        mapper = None
        if camera_rect is not None and world_rect is not None:
            mapper = HomographyMapper(camera_rect, world_rect)
        self.processor = ColorBlobProcessor(pipeline, mapper, annotate)
        self.tracer.debug(f"Created {self.processor} (thresholds={list(color_thresholds)})")

    def get_vision_processor(self) -> ColorBlobProcessor:
        return self.processor

    def get_detected_targets(self) -> List[VisionTargetInfo]:
        """Blobs from the latest frame, largest first."""
        return self.processor.latest_results()

    def get_best_detected_target(self) -> Optional[VisionTargetInfo]:
        targets = self.processor.latest_results()
        return targets[0] if targets else None
