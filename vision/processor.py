"""
Base class for frame processors attached to a vision portal.

A processor receives frames from the portal's capture loop, keeps the results
of the most recent frame, and can draw its annotations on the view frame.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from schemas.common import ROI, Point, VisionObject
from vision.homography import HomographyMapper

logger = logging.getLogger(__name__)


@dataclass
class VisionTargetInfo:
    """A detected object plus its location in the image and on the field."""

    detected_obj: Any
    rect: ROI
    object_type: str
    world_point: Optional[Tuple[float, float]] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def confidence(self) -> float:
        return float(getattr(self.detected_obj, "confidence", 1.0))

    @classmethod
    def create(
        cls,
        detected_obj: Any,
        rect: ROI,
        object_type: str,
        mapper: Optional[HomographyMapper] = None,
        **properties,
    ) -> "VisionTargetInfo":
        """Build target info, projecting the rect's bottom center to the field if possible."""
        world_point = mapper.map_point(rect.bottom_center_point) if mapper else None
        return cls(
            detected_obj=detected_obj,
            rect=rect,
            object_type=object_type,
            world_point=world_point,
            properties=properties,
        )

    def to_vision_object(self, index: int) -> VisionObject:
        center_x, center_y = self.rect.center_point
        world_position = (
            Point(x=self.world_point[0], y=self.world_point[1]) if self.world_point else None
        )
        return VisionObject(
            object_id=f"{self.object_type}_{index}",
            object_type=self.object_type,
            bounding_box=self.rect,
            center=Point(x=center_x, y=center_y),
            confidence=min(max(self.confidence, 0.0), 1.0),
            area=getattr(self.detected_obj, "area", None),
            rotation=getattr(self.detected_obj, "rotation", None),
            world_position=world_position,
            properties=self.properties,
        )


class VisionProcessor(ABC):
    """Frame processor with a thread-safe snapshot of its latest results."""

    def __init__(self, name: str):
        self.name = name
        self.image_width: Optional[int] = None
        self.image_height: Optional[int] = None
        self._results: List[VisionTargetInfo] = []
        self._result_time: Optional[float] = None
        # Bumped on every clear; frames started under an older generation are not published
        self._generation = 0
        self._results_lock = Lock()

    def init(self, width: int, height: int):
        """Called once by the portal with the stream resolution."""
        self.image_width = width
        self.image_height = height

    @property
    def generation(self) -> int:
        with self._results_lock:
            return self._generation

    def process_frame(
        self,
        frame: np.ndarray,
        capture_time: Optional[float] = None,
        generation: Optional[int] = None,
    ) -> List[VisionTargetInfo]:
        """
        Run detection on a frame and publish the results.

        Args:
            frame: BGR frame
            capture_time: When the frame was captured (defaults to now)
            generation: Generation the frame was dispatched under; results are
                dropped if the processor was cleared since (None to always publish)

        Returns:
            Results for this frame, whether or not they were published
        """
        results = self.detect(frame)
        with self._results_lock:
            if generation is not None and generation != self._generation:
                logger.debug(f"{self} cleared while processing a frame, dropping results")
                return results
            self._results = results
            self._result_time = capture_time if capture_time is not None else time.time()
        return results

    @abstractmethod
    def detect(self, frame: np.ndarray) -> List[VisionTargetInfo]:
        """Detect targets in a BGR frame."""

    def draw(self, frame: np.ndarray, results: List[VisionTargetInfo]):
        """Annotate the view frame in place."""

    def latest_results(self) -> List[VisionTargetInfo]:
        with self._results_lock:
            return list(self._results)

    @property
    def result_time(self) -> Optional[float]:
        with self._results_lock:
            return self._result_time

    def clear_results(self):
        with self._results_lock:
            self._results = []
            self._result_time = None
            self._generation += 1

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
