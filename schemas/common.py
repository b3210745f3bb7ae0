"""
Common data structures shared by every layer.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """2D Point"""

    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


class ROI(BaseModel):
    """
    Region of Interest.

    Represents a rectangular region in an image (pixels).
    """

    x: int = Field(..., ge=0, description="X coordinate")
    y: int = Field(..., ge=0, description="Y coordinate")
    width: int = Field(..., gt=0, description="Width")
    height: int = Field(..., gt=0, description="Height")

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_points(cls, x1: float, y1: float, x2: float, y2: float) -> "ROI":
        """Create ROI from two corner points, clamped to the image origin."""
        left = max(0, int(round(min(x1, x2))))
        top = max(0, int(round(min(y1, y2))))
        right = int(round(max(x1, x2)))
        bottom = int(round(max(y1, y2)))
        return cls(x=left, y=top, width=max(1, right - left), height=max(1, bottom - top))

    @property
    def x2(self) -> int:
        """Get right edge coordinate."""
        return self.x + self.width

    @property
    def y2(self) -> int:
        """Get bottom edge coordinate."""
        return self.y + self.height

    @property
    def center_point(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def bottom_center_point(self) -> Tuple[float, float]:
        """Point where an object on the floor touches the ground."""
        return (self.x + self.width / 2.0, float(self.y2))

    @property
    def area_pixels(self) -> int:
        return self.width * self.height


class Quadrilateral(BaseModel):
    """
    Four corner points used for homography mapping.

    Corners are ordered top-left, top-right, bottom-left, bottom-right.
    """

    model_config = ConfigDict(frozen=True)

    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point

    @classmethod
    def from_tuples(cls, corners) -> "Quadrilateral":
        top_left, top_right, bottom_left, bottom_right = corners
        return cls(
            top_left=Point(x=top_left[0], y=top_left[1]),
            top_right=Point(x=top_right[0], y=top_right[1]),
            bottom_left=Point(x=bottom_left[0], y=bottom_left[1]),
            bottom_right=Point(x=bottom_right[0], y=bottom_right[1]),
        )

    def corners(self) -> List[Tuple[float, float]]:
        return [
            self.top_left.as_tuple(),
            self.top_right.as_tuple(),
            self.bottom_left.as_tuple(),
            self.bottom_right.as_tuple(),
        ]


class VisionObject(BaseModel):
    """
    Universal interface for any detected vision target
    (AprilTag, color blob, neural network detection).
    """

    object_id: str = Field(..., description="Unique ID of this object within its frame")
    object_type: str = Field(..., description="Type: april_tag, color_blob, detected_object")

    bounding_box: ROI = Field(..., description="Bounding box in {x, y, width, height} format")
    center: Point = Field(..., description="Center point of the object")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score (0.0 - 1.0)")

    area: Optional[float] = Field(None, description="Area in pixels")
    rotation: Optional[float] = Field(None, description="Rotation in degrees")
    world_position: Optional[Point] = Field(
        None, description="Projected field position of the object"
    )

    properties: Dict[str, Any] = Field(default_factory=dict, description="Type-specific properties")
