"""
Schemas Package

Pydantic schemas for data validation and serialization, shared by the API,
service and vision layers.
"""

from core.enums import ProcessorKind, VisionObjectType

from .common import ROI, Point, Quadrilateral, VisionObject
from .vision import DetectionsResponse, ProcessorStatus, ProcessorToggleRequest

__all__ = [
    # Common models
    "ROI",
    "Point",
    "Quadrilateral",
    "VisionObject",
    # Vision control models
    "ProcessorStatus",
    "ProcessorToggleRequest",
    "DetectionsResponse",
    # Enums (re-exported from core.enums)
    "ProcessorKind",
    "VisionObjectType",
]
