"""
Vision control API models.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from core.enums import ProcessorKind

from .common import VisionObject


class ProcessorStatus(BaseModel):
    """Presence and enabled state of one vision processor"""

    kind: ProcessorKind
    present: bool = Field(..., description="Processor was built at startup")
    enabled: bool = Field(..., description="Frames are currently dispatched to the processor")


class ProcessorToggleRequest(BaseModel):
    """Request to enable or disable a vision processor"""

    enabled: bool


class DetectionsResponse(BaseModel):
    """Latest detections reported by one vision processor"""

    kind: ProcessorKind
    objects: List[VisionObject] = Field(default_factory=list)
    result_time: Optional[float] = Field(
        None, description="Capture time (epoch seconds) of the frame the results came from"
    )
