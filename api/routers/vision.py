"""
Vision API Router - processor status, toggles and latest detections
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_vision_service
from core.enums import ProcessorKind
from schemas.vision import DetectionsResponse, ProcessorStatus, ProcessorToggleRequest
from services.vision_service import VisionService

logger = logging.getLogger(__name__)

router = APIRouter()


def _status(vision_service: VisionService, kind: ProcessorKind) -> ProcessorStatus:
    return ProcessorStatus(
        kind=kind,
        present=vision_service.has_processor(kind),
        enabled=vision_service.is_processor_enabled(kind),
    )


@router.get("/processors")
async def list_processors(
    vision_service: VisionService = Depends(get_vision_service),
) -> List[ProcessorStatus]:
    """List every processor kind with its presence and enabled state"""
    return vision_service.processor_status()


@router.get("/processors/{kind}")
async def get_processor(
    kind: ProcessorKind,
    vision_service: VisionService = Depends(get_vision_service),
) -> ProcessorStatus:
    return _status(vision_service, kind)


@router.put("/processors/{kind}")
async def set_processor_enabled(
    kind: ProcessorKind,
    request: ProcessorToggleRequest,
    vision_service: VisionService = Depends(get_vision_service),
) -> ProcessorStatus:
    """
    Enable or disable a processor.

    Processors that were not built at startup are left absent and reported disabled.
    """
    vision_service.set_processor_enabled(kind, request.enabled)
    status = _status(vision_service, kind)
    logger.info(f"Processor {kind.value}: present={status.present} enabled={status.enabled}")
    return status


@router.get("/detections/{kind}")
async def get_detections(
    kind: ProcessorKind,
    vision_service: VisionService = Depends(get_vision_service),
) -> DetectionsResponse:
    """Latest detections of one processor (object detections highest confidence first)"""
    targets = vision_service.get_detected_targets(kind)
    return DetectionsResponse(
        kind=kind,
        objects=[target.to_vision_object(i) for i, target in enumerate(targets)],
        result_time=vision_service.result_time(kind),
    )
