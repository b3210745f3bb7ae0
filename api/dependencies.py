"""
Shared FastAPI dependencies for the robot vision API.
"""

import logging

from fastapi import HTTPException, Request

from services.vision_service import VisionService

logger = logging.getLogger(__name__)


def get_vision_service(request: Request) -> VisionService:
    """
    Get the VisionService instance from app state.

    Raises:
        HTTPException: If the service was not initialized
    """
    vision_service = getattr(request.app.state, "vision_service", None)
    if vision_service is None:
        logger.error("Vision service not initialized in app state")
        raise HTTPException(
            status_code=503, detail="Vision service not initialized"
        )
    return vision_service
