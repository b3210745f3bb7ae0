"""
Robot Vision - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.exceptions import register_exception_handlers
from api.routers import vision
from config import get_settings
from core.constants import SystemConstants
from core.hardware_map import HardwareMap
from services.vision_service import VisionService

# Get configuration
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.system.log_level.upper(), logging.INFO),
    format=SystemConstants.LOG_FORMAT,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logger.info("Starting Robot Vision server...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.system.debug}")

    hardware_map = HardwareMap.from_mapping(
        {settings.camera.webcam_name: settings.camera.webcam_index}
    )
    vision_service = VisionService(settings, hardware_map)
    if not vision_service.start():
        logger.warning("Camera stream not started; processors will not receive frames")

    app.state.vision_service = vision_service
    app.state.config = settings.to_dict()

    yield

    logger.info("Shutting down Robot Vision server...")
    vision_service.close()
    logger.info("Server shutdown complete")


app = FastAPI(
    title="Robot Vision",
    description="Vision processor registry and control for a competition robot",
    version="1.0.0",
    lifespan=lifespan,
)

if settings.api.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)

app.include_router(vision.router, prefix="/api/vision", tags=["Vision"])


@app.get("/health")
async def health_check():
    vision_service = getattr(app.state, "vision_service", None)
    return {
        "status": "healthy",
        "services": {
            "vision_service": vision_service is not None,
            "streaming": vision_service is not None and vision_service.vision.is_streaming,
        },
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.system.debug,
        log_level="info",
    )
