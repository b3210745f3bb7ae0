"""
Robot Vision configuration.

Settings are immutable pydantic models grouped by section. Defaults come from
core.constants; any field can be overridden from the environment with
ROBOT_VISION__<SECTION>__<FIELD>, for example:

    ROBOT_VISION__PREFERENCES__USE_APRIL_TAG_VISION=true
    ROBOT_VISION__CAMERA__WEBCAM_NAME="Webcam 2"
    ROBOT_VISION__SYSTEM__LOG_LEVEL=DEBUG
"""

import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.constants import (
    APIConstants,
    CameraConstants,
    HomographyDefaults,
    LensIntrinsics,
    SystemConstants,
)
from schemas.common import Quadrilateral

logger = logging.getLogger(__name__)


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Preferences(_FrozenModel):
    """Feature switches read once when the vision service is built."""

    use_april_tag_vision: bool = False
    use_color_blob_vision: bool = False
    use_tensor_flow_vision: bool = False
    use_web_cam: bool = True
    use_builtin_cam_back: bool = False
    show_vision_view: bool = False


class CameraSettings(_FrozenModel):
    webcam_name: str = CameraConstants.DEFAULT_WEBCAM_NAME
    webcam_index: int = Field(default=0, ge=0, description="Device index of the named webcam")
    image_width: int = Field(default=CameraConstants.DEFAULT_IMAGE_WIDTH, gt=0)
    image_height: int = Field(default=CameraConstants.DEFAULT_IMAGE_HEIGHT, gt=0)
    fps: int = Field(default=CameraConstants.DEFAULT_FPS, gt=0)

    # Lens intrinsics (pixels)
    fx: float = LensIntrinsics.FX
    fy: float = LensIntrinsics.FY
    cx: float = LensIntrinsics.CX
    cy: float = LensIntrinsics.CY

    camera_rect: Quadrilateral = Quadrilateral.from_tuples(HomographyDefaults.CAMERA_RECT)
    world_rect: Quadrilateral = Quadrilateral.from_tuples(HomographyDefaults.WORLD_RECT)


class ObjectDetectionSettings(_FrozenModel):
    models_dir: str = SystemConstants.DEFAULT_MODELS_DIR


class SystemSettings(_FrozenModel):
    log_level: str = SystemConstants.LOG_LEVEL_DEFAULT
    debug: bool = False


class ApiSettings(_FrozenModel):
    host: str = APIConstants.DEFAULT_HOST
    port: int = APIConstants.DEFAULT_PORT
    cors_enabled: bool = True
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class Settings(_FrozenModel):
    environment: str = "development"
    preferences: Preferences = Field(default_factory=Preferences)
    camera: CameraSettings = Field(default_factory=CameraSettings)
    object_detection: ObjectDetectionSettings = Field(default_factory=ObjectDetectionSettings)
    system: SystemSettings = Field(default_factory=SystemSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


_SCALAR_TYPES = (bool, int, float, str)


def _cast(value: str, annotation: Any) -> Any:
    """Convert an environment string to the field's type."""
    if annotation is bool:
        return value.strip().lower() in ("true", "1", "yes", "on")
    if annotation is int:
        return int(value)
    if annotation is float:
        return float(value)
    if annotation is str:
        return value
    # Lists are comma separated
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_configurable(annotation: Any) -> bool:
    return annotation in _SCALAR_TYPES or get_origin(annotation) is list


def _section_overrides(
    section: str, model: type, environ: Mapping[str, str]
) -> Dict[str, Any]:
    overrides = {}
    prefix = f"{SystemConstants.ENV_PREFIX}__{section.upper()}__"
    for field_name, field in model.model_fields.items():
        raw = environ.get(prefix + field_name.upper())
        if raw is None or not _env_configurable(field.annotation):
            continue
        try:
            overrides[field_name] = _cast(raw, field.annotation)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {prefix + field_name.upper()}: {raw!r}")
    return overrides


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from defaults plus environment overrides."""
    if environ is None:
        environ = os.environ

    sections = {}
    for name, field in Settings.model_fields.items():
        if name == "environment":
            continue
        model = field.annotation
        overrides = _section_overrides(name, model, environ)
        try:
            sections[name] = model(**overrides)
        except ValidationError as e:
            logger.warning(f"Invalid {name} settings in environment, using defaults: {e}")
            sections[name] = model()

    environment = environ.get(f"{SystemConstants.ENV_PREFIX}_ENV", "development")
    return Settings(environment=environment, **sections)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings for the running process."""
    return load_settings()
