"""
Vision Service - builds the robot's vision processors and toggles them.

This service creates the AprilTag, color blob and object detection processors
selected by the preference switches, attaches them to a single vision portal,
and exposes per-processor enable/disable/query operations. Every processor
starts disabled; callers enable the ones needed for the current phase.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from config import Settings
from core.camera_manager import Camera
from core.constants import AprilTagDefaults, ColorBlobDefaults, ObjectDetectionDefaults
from core.enums import CameraDirection, ProcessorKind
from core.hardware_map import HardwareMap
from core.vision_portal import VisionPortal
from schemas.vision import ProcessorStatus
from vision.april_tag import AprilTagParams, AprilTagVision
from vision.color_blob import DEFAULT_FILTER_CONTOUR_PARAMS, ColorBlobVision
from vision.object_detection import ObjectDetectionVision
from vision.processor import VisionProcessor, VisionTargetInfo

logger = logging.getLogger(__name__)

VisionAdapter = Union[AprilTagVision, ColorBlobVision, ObjectDetectionVision]


class VisionService:
    """
    Vision facade for the robot.

    Attributes:
        april_tag_vision: AprilTag adapter, None unless AprilTag vision is enabled
        red_blob_vision: Red blob adapter, None unless color blob vision is enabled
        blue_blob_vision: Blue blob adapter, None unless color blob vision is enabled
        tensor_flow_vision: Object detection adapter, None unless TensorFlow vision is enabled
        vision: The vision portal every processor is attached to
    """

    def __init__(
        self,
        settings: Settings,
        hardware_map: HardwareMap,
        tracer: Optional[logging.Logger] = None,
    ):
        """
        Initialize vision service.

        Args:
            settings: Immutable robot settings (preferences are read once here)
            hardware_map: Registry used to resolve the named webcam
            tracer: Logger for trace output (module logger if None)

        Raises:
            CameraNotFoundError: If the webcam is enabled but not in the hardware map
            ModelNotFoundError: If TensorFlow vision is enabled and the model asset is missing
            ConfigurationError: On malformed processor configuration
        """
        self.tracer = tracer or logger
        self.settings = settings
        preferences = settings.preferences
        camera_settings = settings.camera

        self.april_tag_vision: Optional[AprilTagVision] = None
        self.red_blob_vision: Optional[ColorBlobVision] = None
        self.blue_blob_vision: Optional[ColorBlobVision] = None
        self.tensor_flow_vision: Optional[ObjectDetectionVision] = None
        processor_list: List[VisionProcessor] = []

        if preferences.use_april_tag_vision:
            self.tracer.info("Starting AprilTagVision...")
            april_tag_params = (
                AprilTagParams(
                    draw_tag_id=True,
                    draw_tag_outline=True,
                    draw_axes=False,
                    draw_cube_projection=False,
                )
                .with_lens_intrinsics(
                    camera_settings.fx, camera_settings.fy, camera_settings.cx, camera_settings.cy
                )
                .with_output_units(AprilTagDefaults.DISTANCE_UNIT, AprilTagDefaults.ANGLE_UNIT)
            )
            self.april_tag_vision = AprilTagVision(
                april_tag_params, AprilTagDefaults.TAG_FAMILY, self.tracer
            )
            processor_list.append(self.april_tag_vision.get_vision_processor())

        if preferences.use_color_blob_vision:
            self.tracer.info("Starting ColorBlobVision...")
            self.red_blob_vision = ColorBlobVision(
                ColorBlobDefaults.RED_BLOB_NAME,
                ColorBlobDefaults.COLOR_CONVERSION,
                ColorBlobDefaults.RED_BLOB_COLOR_THRESHOLDS,
                DEFAULT_FILTER_CONTOUR_PARAMS,
                camera_settings.camera_rect,
                camera_settings.world_rect,
                True,
                self.tracer,
            )
            processor_list.append(self.red_blob_vision.get_vision_processor())

            self.blue_blob_vision = ColorBlobVision(
                ColorBlobDefaults.BLUE_BLOB_NAME,
                ColorBlobDefaults.COLOR_CONVERSION,
                ColorBlobDefaults.BLUE_BLOB_COLOR_THRESHOLDS,
                DEFAULT_FILTER_CONTOUR_PARAMS,
                camera_settings.camera_rect,
                camera_settings.world_rect,
                True,
                self.tracer,
            )
            processor_list.append(self.blue_blob_vision.get_vision_processor())

        if preferences.use_tensor_flow_vision:
            self.tracer.info("Starting TensorFlowVision...")
            model_path = Path(settings.object_detection.models_dir) / ObjectDetectionDefaults.MODEL_ASSET
            self.tensor_flow_vision = ObjectDetectionVision(
                model_path,
                ObjectDetectionDefaults.TARGET_LABELS,
                camera_settings.camera_rect,
                camera_settings.world_rect,
                self.tracer,
            )
            self.tensor_flow_vision.get_vision_processor().set_min_result_confidence(
                ObjectDetectionDefaults.MIN_CONFIDENCE
            )
            processor_list.append(self.tensor_flow_vision.get_vision_processor())

        if preferences.use_web_cam:
            camera_config = hardware_map.get(camera_settings.webcam_name)
        else:
            camera_config = hardware_map.builtin_camera(
                CameraDirection.BACK if preferences.use_builtin_cam_back else CameraDirection.FRONT
            )
        camera = Camera(
            camera_config.with_resolution(
                camera_settings.image_width, camera_settings.image_height, camera_settings.fps
            )
        )
        self.vision = VisionPortal(
            camera,
            camera_settings.image_width,
            camera_settings.image_height,
            preferences.show_vision_view,
            processor_list,
        )

        # Disable all vision processors until they are needed.
        self.set_april_tag_vision_enabled(False)
        self.set_red_blob_vision_enabled(False)
        self.set_blue_blob_vision_enabled(False)
        self.set_tensor_flow_vision_enabled(False)

    @property
    def adapters(self) -> Dict[ProcessorKind, Optional[VisionAdapter]]:
        """Adapter slot per processor kind (None when the kind was not built)."""
        return {
            ProcessorKind.APRIL_TAG: self.april_tag_vision,
            ProcessorKind.RED_BLOB: self.red_blob_vision,
            ProcessorKind.BLUE_BLOB: self.blue_blob_vision,
            ProcessorKind.TENSOR_FLOW: self.tensor_flow_vision,
        }

    def _processor(self, kind: ProcessorKind) -> Optional[VisionProcessor]:
        adapter = self.adapters[kind]
        return adapter.get_vision_processor() if adapter is not None else None

    def has_processor(self, kind: ProcessorKind) -> bool:
        return self.adapters[kind] is not None

    def set_processor_enabled(self, kind: ProcessorKind, enabled: bool):
        """Enable or disable a processor; no-op if it was never built."""
        processor = self._processor(kind)
        if processor is not None:
            self.vision.set_processor_enabled(processor, enabled)

    def is_processor_enabled(self, kind: ProcessorKind) -> bool:
        """True if the processor exists and is receiving frames."""
        processor = self._processor(kind)
        return processor is not None and self.vision.is_processor_enabled(processor)

    def processor_status(self) -> List[ProcessorStatus]:
        return [
            ProcessorStatus(
                kind=kind,
                present=self.has_processor(kind),
                enabled=self.is_processor_enabled(kind),
            )
            for kind in ProcessorKind
        ]

    def set_april_tag_vision_enabled(self, enabled: bool):
        """
        Enable or disable AprilTag vision.

        Args:
            enabled: True to enable, False to disable
        """
        self.set_processor_enabled(ProcessorKind.APRIL_TAG, enabled)

    def set_red_blob_vision_enabled(self, enabled: bool):
        """
        Enable or disable red blob vision.

        Args:
            enabled: True to enable, False to disable
        """
        self.set_processor_enabled(ProcessorKind.RED_BLOB, enabled)

    def set_blue_blob_vision_enabled(self, enabled: bool):
        """
        Enable or disable blue blob vision.

        Args:
            enabled: True to enable, False to disable
        """
        self.set_processor_enabled(ProcessorKind.BLUE_BLOB, enabled)

    def set_tensor_flow_vision_enabled(self, enabled: bool):
        """
        Enable or disable TensorFlow vision.

        Args:
            enabled: True to enable, False to disable
        """
        self.set_processor_enabled(ProcessorKind.TENSOR_FLOW, enabled)

    def is_april_tag_vision_enabled(self) -> bool:
        """Check if AprilTag vision is enabled."""
        return self.is_processor_enabled(ProcessorKind.APRIL_TAG)

    def is_red_blob_vision_enabled(self) -> bool:
        """Check if RedBlob vision is enabled."""
        return self.is_processor_enabled(ProcessorKind.RED_BLOB)

    def is_blue_blob_vision_enabled(self) -> bool:
        """Check if BlueBlob vision is enabled."""
        return self.is_processor_enabled(ProcessorKind.BLUE_BLOB)

    def is_tensor_flow_vision_enabled(self) -> bool:
        """Check if TensorFlow vision is enabled."""
        return self.is_processor_enabled(ProcessorKind.TENSOR_FLOW)

    @staticmethod
    def compare_confidence(a: VisionTargetInfo, b: VisionTargetInfo) -> int:
        """
        Order targets by decreasing confidence.

        Args:
            a: First target
            b: Second target

        Returns:
            -1 if a has higher confidence than b, 0 if equal, 1 if a has lower confidence
        """
        a_confidence = a.detected_obj.confidence
        b_confidence = b.detected_obj.confidence
        if a_confidence > b_confidence:
            return -1
        if a_confidence < b_confidence:
            return 1
        return 0

    def get_detected_april_tag(self, tag_id: Optional[int] = None) -> Optional[VisionTargetInfo]:
        if self.april_tag_vision is None:
            return None
        return self.april_tag_vision.get_detected_april_tag(tag_id)

    def get_detected_blobs(self, kind: ProcessorKind) -> List[VisionTargetInfo]:
        """Blobs from the red or blue blob processor, largest first."""
        if kind not in (ProcessorKind.RED_BLOB, ProcessorKind.BLUE_BLOB):
            raise ValueError(f"{kind} is not a color blob processor")
        adapter = self.adapters[kind]
        return adapter.get_detected_targets() if adapter is not None else []

    def get_detected_tensor_flow_objects(self, label: Optional[str] = None) -> List[VisionTargetInfo]:
        """Neural network detections, highest confidence first."""
        if self.tensor_flow_vision is None:
            return []
        return self.tensor_flow_vision.get_detected_targets(label, self.compare_confidence)

    def get_detected_targets(self, kind: ProcessorKind) -> List[VisionTargetInfo]:
        """Latest targets for any processor kind."""
        if kind == ProcessorKind.APRIL_TAG:
            if self.april_tag_vision is None:
                return []
            return self.april_tag_vision.get_detected_april_tags()
        if kind == ProcessorKind.TENSOR_FLOW:
            return self.get_detected_tensor_flow_objects()
        return self.get_detected_blobs(kind)

    def result_time(self, kind: ProcessorKind) -> Optional[float]:
        processor = self._processor(kind)
        return processor.result_time if processor is not None else None

    def start(self) -> bool:
        """Start streaming frames to the enabled processors."""
        return self.vision.start()

    def close(self):
        self.vision.stop()

    def __enter__(self) -> "VisionService":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
