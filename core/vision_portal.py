"""
Vision Portal - multiplexes one camera stream across registered processors.

The portal owns the camera and a background capture loop. Every captured frame
is dispatched, in registration order, to each processor that is currently
enabled. Enabled state can be changed from any thread while streaming.
"""

import logging
import time
from threading import Event, Lock, Thread
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from core.camera_manager import Camera
from core.constants import CameraConstants
from core.exceptions import ProcessorNotAttachedError
from vision.processor import VisionProcessor

logger = logging.getLogger(__name__)


class VisionPortal:
    """Camera multiplexer for vision processors"""

    def __init__(
        self,
        camera: Camera,
        image_width: int,
        image_height: int,
        show_view: bool,
        processors: Sequence[VisionProcessor],
    ):
        """
        Initialize portal.

        Args:
            camera: Camera to stream from (connected on start())
            image_width: Stream width in pixels
            image_height: Stream height in pixels
            show_view: Show the annotated stream in a window
            processors: Processors to attach, in dispatch order
        """
        self.camera = camera
        self.image_width = image_width
        self.image_height = image_height
        self.show_view = show_view
        self._processors: Tuple[VisionProcessor, ...] = tuple(processors)

        # Processors are keyed by identity; attached processors start enabled
        self._enabled: Dict[int, bool] = {id(p): True for p in self._processors}
        self.lock = Lock()

        self._stream_thread: Optional[Thread] = None
        self._stop_event = Event()
        self.frame_count = 0
        self._view_open = False

        for processor in self._processors:
            processor.init(image_width, image_height)

        logger.info(
            f"Vision portal created for {camera} at {image_width}x{image_height} "
            f"with {len(self._processors)} processor(s)"
        )

    @property
    def processors(self) -> Tuple[VisionProcessor, ...]:
        return self._processors

    def _key(self, processor: VisionProcessor) -> int:
        key = id(processor)
        if key not in self._enabled:
            raise ProcessorNotAttachedError(processor)
        return key

    def set_processor_enabled(self, processor: VisionProcessor, enabled: bool):
        """
        Enable or disable frame dispatch to a processor.

        Raises:
            ProcessorNotAttachedError: If the processor was not given to this portal
        """
        with self.lock:
            key = self._key(processor)
            self._enabled[key] = bool(enabled)
            # Clear together with the flag so dispatch never snapshots a stale generation
            if not enabled:
                processor.clear_results()
        logger.debug(f"{processor} {'enabled' if enabled else 'disabled'}")

    def is_processor_enabled(self, processor: VisionProcessor) -> bool:
        """
        Raises:
            ProcessorNotAttachedError: If the processor was not given to this portal
        """
        with self.lock:
            return self._enabled[self._key(processor)]

    def enabled_processors(self) -> List[VisionProcessor]:
        with self.lock:
            return [p for p in self._processors if self._enabled[id(p)]]

    def _dispatch_targets(self) -> List[Tuple[VisionProcessor, int]]:
        with self.lock:
            return [(p, p.generation) for p in self._processors if self._enabled[id(p)]]

    def dispatch(self, frame: np.ndarray, capture_time: Optional[float] = None) -> np.ndarray:
        """
        Hand a frame to every enabled processor.

        Args:
            frame: BGR frame
            capture_time: When the frame was captured (defaults to now)

        Returns:
            Copy of the frame annotated by each processor
        """
        if capture_time is None:
            capture_time = time.time()

        annotated = frame.copy()
        for processor, generation in self._dispatch_targets():
            try:
                results = processor.process_frame(frame, capture_time, generation)
                processor.draw(annotated, results)
            except Exception as e:
                logger.error(f"{processor} failed on frame {self.frame_count}: {e}", exc_info=True)

        self.frame_count += 1
        return annotated

    @property
    def is_streaming(self) -> bool:
        return self._stream_thread is not None and self._stream_thread.is_alive()

    def start(self) -> bool:
        """Connect the camera and start the capture loop."""
        if self.is_streaming:
            logger.warning("Vision portal is already streaming")
            return True

        if not self.camera.connect():
            logger.error(f"Failed to connect {self.camera}")
            return False

        self._stop_event.clear()
        self._stream_thread = Thread(target=self._stream_worker, daemon=True)
        self._stream_thread.start()
        logger.info(f"Streaming from {self.camera}")
        return True

    def stop(self):
        """Stop the capture loop and release the camera."""
        self._stop_event.set()
        if self._stream_thread:
            self._stream_thread.join(timeout=CameraConstants.STREAM_JOIN_TIMEOUT_SEC)
            self._stream_thread = None
        self.camera.disconnect()
        if self._view_open:
            cv2.destroyWindow(CameraConstants.VIEW_WINDOW_NAME)
            self._view_open = False
        logger.info("Vision portal stopped")

    def _stream_worker(self):
        """Worker thread for frame capture and dispatch"""
        while not self._stop_event.is_set():
            frame = self.camera.capture()
            if frame is None:
                time.sleep(CameraConstants.CAPTURE_RETRY_DELAY_SEC)
                continue

            annotated = self.dispatch(frame, self.camera.last_capture_time)

            if self.show_view:
                cv2.imshow(CameraConstants.VIEW_WINDOW_NAME, annotated)
                cv2.waitKey(1)
                self._view_open = True
