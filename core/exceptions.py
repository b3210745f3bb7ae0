"""
Exception hierarchy for the robot vision system.
"""

from core.constants import ErrorMessages


class VisionException(Exception):
    """Base class for all vision errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ResourceNotFoundError(VisionException):
    """A hardware device or asset the configuration names does not exist."""

    status_code = 404


class CameraNotFoundError(ResourceNotFoundError):
    def __init__(self, name: str):
        super().__init__(ErrorMessages.CAMERA_NOT_FOUND.format(name=name))
        self.name = name


class ModelNotFoundError(ResourceNotFoundError):
    def __init__(self, path: str):
        super().__init__(ErrorMessages.MODEL_NOT_FOUND.format(path=path))
        self.path = path


class ConfigurationError(VisionException):
    """Malformed processor configuration (thresholds, filter ranges, ...)."""

    status_code = 400


class ProcessorNotAttachedError(VisionException, ValueError):
    status_code = 400

    def __init__(self, processor):
        super().__init__(ErrorMessages.PROCESSOR_NOT_ATTACHED.format(processor=processor))
        self.processor = processor
