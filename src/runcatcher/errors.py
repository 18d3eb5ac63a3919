"""Exception types shared by the client and the capture service."""


class RunCatcherError(Exception):
    """Base class for RunCatcher errors."""


class DetectorLoadError(RunCatcherError):
    """No face detection model could be loaded."""


class CameraError(RunCatcherError):
    """The camera source could not be opened or read."""


class InvalidCaptureError(RunCatcherError):
    """A capture request is missing required data."""


class CaptureStorageError(RunCatcherError):
    """A capture could not be written to the captures directory."""
