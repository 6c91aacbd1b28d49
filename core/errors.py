"""
Error types raised by the tracker core and the inference services.
"""


class TrackerError(Exception):
    """Base class for bar tracker errors."""


class ModelLoadError(TrackerError):
    """A detection or pose model failed to initialize, or is not ready yet."""


class CaptureError(TrackerError):
    """The camera (or video file) could not be opened."""


class InferenceError(TrackerError):
    """A model returned output that does not match its contract."""
