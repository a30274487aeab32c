"""Errors raised while turning frames into cycle decisions."""


class VisionError(Exception):
    """Base vision pipeline exception."""


class ClassifierUnavailableError(VisionError):
    """Raised when a classifier port has no loaded model this cycle."""

    def __init__(self, port: str):
        super().__init__(f"Classifier '{port}' is not available")
        self.port = port


class ClassifierFailureError(VisionError):
    """Raised when a classifier call fails or exceeds its deadline."""

    def __init__(self, port: str, cause: BaseException | None = None):
        reason = "timed out" if cause is None else f"{type(cause).__name__}: {cause}"
        super().__init__(f"Classifier '{port}' failed: {reason}")
        self.port = port
        self.cause = cause


class FrameUnavailableError(VisionError):
    """Raised when the frame source has no frame for this tick."""


class GalleryLoadError(VisionError):
    """Raised when a reference image cannot be read or has no detectable face."""

    def __init__(self, label: str, reason: str):
        super().__init__(f"Gallery entry '{label}': {reason}")
        self.label = label
        self.reason = reason


class ClassifierBusyError(VisionError):
    """Raised when a classifier is still working on an earlier frame."""

    def __init__(self, port: str):
        super().__init__(f"Classifier '{port}' is still busy with a previous frame")
        self.port = port
