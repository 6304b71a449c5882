class MemefaceError(Exception):
    """Base class for every recoverable failure in the demo."""


class LoadError(MemefaceError):
    """A head-track or model asset could not be fetched or parsed."""

    def __init__(self, resource, message):
        self.resource = resource
        super().__init__(f"{resource}: {message}")


class ModelLoadError(MemefaceError):
    """The face detector could not be initialised."""


class MalformedLandmarksError(MemefaceError):
    """Detector returned landmark groups too short to index safely."""


class DrawSetupError(MemefaceError):
    """Missing video, canvas or drawing context at session start."""


class PlaybackError(MemefaceError):
    """The video could not be opened or started."""


class CameraError(MemefaceError):
    """The camera could not be opened or produced no frame."""


class ImageDecodeError(MemefaceError):
    """An encoded image (data URL or bytes) could not be decoded."""
