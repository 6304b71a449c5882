import logging

from errors import MalformedLandmarksError, ModelLoadError
from .landmarks import landmarks_from_mesh, select_face

logger = logging.getLogger(__name__)


class BaseDetector:
    """
    All detectors must output from detect():
    - faces: list of dicts with:
        {
          "bbox": [x1, y1, x2, y2],
          "landmarks": Nx2 Face Mesh points (pixels) or None
        }

    initialize() loads the models and must raise ModelLoadError on failure.
    Until it succeeds, detect_one() reports "no face".
    """
    name = "base"

    def __init__(self):
        self.ready = False

    def _load(self):
        raise NotImplementedError

    def detect(self, frame):
        raise NotImplementedError

    def close(self):
        self.ready = False

    async def initialize(self):
        try:
            await self._load()
        except ModelLoadError:
            raise
        except Exception as e:
            raise ModelLoadError(f"{self.name}: {e}") from e
        self.ready = True
        logger.info("%s detector models loaded", self.name)
        return self.ready

    async def detect_one(self, image):
        """Landmarks of the single chosen face, or None."""
        if not self.ready:
            logger.warning("%s detector is not initialised; treating as no detection", self.name)
            return None

        face = select_face(self.detect(image))
        if face is None:
            return None
        try:
            return landmarks_from_mesh(face["landmarks"], bbox=face["bbox"])
        except MalformedLandmarksError as e:
            logger.warning("%s detector returned malformed landmarks, ignoring face: %s", self.name, e)
            return None
