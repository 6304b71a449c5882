import asyncio
import logging
import os
import tempfile

import numpy as np
import requests

from errors import LoadError, ModelLoadError
from .base_detector import BaseDetector
from .landmarks import mesh_points_to_face

logger = logging.getLogger(__name__)

MODEL_BASE_URL = "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1"
MODEL_NAME = "face_landmarker.task"


def fetch_model(model_base, model_name=MODEL_NAME, cache_dir="models", timeout=30.0):
    """
    Resolve model_name under model_base and return a local file path.
    A local base directory is used as is; an http(s) base is downloaded
    once into cache_dir.
    """
    if not model_base.startswith(("http://", "https://")):
        path = os.path.join(model_base, model_name)
        if not os.path.isfile(path):
            raise LoadError(path, "model asset not found")
        return path

    path = os.path.join(cache_dir, model_name)
    if os.path.isfile(path):
        return path

    url = model_base.rstrip("/") + "/" + model_name
    logger.info("Downloading %s to %s", url, path)
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise LoadError(url, f"request failed: {e}") from e
    if not response.ok:
        raise LoadError(url, f"HTTP {response.status_code}")

    os.makedirs(cache_dir, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=cache_dir, prefix=model_name + ".", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(response.content)
        os.replace(tmp, path)
    except BaseException:
        os.unlink(tmp)
        raise
    return path


class FaceLandmarkerDetector(BaseDetector):
    """MediaPipe Tasks FaceLandmarker; same 478-point topology as Face Mesh."""
    name = "landmarker"

    def __init__(self, model_base=MODEL_BASE_URL, model_name=MODEL_NAME, cache_dir="models",
                 max_num_faces=5, min_detection_confidence=0.5):
        super().__init__()
        self.model_base = model_base
        self.model_name = model_name
        self.cache_dir = cache_dir
        self.max_num_faces = max_num_faces
        self.min_detection_confidence = min_detection_confidence
        self.landmarker = None

    async def _load(self):
        try:
            model_path = await asyncio.to_thread(
                fetch_model, self.model_base, self.model_name, self.cache_dir
            )
        except LoadError as e:
            raise ModelLoadError(f"{self.name}: {e}") from e

        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        options = vision.FaceLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=model_path),
            running_mode=vision.RunningMode.IMAGE,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False,
            num_faces=self.max_num_faces,
            min_face_detection_confidence=self.min_detection_confidence,
        )
        self.landmarker = vision.FaceLandmarker.create_from_options(options)

    def detect(self, frame):
        import cv2
        import mediapipe as mp

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        result = self.landmarker.detect(mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb))

        h, w = frame.shape[:2]
        faces = []
        for lms in result.face_landmarks or []:
            pts = np.array([(p.x * w, p.y * h) for p in lms], dtype=np.float32)
            faces.append(mesh_points_to_face(pts))
        return faces

    def close(self):
        if self.landmarker is not None:
            self.landmarker.close()
            self.landmarker = None
        self.ready = False
