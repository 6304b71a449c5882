from .mp_mesh_detector import MediaPipeMeshDetector
from .landmarker_detector import FaceLandmarkerDetector

DETECTORS = {
    MediaPipeMeshDetector.name: MediaPipeMeshDetector,
    FaceLandmarkerDetector.name: FaceLandmarkerDetector,
}


def build_detector(config):
    """Instantiate the backend named by a DetectorConfig."""
    if config.backend not in DETECTORS:
        raise ValueError(f"Unknown detector backend {config.backend!r}, choose from {sorted(DETECTORS)}")

    if config.backend == FaceLandmarkerDetector.name:
        return FaceLandmarkerDetector(
            model_base=config.model_base,
            model_name=config.model_name,
            cache_dir=config.cache_dir,
            max_num_faces=config.max_num_faces,
            min_detection_confidence=config.min_detection_confidence,
        )
    return MediaPipeMeshDetector(
        max_num_faces=config.max_num_faces,
        min_detection_confidence=config.min_detection_confidence,
    )
