"""Configuration dataclasses for the memeface demo.

Example:
    >>> config = DemoConfig(
    ...     playback=PlaybackConfig(video_path="thoppi.mp4",
    ...                             head_track_source="video-head-data.json"),
    ...     detector=DetectorConfig(backend="landmarker", model_base="./models"),
    ... )
"""

import json
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

from detectors.landmarker_detector import MODEL_BASE_URL, MODEL_NAME


@dataclass
class DetectorConfig:
    """Face detector settings.

    Attributes:
        backend: "mesh" (MediaPipe Face Mesh, bundled model) or
            "landmarker" (MediaPipe FaceLandmarker task file).
        model_base: Directory or http(s) base URL holding the model assets.
        model_name: Model asset file name under model_base.
        cache_dir: Where downloaded model assets are stored.
        max_num_faces: Faces considered before picking the largest.
        min_detection_confidence: Detector score threshold.
    """

    backend: str = "mesh"
    model_base: str = MODEL_BASE_URL
    model_name: str = MODEL_NAME
    cache_dir: str = "models"
    max_num_faces: int = 5
    min_detection_confidence: float = 0.5


@dataclass
class PlaybackConfig:
    """Compositor settings.

    Attributes:
        video_path: Looping background clip.
        head_track_source: Path or URL of the per-frame head box JSON.
        frame_rate: Rate used to turn playback time into a head-track index.
        substitute_scale: Substitute image size relative to the head box.
        refresh_rate: Display refresh rate driving the draw loop.
        loop: Loop the clip.
        require_head_track: Abort the session when the head track fails to
            load; when False the clip plays without overlay.
        fetch_timeout: HTTP timeout for the head track, seconds.
    """

    video_path: str = "thoppi.mp4"
    head_track_source: str = "video-head-data.json"
    frame_rate: float = 30.0
    substitute_scale: float = 1.2
    refresh_rate: float = 60.0
    loop: bool = True
    require_head_track: bool = True
    fetch_timeout: float = 10.0


@dataclass
class CaptureConfig:
    """Camera snapshot settings."""

    camera_index: int = 0
    warmup_seconds: float = 2.0


@dataclass
class DemoConfig:
    """Complete demo configuration.

    Attributes:
        detector: Face detector settings.
        playback: Compositor settings.
        capture: Camera snapshot settings.
        show_window: Present the canvas in an OpenCV window.
        duration: Stop playback after this many seconds (None = until 'q').
    """

    detector: DetectorConfig = field(default_factory=DetectorConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    show_window: bool = True
    duration: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DemoConfig":
        """Build from a nested dict; unknown keys raise ValueError."""
        sections = {"detector": DetectorConfig, "playback": PlaybackConfig, "capture": CaptureConfig}
        kwargs = {}
        for key, value in data.items():
            if key in sections:
                kwargs[key] = _build(sections[key], value or {})
            elif key in {f.name for f in fields(cls)}:
                kwargs[key] = value
            else:
                raise ValueError(f"Unknown config key: {key}")
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build(section_cls, values: Dict[str, Any]):
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown {section_cls.__name__} keys: {sorted(unknown)}")
    return section_cls(**values)


def load_config(path) -> DemoConfig:
    with open(path, "r") as f:
        return DemoConfig.from_dict(json.load(f))
