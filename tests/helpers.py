"""Shared test helpers for memeface tests."""

from collections import defaultdict
from pathlib import Path

import cv2
import numpy as np

from detectors.base_detector import BaseDetector
from detectors.landmarks import FaceLandmarks
from playback.video import HAVE_CURRENT_DATA, HAVE_NOTHING


def create_test_video(path: Path, num_frames: int = 30, fps: int = 30,
                      width: int = 320, height: int = 240) -> None:
    """Write a video whose frame i has a solid blue level of i * 8."""
    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    writer = cv2.VideoWriter(str(path), fourcc, fps, (width, height))

    for i in range(num_frames):
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        frame[:, :, 0] = (i * 8) % 256
        writer.write(frame)

    writer.release()


def make_landmarks(mouth0=(100, 200), mouth6=(140, 200),
                   left_eye=((50, 80), (60, 80)), right_eye=((150, 80), (160, 80)),
                   mouth_points=20, eye_points=6):
    """Landmarks with the given corners; the remaining points sit between them."""
    mouth = [mouth0] + [((mouth0[0] + mouth6[0]) / 2, mouth0[1] + 5)] * 5 + [mouth6]
    mouth += [((mouth0[0] + mouth6[0]) / 2, mouth0[1] + 2)] * (20 - 7)

    def eye(corners):
        a, b = corners
        mid = ((a[0] + b[0]) / 2, a[1] - 2)
        return [a, mid, mid, b, mid, mid]

    return FaceLandmarks.from_groups(
        mouth[:mouth_points], eye(left_eye)[:eye_points], eye(right_eye)[:eye_points],
    )


class FakeDetector(BaseDetector):
    """Detector returning canned faces; optionally failing to load."""
    name = "fake"

    def __init__(self, faces=None, landmarks=None, fail=False):
        super().__init__()
        self.faces = faces or []
        self.landmarks = landmarks
        self.fail = fail
        self.calls = 0

    async def _load(self):
        if self.fail:
            raise RuntimeError("model assets unreachable")

    def detect(self, frame):
        self.calls += 1
        return self.faces

    async def detect_one(self, image):
        if self.landmarks is not None and self.ready:
            self.calls += 1
            return self.landmarks
        return await super().detect_one(image)


class FakeVideo:
    """Stand-in for VideoPlayer with directly settable playback state."""

    def __init__(self, width=64, height=48, ready=True, frame_value=100):
        self.video_width = width
        self.video_height = height
        self.ready_state = HAVE_CURRENT_DATA if ready else HAVE_NOTHING
        self.current_time = 0.0
        self.paused = True
        self.ended = False
        self.play_error = None
        self.frame = np.full((height, width, 3), frame_value, dtype=np.uint8)
        self._listeners = defaultdict(list)

    def add_listener(self, event, cb):
        self._listeners[event].append(cb)

    def remove_listener(self, event, cb):
        if cb in self._listeners[event]:
            self._listeners[event].remove(cb)

    def listener_count(self, event):
        return len(self._listeners[event])

    def fire_ready(self):
        self.ready_state = HAVE_CURRENT_DATA
        for cb in list(self._listeners["loadeddata"]):
            cb(self)

    def play(self):
        if self.play_error is not None:
            raise self.play_error
        self.paused = False

    def pause(self):
        self.paused = True

    def current_frame(self):
        return self.frame


class ManualScheduler:
    """Refresh scheduler driven by tick() from the test."""

    def __init__(self):
        self.pending = []

    def request_frame(self, callback):
        self.pending.append(callback)

    def tick(self):
        callbacks, self.pending = self.pending, []
        for cb in callbacks:
            cb(0.0)
        return len(callbacks)


class FakeClock:
    def __init__(self, t=0.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, dt):
        self.t += dt
