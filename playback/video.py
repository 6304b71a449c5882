# playback/video.py
from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import defaultdict
from typing import Callable, Optional

import cv2
import numpy as np

from errors import PlaybackError

logger = logging.getLogger(__name__)

# readiness levels, same meaning as HTMLMediaElement.readyState
HAVE_NOTHING = 0
HAVE_METADATA = 1
HAVE_CURRENT_DATA = 2

# forward gaps larger than this seek instead of grabbing frame by frame
SEEK_THRESHOLD = 15


class VideoPlayer:
    """
    Plays a video file against a wall clock and hands out the frame that
    matches the current playback time.

    Fires "loadeddata" once the first frame is decoded and the intrinsic
    size (video_width, video_height) is known.
    """

    def __init__(self, path, loop: bool = True, clock: Callable[[], float] = time.monotonic):
        self.path = str(path)
        self.loop = loop
        self._clock = clock

        self.ready_state = HAVE_NOTHING
        self.video_width = 0
        self.video_height = 0
        self.fps = 0.0
        self.frame_count = 0
        self.duration: Optional[float] = None

        self.paused = True
        self.ended = False

        self._cap = None
        self._closed = False
        self._frame: Optional[np.ndarray] = None
        self._pos = -1
        self._started_at: Optional[float] = None
        self._paused_at = 0.0
        self._listeners = defaultdict(list)

    # ---- events ----
    def add_listener(self, event: str, callback):
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback):
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def listener_count(self, event: str) -> int:
        return len(self._listeners[event])

    def _dispatch(self, event: str):
        for cb in list(self._listeners[event]):
            cb(self)

    # ---- loading ----
    def _open(self):
        cap = cv2.VideoCapture(self.path)
        if not cap.isOpened():
            raise PlaybackError(f"Could not open {self.path}")
        ok, frame = cap.read()
        if not ok:
            cap.release()
            raise PlaybackError(f"No frames in {self.path}")
        return cap, frame

    async def load(self):
        if self.ready_state >= HAVE_CURRENT_DATA:
            return
        cap, frame = await asyncio.to_thread(self._open)

        self._cap = cap
        self._frame = frame
        self._pos = 0
        self.video_height, self.video_width = frame.shape[:2]
        self.fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
        self.frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        if self.fps > 0 and self.frame_count > 0:
            self.duration = self.frame_count / self.fps

        self.ready_state = HAVE_CURRENT_DATA
        if not self.paused:
            self._started_at = self._clock() - self._paused_at
        logger.info("Loaded %s (%dx%d, %.2f fps, %s frames)",
                    self.path, self.video_width, self.video_height, self.fps, self.frame_count)
        self._dispatch("loadeddata")

    # ---- transport ----
    def play(self):
        if self._closed:
            raise PlaybackError(f"{self.path} has been released")
        if self.ended:
            self.ended = False
            self._paused_at = 0.0
        self.paused = False
        if self.ready_state >= HAVE_CURRENT_DATA:
            self._started_at = self._clock() - self._paused_at

    def pause(self):
        if self.paused:
            return
        self._paused_at = self.current_time
        self.paused = True

    def _end(self):
        self._paused_at = self.duration or self._paused_at
        self.ended = True
        self.paused = True

    def _restart(self):
        self._started_at = self._clock()
        self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
        self._pos = -1

    @property
    def current_time(self) -> float:
        if self.paused or self._started_at is None:
            return self._paused_at

        t = self._clock() - self._started_at
        if self.duration and t >= self.duration:
            if self.loop:
                return t % self.duration
            self._end()
            return self._paused_at
        return t

    def current_frame(self) -> Optional[np.ndarray]:
        """Decoded frame for current_time; the last good frame if decoding stalls."""
        if self._cap is None:
            return None

        rate = self.fps if self.fps > 0 else 30.0
        target = int(math.floor(self.current_time * rate))
        if self.frame_count:
            target = min(target, self.frame_count - 1)
        if target == self._pos:
            return self._frame

        if target < self._pos or target - self._pos > SEEK_THRESHOLD:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, target)
        else:
            for _ in range(target - self._pos - 1):
                self._cap.grab()

        ok, frame = self._cap.read()
        if ok:
            self._frame = frame
            self._pos = target
        elif self.duration is None:
            # unknown length: running off the end is the only end signal
            if self.loop:
                self._restart()
            else:
                self._paused_at = self.current_time
                self.ended = True
                self.paused = True
        return self._frame

    def release(self):
        self.pause()
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._closed = True
