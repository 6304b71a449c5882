# playback/compositor.py
from __future__ import annotations

import asyncio
import enum
import itertools
import logging
import math
from typing import Callable, Optional, Tuple

import numpy as np

from errors import DrawSetupError, ImageDecodeError, LoadError, PlaybackError
from headtrack.store import HeadBox, HeadTrack, load_head_track
from metrics.perf import DrawTimer
from pipeline.codec import decode_data_url
from .video import HAVE_CURRENT_DATA

logger = logging.getLogger(__name__)

# The head track is generated against this rate; the video's real rate is
# never measured, so assets must be produced at 30 fps to stay aligned.
ASSUMED_FPS = 30.0
SUBSTITUTE_SCALE = 1.2

_session_ids = itertools.count(1)


def frame_index(current_time: float, fps: float = ASSUMED_FPS) -> int:
    return int(math.floor(current_time * fps))


def substitute_box(box: HeadBox, scale: float = SUBSTITUTE_SCALE) -> Tuple[float, float, float, float]:
    """Scale the head box about its own center: (x, y, w, h)."""
    w = box.width * scale
    h = box.height * scale
    return box.x - (w - box.width) / 2, box.y - (h - box.height) / 2, w, h


class SessionState(enum.Enum):
    IDLE = "idle"
    AWAITING_READY = "awaiting_ready"
    DRAWING = "drawing"
    STOPPED = "stopped"


class PlaybackSession:
    """
    One substitute image composited over one video onto one canvas.

    IDLE -> AWAITING_READY -> DRAWING -> STOPPED, never back. A callback
    that fires after STOPPED does nothing, which is how an already
    scheduled refresh gets cancelled.
    """

    def __init__(self, video, canvas, context, substitute: np.ndarray, track: Optional[HeadTrack],
                 scheduler, fps: float = ASSUMED_FPS, scale: float = SUBSTITUTE_SCALE,
                 present: Optional[Callable[[np.ndarray], None]] = None):
        self.id = next(_session_ids)
        self.video = video
        self.canvas = canvas
        self.context = context
        self.substitute = substitute
        self.track = track
        self.scheduler = scheduler
        self.fps = fps
        self.scale = scale
        self.present = present

        self.state = SessionState.IDLE
        self.frames_drawn = 0
        self.timer = DrawTimer()
        self._stopped = asyncio.Event()

    def __repr__(self):
        return f"PlaybackSession(id={self.id}, state={self.state.value})"

    def begin(self):
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"session {self.id} already started")
        self.state = SessionState.AWAITING_READY
        if self.video.ready_state >= HAVE_CURRENT_DATA:
            self._on_ready()
        else:
            self.video.add_listener("loadeddata", self._on_ready)

    def _on_ready(self, *_):
        if self.state is not SessionState.AWAITING_READY:
            return
        logger.info("Session %d: video is ready, starting canvas drawing", self.id)
        self.canvas.width = self.video.video_width
        self.canvas.height = self.video.video_height
        self.state = SessionState.DRAWING
        self.render_frame()

    def _draw(self):
        idx = frame_index(self.video.current_time, self.fps)
        frame = self.video.current_frame()
        if frame is not None:
            self.context.draw_image(frame, 0, 0, self.canvas.width, self.canvas.height)

        box = self.track.get(idx) if self.track is not None else None
        if box is not None:
            self.context.draw_image(self.substitute, *substitute_box(box, self.scale))
            self.timer.overlays += 1

        if self.present is not None:
            self.present(self.canvas.pixels)

    def render_frame(self, timestamp=None):
        if self.state is not SessionState.DRAWING:
            return

        try:
            with self.timer:
                self._draw()
        except Exception:
            logger.exception("Session %d: draw step failed, stopping", self.id)
            self._stop("draw error")
            return

        self.frames_drawn += 1
        if self.video.paused or self.video.ended:
            self._stop("ended" if self.video.ended else "paused")
        else:
            self.scheduler.request_frame(self.render_frame)

    def _stop(self, reason):
        if self.state is SessionState.STOPPED:
            return
        self.state = SessionState.STOPPED
        self.video.remove_listener("loadeddata", self._on_ready)
        self._stopped.set()
        logger.info("Session %d stopped (%s): %s", self.id, reason, self.timer.format())

    def teardown(self):
        self._stop("teardown")

    async def wait_stopped(self):
        await self._stopped.wait()


class PlaybackCompositor:
    """
    Owns the canvas and starts sessions. Starting a new session tears down
    the previous one so a stale session can never draw again.
    """

    def __init__(self, video, canvas, scheduler, head_track_source, fps: float = ASSUMED_FPS,
                 scale: float = SUBSTITUTE_SCALE, fetch_timeout: float = 10.0,
                 require_head_track: bool = True,
                 present: Optional[Callable[[np.ndarray], None]] = None):
        self.video = video
        self.canvas = canvas
        self.scheduler = scheduler
        self.head_track_source = head_track_source
        self.fps = fps
        self.scale = scale
        self.fetch_timeout = fetch_timeout
        self.require_head_track = require_head_track
        self.present = present
        self.session: Optional[PlaybackSession] = None

    def _context(self):
        if self.video is None:
            raise DrawSetupError("no video reference")
        if self.canvas is None:
            raise DrawSetupError("no canvas reference")
        context = self.canvas.get_context("2d")
        if context is None:
            raise DrawSetupError("canvas has no 2d drawing context")
        return context

    @staticmethod
    def _substitute(substitute) -> np.ndarray:
        if substitute is None:
            raise DrawSetupError("no substitute image")
        if isinstance(substitute, str):
            try:
                return decode_data_url(substitute)
            except ImageDecodeError as e:
                raise DrawSetupError(f"substitute image: {e}") from e
        return substitute

    async def _track(self) -> Optional[HeadTrack]:
        try:
            track = await load_head_track(self.head_track_source, timeout=self.fetch_timeout)
        except LoadError:
            if self.require_head_track:
                raise
            logger.warning("Head track %s unavailable, playing without overlay", self.head_track_source,
                           exc_info=True)
            return None

        if track.fps is not None and track.fps != self.fps:
            logger.warning(
                "Head track %s was produced at %.2f fps but frames are indexed at %.2f fps; "
                "the overlay will drift", self.head_track_source, track.fps, self.fps,
            )
        return track

    async def start(self, substitute) -> Optional[PlaybackSession]:
        """
        Set up and begin a session. Setup failures are logged and give None,
        leaving the canvas as it was.
        """
        try:
            context = self._context()
            image = self._substitute(substitute)
            track = await self._track()
        except DrawSetupError as e:
            logger.error("Error setting up playback: %s", e)
            return None
        except LoadError as e:
            logger.error("Error setting up playback, head track failed to load: %s", e)
            return None

        self.stop()
        session = PlaybackSession(
            self.video, self.canvas, context, image, track, self.scheduler,
            fps=self.fps, scale=self.scale, present=self.present,
        )
        self.session = session

        # must precede begin(): drawing stops on a paused video
        try:
            self.video.play()
        except PlaybackError as e:
            logger.error("Session %d: video autoplay was prevented: %s", session.id, e)

        session.begin()
        return session

    def stop(self):
        if self.session is not None:
            self.session.teardown()
            self.session = None
