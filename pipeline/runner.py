import asyncio
import logging

from detectors.factory import build_detector
from errors import CameraError, ModelLoadError, PlaybackError
from overlays.meme import MemeFeatureOverlay
from playback.canvas import Canvas
from playback.compositor import PlaybackCompositor
from playback.refresh import RefreshScheduler
from playback.video import VideoPlayer
from .camera import capture_snapshot
from .memeify import memeify

logger = logging.getLogger(__name__)

WINDOW_NAME = "memeface"


class CanvasWindow:
    """Shows each composited canvas; 'q' pauses the video, which stops the session."""

    def __init__(self, video, name=WINDOW_NAME):
        self.video = video
        self.name = name

    def __call__(self, pixels):
        import cv2
        cv2.imshow(self.name, pixels)
        if cv2.waitKey(1) & 0xFF == ord('q'):
            self.video.pause()

    def close(self):
        import cv2
        cv2.destroyWindow(self.name)


async def prepare_substitute(config, detector, snapshot=None):
    """Capture (unless given) and memeify the still image."""
    if snapshot is None:
        snapshot = await capture_snapshot(config.capture.camera_index, config.capture.warmup_seconds)
    return await memeify(snapshot, detector, MemeFeatureOverlay())


async def init_detector(config):
    detector = build_detector(config.detector)
    try:
        await detector.initialize()
    except ModelLoadError as e:
        logger.error("Failed to load face detector models, features will be skipped: %s", e)
    return detector


async def _stop_after(video, seconds):
    await asyncio.sleep(seconds)
    logger.info("Duration of %.1fs reached, pausing playback", seconds)
    video.pause()


async def run_demo(config, snapshot=None, present=None):
    """
    Full flow: detector -> snapshot -> memeify -> looping video composited
    with the meme face until playback stops. Returns the session or None.
    """
    detector = await init_detector(config)
    try:
        substitute = await prepare_substitute(config, detector, snapshot)
    except CameraError as e:
        logger.error("Camera permission or device problem: %s", e)
        return None
    finally:
        detector.close()

    pb = config.playback
    video = VideoPlayer(pb.video_path, loop=pb.loop)
    window = None
    if present is None and config.show_window:
        window = present = CanvasWindow(video)

    compositor = PlaybackCompositor(
        video, Canvas(), RefreshScheduler(pb.refresh_rate), pb.head_track_source,
        fps=pb.frame_rate, scale=pb.substitute_scale, fetch_timeout=pb.fetch_timeout,
        require_head_track=pb.require_head_track, present=present,
    )

    session = await compositor.start(substitute)
    if session is None:
        video.release()
        return None

    timer = None
    try:
        try:
            await video.load()
        except PlaybackError as e:
            logger.error("Session %d: %s", session.id, e)
            compositor.stop()
            return session

        if config.duration is not None:
            timer = asyncio.create_task(_stop_after(video, config.duration))
        await session.wait_stopped()
    finally:
        if timer is not None:
            timer.cancel()
        compositor.stop()
        video.release()
        if window is not None:
            window.close()

    return session
