import asyncio
import logging
import time

import cv2

from errors import CameraError

logger = logging.getLogger(__name__)


def _grab_after_warmup(camera_index, warmup_seconds):
    cap = cv2.VideoCapture(camera_index)
    if not cap.isOpened():
        raise CameraError(f"Could not open camera {camera_index}")

    try:
        frame = None
        deadline = time.monotonic() + warmup_seconds
        # keep reading so exposure settles on a live picture
        while True:
            ret, f = cap.read()
            if ret:
                frame = f
            if time.monotonic() >= deadline:
                break
        if frame is None:
            raise CameraError(f"Camera {camera_index} produced no frame")
        return frame
    finally:
        cap.release()


async def capture_snapshot(camera_index=0, warmup_seconds=2.0):
    """Open the camera, let it warm up, keep the last frame and release the device."""
    logger.info("Capturing snapshot from camera %s in %.1fs", camera_index, warmup_seconds)
    frame = await asyncio.to_thread(_grab_after_warmup, camera_index, warmup_seconds)
    logger.info("Captured %dx%d snapshot", frame.shape[1], frame.shape[0])
    return frame
