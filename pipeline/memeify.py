import logging

from overlays.meme import MemeFeatureOverlay
from .codec import decode_data_url, encode_data_url

logger = logging.getLogger(__name__)


async def memeify(image, detector, overlay=None):
    """Detect one face and draw the meme features on a copy of image."""
    overlay = overlay or MemeFeatureOverlay()
    landmarks = await detector.detect_one(image)
    if landmarks is None:
        logger.info("No face detected for memeification.")
    return overlay.apply(image, landmarks)


async def memeify_data_url(data_url, detector, overlay=None, mime="image/jpeg"):
    image = decode_data_url(data_url)
    out = await memeify(image, detector, overlay)
    return encode_data_url(out, mime=mime)
