import base64
import binascii
import re

import cv2
import numpy as np

from errors import ImageDecodeError

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?P<params>(;[^;,]*)*?);base64,(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def decode_image_bytes(data):
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ImageDecodeError("bytes are not a decodable raster image")
    return img


def decode_data_url(url):
    """'data:image/...;base64,...' -> BGR ndarray."""
    m = _DATA_URL.match(url.strip()) if isinstance(url, str) else None
    if m is None:
        raise ImageDecodeError("not a base64 data URL")
    try:
        raw = base64.b64decode(m.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"invalid base64 payload: {e}") from e
    return decode_image_bytes(raw)


def encode_data_url(image, mime="image/jpeg", quality=92):
    if mime not in _EXTENSIONS:
        raise ValueError(f"Unsupported mime type {mime!r}")
    params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)] if mime == "image/jpeg" else []
    ok, buf = cv2.imencode(_EXTENSIONS[mime], image, params)
    if not ok:
        raise ImageDecodeError(f"could not encode image as {mime}")
    return f"data:{mime};base64," + base64.b64encode(buf.tobytes()).decode("ascii")
