# playback/canvas.py
from __future__ import annotations
from typing import Optional

import cv2
import numpy as np


class Canvas:
    """
    BGR drawing surface. Assigning width or height reallocates the
    pixel buffer, which clears it.
    """

    def __init__(self, width: int = 300, height: int = 150):
        self._width = int(width)
        self._height = int(height)
        self.pixels = self._blank()
        self._context = None

    def _blank(self) -> np.ndarray:
        return np.zeros((self._height, self._width, 3), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self._width

    @width.setter
    def width(self, value: int):
        self._width = int(value)
        self.pixels = self._blank()

    @property
    def height(self) -> int:
        return self._height

    @height.setter
    def height(self, value: int):
        self._height = int(value)
        self.pixels = self._blank()

    def get_context(self, kind: str = "2d") -> Optional["DrawingContext"]:
        if kind != "2d":
            return None
        if self._context is None:
            self._context = DrawingContext(self)
        return self._context


def _to_bgra(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 3:
        alpha = np.full(img.shape[:2] + (1,), 255, dtype=img.dtype)
        img = np.concatenate([img, alpha], axis=2)
    return img


def overlay_image(bg_bgr: np.ndarray, fg: np.ndarray, x: int, y: int, w: int, h: int) -> np.ndarray:
    """
    Resize fg to (w, h), place its top-left corner at (x, y) and blend it into
    bg_bgr in place, clipped to bg bounds. BGRA sources blend on alpha.
    """
    H, W = bg_bgr.shape[:2]
    if w <= 0 or h <= 0:
        return bg_bgr

    x1, y1 = max(x, 0), max(y, 0)
    x2, y2 = min(x + w, W), min(y + h, H)
    if x1 >= x2 or y1 >= y2:
        return bg_bgr

    if fg.shape[1] != w or fg.shape[0] != h:
        fg = cv2.resize(fg, (w, h), interpolation=cv2.INTER_LINEAR)
    fg = _to_bgra(fg)

    fg_x1, fg_y1 = x1 - x, y1 - y
    fg_crop = fg[fg_y1:fg_y1 + (y2 - y1), fg_x1:fg_x1 + (x2 - x1)]

    alpha = fg_crop[:, :, 3:4]
    if np.all(alpha == 255):
        bg_bgr[y1:y2, x1:x2] = fg_crop[:, :, :3]
        return bg_bgr

    a = alpha.astype(np.float32) / 255.0
    roi = bg_bgr[y1:y2, x1:x2].astype(np.float32)
    out = fg_crop[:, :, :3].astype(np.float32) * a + roi * (1.0 - a)
    bg_bgr[y1:y2, x1:x2] = np.clip(np.round(out), 0, 255).astype(np.uint8)
    return bg_bgr


class DrawingContext:
    def __init__(self, canvas: Canvas):
        self.canvas = canvas

    def draw_image(self, image: np.ndarray, x: float, y: float,
                   width: Optional[float] = None, height: Optional[float] = None):
        """Draw image at (x, y), scaled to width x height when given."""
        if image is None:
            return
        w = image.shape[1] if width is None else int(round(width))
        h = image.shape[0] if height is None else int(round(height))
        overlay_image(self.canvas.pixels, image, int(round(x)), int(round(y)), w, h)
