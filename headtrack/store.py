# headtrack/store.py
from __future__ import annotations

import asyncio
import json
import logging
import math
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

import requests

from errors import LoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeadBox:
    """Head bounding box for one video frame, in source-video pixels."""
    frame_index: int
    x: float
    y: float
    width: float
    height: float


class HeadTrack:
    """
    Read-only, O(1) indexed sequence of HeadBox with possible gaps.

    A missing frame index is an expected outcome (detection dropout in the
    precomputed data) and simply means "no overlay for that frame".
    """

    def __init__(self, boxes: Mapping[int, HeadBox], fps: Optional[float] = None, source: str = "<memory>"):
        self._boxes = MappingProxyType(dict(boxes))
        self.fps = fps
        self.source = source

    def get(self, frame_index: int) -> Optional[HeadBox]:
        return self._boxes.get(frame_index)

    def __len__(self) -> int:
        return len(self._boxes)

    def __contains__(self, frame_index) -> bool:
        return frame_index in self._boxes

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._boxes))

    def __repr__(self) -> str:
        return f"HeadTrack(source={self.source!r}, boxes={len(self)}, fps={self.fps})"


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _parse_box(entry: Any, frame_index: int, source: str) -> HeadBox:
    if not isinstance(entry, dict):
        raise LoadError(source, f"frame {frame_index}: expected an object, got {type(entry).__name__}")

    values = {}
    for key in ("x", "y", "width", "height"):
        v = entry.get(key)
        if not _is_number(v):
            raise LoadError(source, f"frame {frame_index}: '{key}' must be a finite number, got {v!r}")
        values[key] = float(v)

    if values["width"] <= 0 or values["height"] <= 0:
        raise LoadError(source, f"frame {frame_index}: width/height must be > 0")

    return HeadBox(frame_index=frame_index, **values)


def _frame_key(raw: Any, source: str) -> int:
    if isinstance(raw, bool):
        raise LoadError(source, f"invalid frame index {raw!r}")
    try:
        idx = int(raw)
    except (TypeError, ValueError):
        raise LoadError(source, f"invalid frame index {raw!r}") from None
    if idx < 0 or (isinstance(raw, float) and raw != idx):
        raise LoadError(source, f"invalid frame index {raw!r}")
    return idx


def _add(boxes: Dict[int, HeadBox], box: HeadBox, source: str):
    if box.frame_index in boxes:
        raise LoadError(source, f"duplicate frame index {box.frame_index}")
    boxes[box.frame_index] = box


def parse_head_track(data: Any, source: str = "<memory>") -> HeadTrack:
    """
    Validate decoded JSON and build a HeadTrack.

    Accepted shapes:
      - [box | null, ...]          position is the frame index, null is a gap;
                                   an entry may carry "frameIndex"/"frame"
      - {"<index>": box, ...}
      - {"fps": 30, "frames": <either of the above>}
    """
    fps = None
    if isinstance(data, dict) and "frames" in data:
        raw_fps = data.get("fps")
        if raw_fps is not None:
            if not _is_number(raw_fps) or raw_fps <= 0:
                raise LoadError(source, f"invalid fps {raw_fps!r}")
            fps = float(raw_fps)
        data = data["frames"]

    boxes: Dict[int, HeadBox] = {}

    if isinstance(data, list):
        for pos, entry in enumerate(data):
            if entry is None:
                continue
            if isinstance(entry, dict) and ("frameIndex" in entry or "frame" in entry):
                idx = _frame_key(entry.get("frameIndex", entry.get("frame")), source)
            else:
                idx = pos
            _add(boxes, _parse_box(entry, idx, source), source)
    elif isinstance(data, dict):
        for key, entry in data.items():
            if entry is None:
                continue
            _add(boxes, _parse_box(entry, _frame_key(key, source), source), source)
    else:
        raise LoadError(source, f"expected a sequence of head boxes, got {type(data).__name__}")

    return HeadTrack(boxes, fps=fps, source=source)


def _fetch_json(url: str, timeout: float):
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise LoadError(url, f"request failed: {e}") from e

    if not response.ok:
        raise LoadError(url, f"HTTP {response.status_code}")

    try:
        return response.json()
    except ValueError as e:
        raise LoadError(url, f"not valid JSON: {e}") from e


def _read_json(path: str):
    try:
        with open(path, "r") as f:
            return json.load(f)
    except OSError as e:
        raise LoadError(path, f"cannot read file: {e}") from e
    except ValueError as e:
        raise LoadError(path, f"not valid JSON: {e}") from e


async def load_head_track(source, timeout: float = 10.0) -> HeadTrack:
    """
    Fetch and parse a head track from an http(s) URL or a local path.
    Single attempt; any failure is a LoadError.
    """
    source = os.fspath(source)
    if source.startswith(("http://", "https://")):
        data = await asyncio.to_thread(_fetch_json, source, timeout)
    else:
        data = await asyncio.to_thread(_read_json, source)

    track = parse_head_track(data, source=source)
    logger.info("Loaded %d head boxes from %s", len(track), source)
    return track
