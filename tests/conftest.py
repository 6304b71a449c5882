"""Shared fixtures for memeface tests."""

import json

import numpy as np
import pytest

from helpers import FakeVideo, ManualScheduler, make_landmarks


@pytest.fixture
def photo():
    """Flat mid-grey 240x320 still image."""
    return np.full((240, 320, 3), 128, dtype=np.uint8)


@pytest.fixture
def landmarks():
    return make_landmarks()


@pytest.fixture
def video():
    return FakeVideo()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def track_file(tmp_path):
    path = tmp_path / "video-head-data.json"
    path.write_text(json.dumps([
        {"x": 10, "y": 10, "width": 20, "height": 20},
        None,
        {"x": 30, "y": 5, "width": 10, "height": 10},
    ]))
    return path
