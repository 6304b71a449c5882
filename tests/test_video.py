"""Tests for the OpenCV-backed video player."""

import asyncio

import pytest

from errors import PlaybackError
from helpers import FakeClock, create_test_video
from playback.video import HAVE_CURRENT_DATA, HAVE_NOTHING, VideoPlayer


@pytest.fixture
def clip(tmp_path):
    path = tmp_path / "clip.mp4"
    create_test_video(path, num_frames=30, fps=30)
    return path


@pytest.fixture
def clock():
    return FakeClock()


class TestLoad:
    def test_loadeddata_fires_with_size(self, clip, clock):
        player = VideoPlayer(clip, clock=clock)
        seen = []
        player.add_listener("loadeddata", lambda p: seen.append((p.video_width, p.video_height)))
        assert player.ready_state == HAVE_NOTHING

        asyncio.run(player.load())

        assert player.ready_state == HAVE_CURRENT_DATA
        assert seen == [(320, 240)]
        assert player.fps == pytest.approx(30, abs=0.5)
        assert player.duration == pytest.approx(1.0, abs=0.1)
        player.release()

    def test_removed_listener_not_called(self, clip, clock):
        player = VideoPlayer(clip, clock=clock)
        seen = []
        cb = seen.append
        player.add_listener("loadeddata", cb)
        player.remove_listener("loadeddata", cb)
        player.remove_listener("loadeddata", cb)
        asyncio.run(player.load())
        assert seen == []
        player.release()

    def test_missing_file(self, tmp_path):
        player = VideoPlayer(tmp_path / "missing.mp4")
        with pytest.raises(PlaybackError):
            asyncio.run(player.load())
        assert player.ready_state == HAVE_NOTHING


class TestTransport:
    def test_time_runs_only_while_playing(self, clip, clock):
        player = VideoPlayer(clip, clock=clock)
        asyncio.run(player.load())
        assert player.paused
        clock.advance(1.0)
        assert player.current_time == 0.0

        player.play()
        clock.advance(0.5)
        assert player.current_time == pytest.approx(0.5)

        player.pause()
        clock.advance(0.3)
        assert player.current_time == pytest.approx(0.5)

        player.play()
        clock.advance(0.1)
        assert player.current_time == pytest.approx(0.6)
        player.release()

    def test_play_before_load_starts_at_load(self, clip, clock):
        player = VideoPlayer(clip, clock=clock)
        player.play()
        clock.advance(5.0)
        assert player.current_time == 0.0
        asyncio.run(player.load())
        clock.advance(0.2)
        assert player.current_time == pytest.approx(0.2)
        player.release()

    def test_frame_matches_time(self, clip, clock):
        player = VideoPlayer(clip, clock=clock)
        asyncio.run(player.load())
        first = player.current_frame()
        assert first.shape == (240, 320, 3)
        assert first[:, :, 0].mean() == pytest.approx(0, abs=10)

        player.play()
        clock.advance(0.5)
        frame = player.current_frame()
        assert frame[:, :, 0].mean() == pytest.approx(15 * 8, abs=10)
        player.release()

    def test_non_looping_ends(self, clip, clock):
        player = VideoPlayer(clip, loop=False, clock=clock)
        asyncio.run(player.load())
        player.play()
        clock.advance(5.0)
        assert player.current_time == pytest.approx(player.duration)
        assert player.ended
        assert player.paused
        player.release()

    def test_looping_wraps(self, clip, clock):
        player = VideoPlayer(clip, loop=True, clock=clock)
        asyncio.run(player.load())
        player.play()
        clock.advance(player.duration + 0.25)
        assert player.current_time == pytest.approx(0.25, abs=1e-6)
        assert not player.ended
        assert not player.paused
        player.release()

    def test_play_after_release(self, clip, clock):
        player = VideoPlayer(clip, clock=clock)
        asyncio.run(player.load())
        player.release()
        with pytest.raises(PlaybackError):
            player.play()
        assert player.current_frame() is None
