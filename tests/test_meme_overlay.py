"""Tests for the landmark feature overlay."""

import logging

import numpy as np
import pytest

from errors import MalformedLandmarksError
from helpers import make_landmarks
from overlays.base_overlay import BaseOverlay
from overlays.meme import (
    MUSTACHE_COLOR,
    Circle,
    Ellipse,
    MemeFeatureOverlay,
    MemeFeatures,
    compute_features,
    draw_features,
    eye_center,
)


class TestGeometry:
    def test_mustache_centers(self, landmarks):
        features = compute_features(landmarks)
        left, right = features.mustache
        assert left.center == pytest.approx((95, 190))
        assert right.center == pytest.approx((145, 190))
        assert left.axes == (25, 10) and right.axes == (25, 10)
        assert left.angle == 0 and right.angle == 0
        assert left.color == MUSTACHE_COLOR

    def test_mustache_uses_mean_corner_height(self):
        features = compute_features(make_landmarks(mouth0=(100, 200), mouth6=(140, 220)))
        assert features.mustache[0].center[1] == pytest.approx(200)

    def test_eye_center_is_corner_midpoint(self, landmarks):
        assert eye_center(landmarks.left_eye) == pytest.approx((55, 80))

    def test_whites_before_pupils(self, landmarks):
        eyes = compute_features(landmarks).eyes
        assert [c.radius for c in eyes] == [15, 15, 5, 5]
        assert eyes[0].color == (255, 255, 255)
        assert eyes[2].color == (0, 0, 0)
        assert eyes[0].center == pytest.approx((55, 80))
        assert eyes[1].center == pytest.approx((155, 80))
        assert all(isinstance(c, Circle) for c in eyes)

    def test_half_pixel_centre_not_snapped(self):
        # corners at y=200 and y=201 put the mustache centre on y=190.5
        features = compute_features(make_landmarks(mouth0=(100, 200), mouth6=(140, 201)))
        assert features.mustache[0].center[1] == pytest.approx(190.5)

        image = np.zeros((100, 100, 3), dtype=np.uint8)
        draw_features(image, MemeFeatures(mustache=(), eyes=(Circle((50.5, 40.5), 15, (255, 255, 255)),)))
        weight = image[:, :, 0].astype(np.float64)
        ys, xs = np.indices(weight.shape)
        assert np.average(xs, weights=weight) == pytest.approx(50.5, abs=0.1)
        assert np.average(ys, weights=weight) == pytest.approx(40.5, abs=0.1)

    @pytest.mark.parametrize("kwargs", [
        {"mouth_points": 6},
        {"eye_points": 3},
        {"mouth_points": 0},
    ])
    def test_short_groups_raise(self, kwargs):
        with pytest.raises(MalformedLandmarksError):
            compute_features(make_landmarks(**kwargs))

    def test_seven_mouth_points_is_enough(self):
        features = compute_features(make_landmarks(mouth_points=7, eye_points=4))
        assert all(isinstance(e, Ellipse) for e in features.mustache)


class TestMemeFeatureOverlay:
    def test_is_overlay(self):
        assert isinstance(MemeFeatureOverlay(), BaseOverlay)

    def test_absent_landmarks_returns_identical_copy(self, photo):
        out = MemeFeatureOverlay().apply(photo, None)
        assert np.array_equal(out, photo)
        assert out is not photo

    def test_input_not_modified(self, photo, landmarks):
        original = photo.copy()
        MemeFeatureOverlay().apply(photo, landmarks)
        assert np.array_equal(photo, original)

    def test_deterministic(self, photo, landmarks):
        overlay = MemeFeatureOverlay()
        a = overlay.apply(photo, landmarks)
        b = overlay.apply(photo, landmarks)
        assert np.array_equal(a, b)
        assert not np.array_equal(a, photo)

    def test_pupil_over_sclera(self, photo, landmarks):
        out = MemeFeatureOverlay().apply(photo, landmarks)
        # pupil at the center, white ring between radius 5 and 15
        assert tuple(out[80, 55]) == (0, 0, 0)
        assert tuple(out[80, 65]) == (255, 255, 255)
        assert tuple(out[80, 45]) == (255, 255, 255)
        assert tuple(out[80, 155]) == (0, 0, 0)
        # outside the white circle the photo is untouched
        assert tuple(out[80, 75]) == (128, 128, 128)

    def test_mustache_pixels(self, photo, landmarks):
        out = MemeFeatureOverlay().apply(photo, landmarks)
        assert tuple(out[190, 95]) == MUSTACHE_COLOR
        assert tuple(out[190, 145]) == MUSTACHE_COLOR
        # 20px to the left of the left ellipse center is still inside (a=25)
        assert tuple(out[190, 75]) == MUSTACHE_COLOR
        # 15px above is outside (b=10)
        assert tuple(out[175, 95]) == (128, 128, 128)

    def test_no_scaling_applied(self, landmarks):
        big = np.full((1000, 1000, 3), 128, dtype=np.uint8)
        out = MemeFeatureOverlay().apply(big, landmarks)
        assert tuple(out[80, 55]) == (0, 0, 0)

    def test_malformed_falls_back_and_logs(self, photo, caplog):
        bad = make_landmarks(mouth_points=5)
        with caplog.at_level(logging.WARNING, logger="overlays.meme"):
            out = MemeFeatureOverlay().apply(photo, bad)
        assert np.array_equal(out, photo)
        assert "Malformed landmarks" in caplog.text

    def test_bgra_image_keeps_alpha_opaque(self, landmarks):
        img = np.zeros((240, 320, 4), dtype=np.uint8)
        out = MemeFeatureOverlay().apply(img, landmarks)
        assert tuple(out[80, 55]) == (0, 0, 0, 255)
        assert tuple(out[80, 65]) == (255, 255, 255, 255)
