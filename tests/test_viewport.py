"""
Viewport Transform Tests

Pan/zoom clamping and the pixel/time mapping.
"""

import math

import pytest

from statemap.rendering.viewport import IDENTITY, Viewport, ViewportTransform


@pytest.fixture
def transform():
    return ViewportTransform(width=1000, height=200, time_width=1_000_000)


def _in_bounds(transform, viewport):
    min_x = -(transform.width * viewport.scale - transform.width)
    min_y = -(transform.height * viewport.scale - transform.height)
    return (min_x - 1e-9 <= viewport.translate_x <= 0
            and min_y - 1e-9 <= viewport.translate_y <= 0)


class TestPixelTime:

    def test_identity_midpoint(self, transform):
        assert transform.pixel_to_time(IDENTITY, 500) == 500_000

    @pytest.mark.parametrize("viewport", [
        IDENTITY,
        Viewport(scale=2, translate_x=-500),
        Viewport(scale=7.5, translate_x=-3210.5, translate_y=-40),
    ])
    def test_mutual_inverses(self, transform, viewport):
        for pixel in (0, 1, 250.5, 999):
            time = transform.pixel_to_time(viewport, pixel)
            assert transform.time_to_pixel(viewport, time) == pytest.approx(pixel)

    def test_visible_span_and_range(self, transform):
        viewport = Viewport(scale=4, translate_x=-1000)

        assert transform.visible_span(viewport) == 250_000
        left, right = transform.visible_range(viewport)
        assert left == pytest.approx(250_000)
        assert right == pytest.approx(500_000)

    def test_clamp_pixel(self, transform):
        assert transform.clamp_pixel(-5) == 0
        assert transform.clamp_pixel(5000) == pytest.approx(1000)
        assert transform.is_visible(transform.clamp_pixel(5000))
        assert transform.clamp_pixel(12.5) == 12.5

    def test_is_visible(self, transform):
        assert transform.is_visible(0)
        assert not transform.is_visible(1000)
        assert not transform.is_visible(-0.5)

    def test_invalid_dimensions(self):
        with pytest.raises(ValueError):
            ViewportTransform(width=0, height=10, time_width=100)
        with pytest.raises(ValueError):
            ViewportTransform(width=10, height=10, time_width=0)


class TestZoom:

    def test_zoom_preserves_time_under_anchor(self, transform):
        before = transform.pixel_to_time(IDENTITY, 500)

        zoomed = transform.zoom_by(IDENTITY, 2, anchor=500)

        assert zoomed.scale == 2
        assert zoomed.translate_x == -500
        assert transform.pixel_to_time(zoomed, 500) == pytest.approx(before)

    def test_zoom_round_trip(self, transform):
        start = transform.zoom_by(IDENTITY, 3, anchor=200)

        zoomed = transform.zoom_by(start, 2, anchor=700)
        restored = transform.zoom_by(zoomed, 0.5, anchor=700)

        assert restored.scale == pytest.approx(start.scale)
        assert restored.translate_x == pytest.approx(start.translate_x)
        assert restored.translate_y == pytest.approx(start.translate_y)

    def test_zoom_out_below_one_resets_to_identity(self, transform):
        zoomed = transform.zoom_by(IDENTITY, 2, anchor=900)

        assert transform.zoom_by(zoomed, 0.25) is IDENTITY

    def test_zoom_out_at_identity_is_unchanged(self, transform):
        assert transform.zoom_by(IDENTITY, 0.5) is IDENTITY

    def test_zoom_scales_vertical_translation(self, transform):
        viewport = Viewport(scale=2, translate_x=-100, translate_y=-50)

        zoomed = transform.zoom_by(viewport, 2, anchor=0)

        assert zoomed.translate_y == -100
        assert _in_bounds(transform, zoomed)

    @pytest.mark.parametrize("factor", [0, -2, math.nan, math.inf])
    def test_invalid_factor_is_ignored(self, transform, factor):
        viewport = Viewport(scale=2, translate_x=-100)

        assert transform.zoom_by(viewport, factor) is viewport

    def test_center_on(self, transform):
        viewport = transform.zoom_by(IDENTITY, 4, anchor=0)

        centered = transform.center_on(viewport, 500_000)

        assert transform.time_to_pixel(centered, 500_000) == pytest.approx(500)


class TestPan:

    @pytest.mark.parametrize("dx,dy", [
        (1e12, 1e12), (-1e12, -1e12), (-300, 20), (45.5, -60), (0, 0),
    ])
    def test_pan_stays_in_bounds(self, transform, dx, dy):
        viewport = Viewport(scale=3, translate_x=-1000, translate_y=-100)

        panned = transform.pan_by(viewport, dx, dy)

        assert _in_bounds(transform, panned)

    def test_pan_at_identity_is_a_noop(self, transform):
        assert transform.pan_by(IDENTITY, 100, 100) is IDENTITY
        assert transform.pan_by(IDENTITY, -100, -100) is IDENTITY

    def test_pan_moves_translation(self, transform):
        viewport = Viewport(scale=2, translate_x=-500)

        panned = transform.pan_by(viewport, 100, 0)

        assert panned.translate_x == -400

    def test_non_finite_pan_is_ignored(self, transform):
        viewport = Viewport(scale=2, translate_x=-500)

        assert transform.pan_by(viewport, math.nan, 0) is viewport
