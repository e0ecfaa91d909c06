"""Tests for the cosmetic depth hint."""

import math

import pytest
from PIL import Image

from vehicle_swap.config import get_depth_config
from vehicle_swap.depth_estimation import (
    DepthHint,
    draw_depth_halo,
    estimate_depth,
    halo_style,
    relative_y,
)
from vehicle_swap.fit_mapping import Point, RenderBox


class TestEstimateDepth:

    def test_top_of_frame(self):
        assert estimate_depth(0) == DepthHint(scale=0.2, rotation_degrees=75)

    def test_bottom_of_frame(self):
        assert estimate_depth(1) == DepthHint(scale=1.2, rotation_degrees=20)

    def test_monotonic(self):
        hints = [estimate_depth(i / 20) for i in range(21)]
        scales = [h.scale for h in hints]
        rotations = [h.rotation_degrees for h in hints]
        assert scales == sorted(scales)
        assert rotations == sorted(rotations, reverse=True)

    def test_midpoint(self):
        hint = estimate_depth(0.5)
        assert hint.scale == pytest.approx(0.7)
        assert hint.rotation_degrees == pytest.approx(47.5)

    def test_out_of_range_is_clamped(self):
        assert estimate_depth(-0.5) == estimate_depth(0)
        assert estimate_depth(3.0) == estimate_depth(1)

    def test_custom_config(self):
        config = get_depth_config(min_scale=0.5, max_scale=2.0)
        assert estimate_depth(0, config).scale == 0.5
        assert estimate_depth(1, config).scale == 2.0


class TestRelativeY:

    def test_measured_from_image_top_edge(self):
        box = RenderBox.contain(400, 400, 1000, 500)
        assert relative_y(Point(0, 100), box) == 0.0
        assert relative_y(Point(0, 200), box) == pytest.approx(0.5)
        assert relative_y(Point(0, 300), box) == pytest.approx(1.0)

    def test_letterbox_edges_give_depth_endpoints(self):
        box = RenderBox.contain(400, 400, 1000, 500)
        assert estimate_depth(relative_y(Point(200, 100), box)) == DepthHint(scale=0.2, rotation_degrees=75)
        assert estimate_depth(relative_y(Point(200, 300), box)) == DepthHint(scale=1.2, rotation_degrees=20)

    def test_clamped(self):
        box = RenderBox.contain(400, 400, 1000, 500)
        assert relative_y(Point(0, 1000), box) == 1.0
        assert relative_y(Point(0, -10), box) == 0.0


class TestHalo:

    def test_style_geometry(self):
        box = RenderBox.contain(800, 500, 1600, 1000)
        style = halo_style(Point(400, 500), box, 400, 200)
        assert style.width == pytest.approx(200)
        assert style.height == pytest.approx(100)
        assert style.scale == pytest.approx(1.2)
        assert style.projected_height == pytest.approx(100 * 1.2 * math.cos(math.radians(20)))

    def test_draw_keeps_size_and_leaves_input_untouched(self):
        preview = Image.new("RGB", (800, 500), (0, 0, 0))
        box = RenderBox.contain(800, 500, 800, 500)
        style = halo_style(Point(400, 400), box, 400, 200)

        result = draw_depth_halo(preview, style)

        assert result.size == preview.size
        assert preview.getpixel((400, 400)) == (0, 0, 0)
        r, g, b, _ = result.getpixel((400, 400))
        assert r > 0 and g == 0 and b == 0
        assert result.getpixel((10, 10))[:3] == (0, 0, 0)
