"""Tests for the compositor."""

import pytest
from PIL import Image

from vehicle_swap.fit_mapping import Point
from vehicle_swap.placement import clamp_user_scale, compose, default_user_scale, foreground_rect

BLUE = (0, 0, 255, 255)
RED = (255, 0, 0, 255)


@pytest.fixture
def background():
    return Image.new("RGB", (1000, 500), BLUE[:3])


@pytest.fixture
def foreground():
    return Image.new("RGBA", (200, 100), RED)


class TestForegroundRect:

    def test_centred_on_anchor(self):
        assert foreground_rect((200, 100), Point(500, 250), 1) == (400, 200, 600, 300)

    def test_scaled(self):
        assert foreground_rect((200, 100), Point(500, 250), 0.5) == (450, 225, 550, 275)


class TestCompose:

    @pytest.mark.parametrize("anchor,scale", [
        (Point(500, 250), 1.0),
        (Point(0, 0), 3.0),
        (Point(-400, 900), 0.1),
        (Point(999.5, 0.25), 2.35),
    ])
    def test_output_has_background_size(self, background, foreground, anchor, scale):
        result = compose(background, foreground, anchor, scale)
        assert result.size == (1000, 500)

    def test_foreground_drawn_in_expected_rect(self, background, foreground):
        result = compose(background, foreground, Point(500, 250), 1)

        assert result.getpixel((400, 200)) == RED
        assert result.getpixel((599, 299)) == RED
        assert result.getpixel((399, 200)) == BLUE
        assert result.getpixel((400, 199)) == BLUE
        assert result.getpixel((600, 300)) == BLUE

    def test_off_canvas_is_clipped(self, background, foreground):
        result = compose(background, foreground, Point(0, 0), 1)

        assert result.size == (1000, 500)
        assert result.getpixel((0, 0)) == RED
        assert result.getpixel((99, 49)) == RED
        assert result.getpixel((100, 50)) == BLUE

    def test_transparency_is_preserved(self, background):
        fg = Image.new("RGBA", (200, 100), (0, 0, 0, 0))
        fg.paste(Image.new("RGBA", (100, 100), RED), (0, 0))

        result = compose(background, fg, Point(500, 250), 1)

        assert result.getpixel((450, 250)) == RED
        assert result.getpixel((550, 250)) == BLUE

    def test_inputs_are_not_modified(self, background, foreground):
        compose(background, foreground, Point(500, 250), 1)
        assert background.getpixel((500, 250)) == BLUE[:3]

    def test_each_call_returns_a_new_raster(self, background, foreground):
        a = compose(background, foreground, Point(500, 250), 1)
        b = compose(background, foreground, Point(100, 100), 1)
        assert a is not b
        assert a.getpixel((500, 250)) == RED
        assert b.getpixel((500, 250)) == BLUE

    def test_vanishing_foreground_leaves_background(self, background):
        tiny = Image.new("RGBA", (2, 2), RED)
        result = compose(background, tiny, Point(500, 250), 0.1)
        assert result.getpixel((500, 250)) == BLUE


class TestUserScale:

    def test_clamp(self):
        assert clamp_user_scale(0.01) == 0.1
        assert clamp_user_scale(10) == 3.0
        assert clamp_user_scale(1.25) == 1.25

    def test_default_is_quarter_of_background_width(self):
        assert default_user_scale(800, 400) == pytest.approx(0.5)
        assert default_user_scale(4000, 1000) == pytest.approx(1.0)

    def test_default_is_clamped(self):
        assert default_user_scale(800, 10) == 3.0
