import math

import pytest

from mandelbot.colormaps import (
    BLACK,
    LOG_BASE,
    LOG_HALFBASE,
    PALETTE_GRAYSCALE,
    PALETTE_HSV_BLUE,
    PALETTE_HSV_BRIGHT,
    PALETTE_HSV_MUTED,
    PALETTE_MONOCHROME,
    PALETTES,
    WHITE,
    color_for,
    get_palette,
    hsv_to_rgb,
    list_palette_names,
    next_palette,
    palette_name,
    smooth_value,
)
from mandelbot.compute import EscapeResult, evaluate


def expected_smooth(max_iter, remaining, real_sq, imag_sq):
    n = max_iter - remaining
    return 5 + n - math.log(0.5) / math.log(2) - math.log(math.log(real_sq + imag_sq)) / math.log(2)


def test_log_constants():
    assert LOG_BASE == pytest.approx(1 / math.log(2))
    assert LOG_HALFBASE == pytest.approx(-1.0)


@pytest.mark.parametrize("palette", sorted(PALETTES.values()))
def test_members_are_black_in_every_palette(palette):
    assert color_for(palette, EscapeResult(100, 0, 0.1, 0.2)) == BLACK


def test_monochrome_escaped_points_are_white():
    assert color_for(PALETTE_MONOCHROME, EscapeResult(100, 37, 5.0, 9.0)) == WHITE


def test_smooth_value_matches_formula():
    result = EscapeResult(100, 50, 1.2, 0.9)
    assert smooth_value(result) == pytest.approx(expected_smooth(100, 50, 1.2, 0.9))


def test_grayscale_fixture_clamps_to_white():
    result = EscapeResult(100, 50, 1.2, 0.9)
    v = expected_smooth(100, 50, 1.2, 0.9)
    level = min(255, max(0, math.floor(512 * v / 100)))
    assert level == 255
    assert color_for(PALETTE_GRAYSCALE, result) == (level, level, level)


def test_grayscale_fixture_mid_level():
    result = EscapeResult(1000, 990, 30.0, 20.0)
    v = expected_smooth(1000, 990, 30.0, 20.0)
    level = math.floor(512 * v / 1000)
    assert level == 7
    assert color_for(PALETTE_GRAYSCALE, result) == (7, 7, 7)


@pytest.mark.parametrize("h, s, v, expected", [
    (0, 1.0, 1.0, (255, 0, 0)),
    (60, 1.0, 1.0, (255, 255, 0)),
    (120, 1.0, 1.0, (0, 255, 0)),
    (180, 1.0, 1.0, (0, 255, 255)),
    (240, 1.0, 1.0, (0, 0, 255)),
    (300, 1.0, 1.0, (255, 0, 255)),
    (360, 1.0, 1.0, (255, 0, 0)),
    (30, 1.0, 1.0, (255, 127, 0)),
    (0, 0.0, 0.5, (127, 127, 127)),
    (0, 1.0, 5.0, (255, 0, 0)),
])
def test_hsv_to_rgb(h, s, v, expected):
    assert hsv_to_rgb(h, s, v) == expected


def test_bright_hsv_uses_hue_from_smooth_value():
    result = EscapeResult(1000, 990, 30.0, 20.0)
    v = smooth_value(result)
    assert color_for(PALETTE_HSV_BRIGHT, result) == hsv_to_rgb(360 * v / 1000, 1.0, 1.0)


def test_muted_hsv_value_ramps_with_smooth_value():
    result = EscapeResult(1000, 990, 30.0, 20.0)
    v = smooth_value(result)
    assert color_for(PALETTE_HSV_MUTED, result) == hsv_to_rgb(360 * v / 1000, 1.0, 10 * v / 1000)


@pytest.mark.parametrize("x, y", [(0.5, 0.5), (-0.75, 0.1), (0.28, 0.53), (-1.3, 0.07)])
def test_blue_is_muted_with_red_and_blue_swapped(x, y):
    result = evaluate(x, y, 200)
    r, g, b = color_for(PALETTE_HSV_MUTED, result)
    assert color_for(PALETTE_HSV_BLUE, result) == (b, g, r)


def test_only_the_blue_variant_swaps_channels():
    result = EscapeResult(1000, 990, 30.0, 20.0)
    v = smooth_value(result)
    r, g, b = hsv_to_rgb(360 * v / 1000, 1.0, 10 * v / 1000)
    assert r != b
    assert color_for(PALETTES['HSV Muted'], result) == (r, g, b)
    assert color_for(PALETTES['HSV Blue'], result) == (b, g, r)


def test_overflowed_squares_do_not_raise():
    result = EscapeResult(100, 99, float('inf'), 1.0)
    assert smooth_value(result) == 0.0
    for palette in PALETTES.values():
        color_for(palette, result)


def test_unknown_palette_id():
    with pytest.raises(ValueError):
        color_for(42, EscapeResult(100, 50, 3.0, 3.0))


def test_palette_registry():
    assert get_palette('Grayscale') == PALETTE_GRAYSCALE
    assert get_palette(PALETTE_HSV_BLUE) == PALETTE_HSV_BLUE
    assert palette_name(PALETTE_MONOCHROME) == 'Monochrome'
    assert list_palette_names() == list(PALETTES.keys())
    assert next_palette(PALETTE_GRAYSCALE) == PALETTE_MONOCHROME
    assert next_palette(PALETTE_MONOCHROME) == PALETTE_HSV_BRIGHT
    with pytest.raises(KeyError):
        get_palette(9)
    with pytest.raises(KeyError):
        get_palette('Plaid')
