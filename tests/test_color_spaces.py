"""
Tests for hex parsing and color space conversions.
"""

import numpy as np
import pytest

from color_spaces import (
    ColorSpace, decode_color, decode_colors, encode_color, encode_colors, format_hex,
    is_hex_color, normalize, parse_hex, srgb_to_lab, srgb_to_oklab, unscale,
)

SAMPLE_HEXES = [
    "#000000", "#FFFFFF", "#808080", "#FF0000", "#00FF00", "#0000FF",
    "#4477AA", "#EE6677", "#228833", "#CCBB44", "#66CCEE", "#AA3377",
    "#BBBBBB", "#123456", "#FEDCBA", "#01FE7F",
]


def _channel_error(hex1, hex2):
    return np.max(np.abs(np.rint(parse_hex(hex1) * 255) - np.rint(parse_hex(hex2) * 255)))


@pytest.mark.parametrize("space", list(ColorSpace))
@pytest.mark.parametrize("hex_color", SAMPLE_HEXES)
def test_round_trip(space, hex_color):
    decoded = decode_color(hex_color, space)
    assert list(decoded) == list(space.channels)
    assert _channel_error(encode_color(decoded, space), hex_color) <= 1


@pytest.mark.parametrize("space", list(ColorSpace))
def test_vectorised_round_trip(space):
    values = decode_colors(SAMPLE_HEXES, space)
    assert values.shape == (len(SAMPLE_HEXES), 3)
    for original, encoded in zip(SAMPLE_HEXES, encode_colors(values, space)):
        assert _channel_error(original, encoded) <= 1


def test_reference_values():
    assert srgb_to_lab(np.ones(3)) == pytest.approx([100.0, 0.0, 0.0], abs=1e-3)
    assert srgb_to_oklab(np.ones(3)) == pytest.approx([1.0, 0.0, 0.0], abs=1e-3)
    assert decode_colors(["#FF0000"], "hsl")[0] == pytest.approx([0.0, 100.0, 50.0])
    red_lab = decode_color("#FF0000", "lab")
    assert red_lab["l"] == pytest.approx(53.24, abs=0.05)
    assert red_lab["a"] == pytest.approx(80.09, abs=0.05)
    assert red_lab["b"] == pytest.approx(67.20, abs=0.05)


def test_polar_spaces_wrap_hue():
    lch = decode_color("#0000FF", "lch")
    assert 0 <= lch["h"] < 360
    shifted = dict(lch, h=lch["h"] + 360)
    assert encode_color(shifted, "lch") == encode_color(lch, "lch")


def test_hex_parsing():
    assert parse_hex("4477aa") == pytest.approx(np.array([0x44, 0x77, 0xAA]) / 255)
    assert parse_hex("#4477AA") == pytest.approx(parse_hex("4477aa"))
    assert is_hex_color("#abcdef")
    assert is_hex_color("ABCDEF")
    for bad in ("#12345", "#1234567", "#GG0000", "", "red", None):
        assert not is_hex_color(bad)
    with pytest.raises(ValueError):
        parse_hex("#12345")


def test_format_hex_clamps_out_of_gamut_values():
    assert format_hex([1.2, -0.1, 0.5]) == "#FF0080"
    assert format_hex([np.nan, 0.0, 1.0]) == "#0000FF"


@pytest.mark.parametrize("space", list(ColorSpace))
def test_normalize_unscale(space):
    assert normalize(space.low, space) == pytest.approx(np.zeros(3))
    assert normalize(space.high, space) == pytest.approx(np.ones(3))
    values = decode_colors(SAMPLE_HEXES, space)
    assert unscale(normalize(values, space), space) == pytest.approx(values)


def test_space_descriptor():
    assert ColorSpace.from_name("OKLCH") is ColorSpace.OKLCH
    assert ColorSpace.from_name(ColorSpace.LAB) is ColorSpace.LAB
    assert str(ColorSpace.HSL) == "hsl"
    with pytest.raises(ValueError):
        ColorSpace.from_name("xyz")

    assert ColorSpace.HSL.channels == ("h", "s", "l")
    assert (ColorSpace.HSL.hue_index, ColorSpace.HSL.chroma_index, ColorSpace.HSL.lightness_index) == (0, 1, 2)
    assert (ColorSpace.LAB.hue_index, ColorSpace.LAB.chroma_index) == (None, None)
    assert ColorSpace.OKLCH.chroma_index == 1
    assert ColorSpace.OKLCH.high[1] == pytest.approx(0.4)
    assert ColorSpace.LAB.low[1] == -128 and ColorSpace.LAB.high[1] == 127
