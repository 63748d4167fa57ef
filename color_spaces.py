"""
Conversions between sRGB hex codes and the color spaces the optimizer works in.
"""

import re
from enum import Enum

import numpy as np

HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")

# sRGB (D65) <-> XYZ, Y normalised to 1
M_SRGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])
M_XYZ_TO_SRGB = np.array([
    [3.2404542, -1.5371385, -0.4985314],
    [-0.9692660, 1.8760108, 0.0415560],
    [0.0556434, -0.2040259, 1.0572252],
])

# D65 reference white
REF_WHITE = np.array([0.95047, 1.00000, 1.08883])

# OKLab, linear sRGB based (Ottosson 2020)
M1_OKLAB = np.array([
    [0.4122214708, 0.5363325363, 0.0514459929],
    [0.2119034982, 0.6806995451, 0.1073969566],
    [0.0883024619, 0.2817188376, 0.6299787005],
])
M2_OKLAB = np.array([
    [0.2104542553, 0.7936177850, -0.0040720468],
    [1.9779984951, -2.4285922050, 0.4505937099],
    [0.0259040371, 0.7827717662, -0.8086757660],
])
M2_OKLAB_INV = np.array([
    [1.0, 0.3963377774, 0.2158037573],
    [1.0, -0.1055613458, -0.0638541728],
    [1.0, -0.0894841775, -1.2914855480],
])
M1_OKLAB_INV = np.array([
    [4.0767416621, -3.3077115913, 0.2309699292],
    [-1.2684380046, 2.6097574011, -0.3413193965],
    [-0.0041960863, -0.7034186147, 1.7076147010],
])


class ColorSpace(Enum):
    """Optimization spaces with their fixed channel order and numeric ranges."""

    HSL = ("hsl", ("h", "s", "l"), (0.0, 0.0, 0.0), (360.0, 100.0, 100.0))
    LAB = ("lab", ("l", "a", "b"), (0.0, -128.0, -128.0), (100.0, 127.0, 127.0))
    LCH = ("lch", ("l", "c", "h"), (0.0, 0.0, 0.0), (100.0, 140.0, 360.0))
    OKLAB = ("oklab", ("l", "a", "b"), (0.0, -0.5, -0.5), (1.0, 0.5, 0.5))
    OKLCH = ("oklch", ("l", "c", "h"), (0.0, 0.0, 0.0), (1.0, 0.4, 360.0))

    def __init__(self, label, channels, low, high):
        self.label = label
        self.channels = channels
        self.low = np.array(low)
        self.high = np.array(high)

    @classmethod
    def from_name(cls, name):
        """Resolve a space from its (case-insensitive) name."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for space in cls:
            if space.label == key:
                return space
        names = ", ".join(space.label for space in cls)
        raise ValueError(f"Unsupported color space {name!r} (expected one of {names})")

    def _index(self, *names):
        for i, channel in enumerate(self.channels):
            if channel in names:
                return i
        return None

    @property
    def lightness_index(self):
        return self._index("l")

    @property
    def chroma_index(self):
        """Index of the saturation (HSL) or chroma (LCh, OKLCh) channel."""
        return self._index("s", "c")

    @property
    def hue_index(self):
        return self._index("h")

    def __str__(self):
        return self.label


def is_hex_color(value):
    """Check for a 6-digit hex code with an optional leading '#'."""
    return isinstance(value, str) and HEX_PATTERN.match(value.strip()) is not None


def normalize_hex(value):
    """Return the canonical '#RRGGBB' form of a hex code."""
    match = HEX_PATTERN.match(str(value).strip())
    if match is None:
        raise ValueError(f"Invalid hex color {value!r}; expected #RRGGBB")
    return "#" + match.group(1).upper()


def parse_hex(value):
    """Convert a hex code to an sRGB array in [0, 1]."""
    digits = normalize_hex(value)[1:]
    return np.array([int(digits[i:i + 2], 16) for i in (0, 2, 4)]) / 255.0


def quantize_rgb(rgb):
    """Clamp sRGB to [0, 1] and snap it to the 8-bit grid a hex code can hold."""
    rgb = np.clip(np.nan_to_num(np.asarray(rgb, dtype=float)), 0.0, 1.0)
    return np.floor(rgb * 255.0 + 0.5) / 255.0


def format_hex(rgb):
    """Convert an sRGB triple in [0, 1] to '#RRGGBB' (out-of-gamut values are clipped)."""
    r, g, b = (int(v) for v in np.rint(quantize_rgb(rgb) * 255.0))
    return f"#{r:02X}{g:02X}{b:02X}"


def srgb_to_linear(rgb):
    rgb = np.asarray(rgb, dtype=float)
    return np.where(rgb <= 0.04045, rgb / 12.92, ((np.abs(rgb) + 0.055) / 1.055) ** 2.4)


def linear_to_srgb(linear):
    linear = np.asarray(linear, dtype=float)
    return np.where(linear <= 0.0031308, 12.92 * linear, 1.055 * np.abs(linear) ** (1 / 2.4) - 0.055)


def srgb_to_xyz(rgb):
    return srgb_to_linear(rgb) @ M_SRGB_TO_XYZ.T


def xyz_to_srgb(xyz):
    return linear_to_srgb(np.asarray(xyz, dtype=float) @ M_XYZ_TO_SRGB.T)


def _lab_f(t):
    delta = 6 / 29
    return np.where(t > delta ** 3, np.cbrt(t), t / (3 * delta ** 2) + 4 / 29)


def _lab_f_inv(t):
    delta = 6 / 29
    return np.where(t > delta, t ** 3, 3 * delta ** 2 * (t - 4 / 29))


def xyz_to_lab(xyz):
    """Convert XYZ (Y=1 white) to CIELAB."""
    f = _lab_f(np.asarray(xyz, dtype=float) / REF_WHITE)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    return np.stack([116 * fy - 16, 500 * (fx - fy), 200 * (fy - fz)], axis=-1)


def lab_to_xyz(lab):
    lab = np.asarray(lab, dtype=float)
    fy = (lab[..., 0] + 16) / 116
    fx = fy + lab[..., 1] / 500
    fz = fy - lab[..., 2] / 200
    return _lab_f_inv(np.stack([fx, fy, fz], axis=-1)) * REF_WHITE


def srgb_to_lab(rgb):
    """Convert sRGB in [0, 1] to CIELAB."""
    return xyz_to_lab(srgb_to_xyz(rgb))


def lab_to_srgb(lab):
    return xyz_to_srgb(lab_to_xyz(lab))


def srgb_to_oklab(rgb):
    lms = srgb_to_linear(rgb) @ M1_OKLAB.T
    return np.cbrt(lms) @ M2_OKLAB.T


def oklab_to_srgb(oklab):
    lms = (np.asarray(oklab, dtype=float) @ M2_OKLAB_INV.T) ** 3
    return linear_to_srgb(lms @ M1_OKLAB_INV.T)


def rectangular_to_polar(values):
    """Convert (L, a, b) to (L, C, h) with h in degrees [0, 360)."""
    values = np.asarray(values, dtype=float)
    chroma = np.hypot(values[..., 1], values[..., 2])
    hue = np.degrees(np.arctan2(values[..., 2], values[..., 1])) % 360.0
    return np.stack([values[..., 0], chroma, hue], axis=-1)


def polar_to_rectangular(values):
    values = np.asarray(values, dtype=float)
    hue = np.radians(values[..., 2] % 360.0)
    return np.stack([
        values[..., 0],
        values[..., 1] * np.cos(hue),
        values[..., 1] * np.sin(hue),
    ], axis=-1)


def srgb_to_hsl(rgb):
    """Convert sRGB in [0, 1] to HSL (h in degrees, s and l in percent)."""
    rgb = np.asarray(rgb, dtype=float)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    max_val = rgb.max(axis=-1)
    min_val = rgb.min(axis=-1)
    d = max_val - min_val
    l = (max_val + min_val) / 2
    chromatic = d > 0
    safe_d = np.where(chromatic, d, 1.0)

    denom = np.where(l > 0.5, 2 - max_val - min_val, max_val + min_val)
    s = np.where(chromatic, d / np.where(denom == 0, 1.0, denom), 0.0)

    h = np.where(
        max_val == r,
        (g - b) / safe_d + np.where(g < b, 6.0, 0.0),
        np.where(max_val == g, (b - r) / safe_d + 2, (r - g) / safe_d + 4),
    )
    h = np.where(chromatic, h * 60.0, 0.0)
    return np.stack([h, s * 100.0, l * 100.0], axis=-1)


def hsl_to_srgb(hsl):
    hsl = np.asarray(hsl, dtype=float)
    h = (hsl[..., 0] % 360.0) / 360.0
    s = hsl[..., 1] / 100.0
    l = hsl[..., 2] / 100.0
    q = np.where(l < 0.5, l * (1 + s), l + s - l * s)
    p = 2 * l - q

    def channel(t):
        t = t % 1.0
        return np.where(
            t < 1 / 6, p + (q - p) * 6 * t,
            np.where(t < 1 / 2, q, np.where(t < 2 / 3, p + (q - p) * (2 / 3 - t) * 6, p)),
        )

    return np.stack([channel(h + 1 / 3), channel(h), channel(h - 1 / 3)], axis=-1)


def srgb_to_space(rgb, space):
    """Convert sRGB values (..., 3) into the channels of ``space``."""
    space = ColorSpace.from_name(space)
    if space is ColorSpace.HSL:
        return srgb_to_hsl(rgb)
    if space is ColorSpace.LAB:
        return srgb_to_lab(rgb)
    if space is ColorSpace.LCH:
        return rectangular_to_polar(srgb_to_lab(rgb))
    if space is ColorSpace.OKLAB:
        return srgb_to_oklab(rgb)
    return rectangular_to_polar(srgb_to_oklab(rgb))


def space_to_srgb(values, space):
    """Convert channel values of ``space`` to (unclipped) sRGB."""
    space = ColorSpace.from_name(space)
    if space is ColorSpace.HSL:
        return hsl_to_srgb(values)
    if space is ColorSpace.LAB:
        return lab_to_srgb(values)
    if space is ColorSpace.LCH:
        return lab_to_srgb(polar_to_rectangular(values))
    if space is ColorSpace.OKLAB:
        return oklab_to_srgb(values)
    return oklab_to_srgb(polar_to_rectangular(values))


def decode_colors(hex_colors, space):
    """Decode a list of hex codes into an (n, 3) array of channel values."""
    rgb = np.array([parse_hex(c) for c in hex_colors]).reshape(-1, 3)
    return srgb_to_space(rgb, space)


def encode_colors(values, space):
    """Encode an (n, 3) array of channel values as hex codes."""
    rgb = space_to_srgb(np.asarray(values, dtype=float).reshape(-1, 3), space)
    return [format_hex(row) for row in rgb]


def decode_color(hex_color, space):
    """Decode a hex code into a {channel: value} map."""
    space = ColorSpace.from_name(space)
    values = decode_colors([hex_color], space)[0]
    return {channel: float(v) for channel, v in zip(space.channels, values)}


def encode_color(channels, space):
    """Encode a {channel: value} map (or a sequence in channel order) as a hex code."""
    space = ColorSpace.from_name(space)
    if isinstance(channels, dict):
        channels = [channels[name] for name in space.channels]
    return encode_colors([channels], space)[0]


def normalize(values, space):
    """Map channel values into [0, 1] using the space's declared ranges."""
    space = ColorSpace.from_name(space)
    return (np.asarray(values, dtype=float) - space.low) / (space.high - space.low)


def unscale(values, space):
    """Inverse of :func:`normalize`."""
    space = ColorSpace.from_name(space)
    return np.asarray(values, dtype=float) * (space.high - space.low) + space.low
