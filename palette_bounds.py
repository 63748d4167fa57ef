"""
Admissible channel ranges for new colors, derived from the input palette.

Bounds live in normalized [0, 1] channel units. The hue interval is circular:
``high`` may exceed 1, meaning the interval runs low -> 1 -> 0 -> high - 1.
"""

import logging
from dataclasses import dataclass

import numpy as np

from color_spaces import ColorSpace, decode_colors, normalize

logger = logging.getLogger(__name__)

LIGHTNESS_QUANTILES = (0.10, 0.90)
DEFAULT_QUANTILES = (0.05, 0.95)
FULL_SPAN_EPS = 1e-6


@dataclass(frozen=True)
class Bounds:
    space: ColorSpace
    low: tuple
    high: tuple

    def channel(self, name):
        """Return the (low, high) pair of a channel by name."""
        index = self.space.channels.index(name)
        return self.low[index], self.high[index]

    def pair(self, index):
        return self.low[index], self.high[index]

    def is_unconstrained(self, index):
        low, high = self.pair(index)
        return low <= 0.0 and high >= 1.0

    def as_dict(self):
        return {name: [float(lo), float(hi)]
                for name, lo, hi in zip(self.space.channels, self.low, self.high)}


def quantiles(values, probs):
    """Quantiles with linear interpolation between order statistics (None if empty)."""
    values = np.asarray(values, dtype=float).ravel()
    if values.size == 0:
        return None
    return tuple(float(q) for q in np.quantile(values, probs))


def width_bounds(q, width, circular=False):
    """Interpolate between the full range (width 0) and the quantile span (width 1)."""
    if width <= 0:
        return 0.0, 1.0
    span = q[1] - q[0]
    desired_span = span + (1 - span) * (1 - width)
    if desired_span >= 1 - FULL_SPAN_EPS:
        return 0.0, 1.0

    mid = (q[0] + q[1]) / 2
    low = mid - desired_span / 2
    high = mid + desired_span / 2
    if circular:
        low %= 1.0
        high %= 1.0
        if high < low:
            high += 1.0
        return low, high
    return max(0.0, low), min(1.0, high)


def compute_bounds(normalized, space, widths):
    """Build per-channel bounds from normalized palette values of shape (n, 3).

    ``widths`` holds one tightness value per channel, in the space's channel order.
    """
    space = ColorSpace.from_name(space)
    normalized = np.asarray(normalized, dtype=float).reshape(-1, len(space.channels))
    low, high = [], []
    for index, name in enumerate(space.channels):
        probs = LIGHTNESS_QUANTILES if index == space.lightness_index else DEFAULT_QUANTILES
        q = quantiles(normalized[:, index], probs)
        if q is None:
            pair = (0.0, 1.0)
        else:
            pair = width_bounds(q, widths[index], circular=index == space.hue_index)
        logger.debug("bounds %s.%s: quantiles=%s width=%s -> %s", space, name, q, widths[index], pair)
        low.append(float(pair[0]))
        high.append(float(pair[1]))
    return Bounds(space, tuple(low), tuple(high))


def bounds_for_palette(colors, space, widths):
    """Decode a hex palette into ``space`` and compute its bounds."""
    space = ColorSpace.from_name(space)
    return compute_bounds(normalize(decode_colors(colors, space), space), space, widths)
