"""
Objective for palette extension: decode an unconstrained parameter vector into
candidate colors and score how distinguishable they are from the existing
palette and from each other, under every simulated vision type.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from scipy.special import expit

from color_difference import aggregate_distances, delta_e_cie2000, delta_e_cie76
from color_spaces import (
    ColorSpace, format_hex, parse_hex, quantize_rgb, space_to_srgb, srgb_to_lab,
    srgb_to_oklab, unscale,
)
from color_vision import CVD_STATES, simulate_rgb

logger = logging.getLogger(__name__)

PENALTY_WEIGHT = 1e-3
DISTANCE_EPS = 1e-6
DISTANCE_METRICS = ("de2000", "lab76", "oklab76")


@dataclass
class ObjectiveInfo:
    value: float
    new_colors: list
    distance: float
    state_distances: dict = field(default_factory=dict)
    normalized: np.ndarray = None


def _coords_for_metric(rgb, metric):
    if metric == "oklab76":
        return srgb_to_oklab(rgb)
    return srgb_to_lab(rgb)


def _pairwise(coords1, coords2, metric):
    if metric == "de2000":
        return delta_e_cie2000(coords1, coords2)
    return delta_e_cie76(coords1, coords2)


class PaletteObjective:
    """Score of ``n_colors_to_add`` candidate colors against a fixed palette (lower is better)."""

    def __init__(self, colors, space, bounds, n_colors_to_add, cvd_weights,
                 penalty_weight=PENALTY_WEIGHT, mean_kind="harmonic", distance_metric="de2000"):
        if distance_metric not in DISTANCE_METRICS:
            raise ValueError(f"Unknown distance metric {distance_metric!r} "
                             f"(expected one of {', '.join(DISTANCE_METRICS)})")
        self.space = ColorSpace.from_name(space)
        self.bounds = bounds
        self.n_colors_to_add = int(n_colors_to_add)
        self.cvd_weights = {state: float(cvd_weights.get(state, 0.0)) for state in CVD_STATES}
        self.penalty_weight = penalty_weight
        self.mean_kind = mean_kind
        self.distance_metric = distance_metric
        self.existing_colors = list(colors)

        # The existing palette never changes during a run, so simulate it once per state
        existing_rgb = np.array([parse_hex(c) for c in self.existing_colors]).reshape(-1, 3)
        self._existing_coords = {
            state: _coords_for_metric(quantize_rgb(simulate_rgb(existing_rgb, state)), distance_metric)
            for state in CVD_STATES
        }
        self._pairs = np.triu_indices(self.n_colors_to_add, k=1)

    @property
    def dimension(self):
        return self.n_colors_to_add * len(self.space.channels)

    def decode(self, params):
        """Map a flat parameter vector to normalized channel values of shape (n, 3)."""
        m = np.array(params, dtype=float).reshape(self.n_colors_to_add, len(self.space.channels))
        bounds = self.bounds
        light = self.space.lightness_index
        chroma = self.space.chroma_index
        hue = self.space.hue_index

        if light is not None:
            raw = m[:, light]
            if len(raw) > 1:
                # Positive increments keep the new colors sorted by lightness
                with np.errstate(over="ignore"):
                    raw[1:] = np.exp(raw[1:])
                raw = np.cumsum(raw)
            low, high = bounds.pair(light)
            m[:, light] = low + expit(raw) * (high - low)

        if chroma is not None:
            low, high = bounds.pair(chroma)
            m[:, chroma] = low + expit(m[:, chroma]) * (high - low)

        if hue is not None:
            low, high = bounds.pair(hue)
            span = (high - low + 1.0) % 1.0 or 1.0
            m[:, hue] = (low + expit(m[:, hue]) * span) % 1.0

        for index in range(len(self.space.channels)):
            if index in (light, chroma, hue):
                continue
            low, high = bounds.pair(index)
            m[:, index] = low + expit(m[:, index]) * (high - low)
        return m

    def candidate_rgb(self, params):
        """8-bit quantized sRGB of the decoded candidates, exactly what their hex codes hold."""
        values = unscale(self.decode(params), self.space)
        return quantize_rgb(space_to_srgb(values, self.space))

    def new_colors(self, params):
        return [format_hex(rgb) for rgb in self.candidate_rgb(params)]

    def _distances_rgb(self, new_rgb):
        state_distances = {}
        for state in CVD_STATES:
            # Zero-weight states are still evaluated so every state can be reported
            new_coords = _coords_for_metric(quantize_rgb(simulate_rgb(new_rgb, state)), self.distance_metric)
            existing = self._existing_coords[state]
            cross = _pairwise(existing[:, None, :], new_coords[None, :, :], self.distance_metric)
            within = _pairwise(new_coords[self._pairs[0]], new_coords[self._pairs[1]], self.distance_metric)
            pairwise = np.concatenate([np.ravel(cross), np.ravel(within)])
            state_distances[state] = aggregate_distances(pairwise, self.mean_kind, eps=DISTANCE_EPS)
        weighted = sum(state_distances[state] * self.cvd_weights[state] for state in CVD_STATES)
        return float(weighted), state_distances

    def distances(self, new_colors):
        """Weighted distance and per-state aggregates for explicit candidate hex codes."""
        new_rgb = np.array([parse_hex(c) for c in new_colors]).reshape(-1, 3)
        if len(new_rgb) != self.n_colors_to_add:
            raise ValueError(f"Expected {self.n_colors_to_add} candidate colors, got {len(new_rgb)}")
        return self._distances_rgb(new_rgb)

    def penalty(self, params):
        return self.penalty_weight * float(np.sum(np.square(params)))

    def evaluate(self, params):
        weighted, _ = self._distances_rgb(self.candidate_rgb(params))
        return -weighted + self.penalty(params)

    __call__ = evaluate

    def evaluate_info(self, params):
        normalized = self.decode(params)
        new_rgb = quantize_rgb(space_to_srgb(unscale(normalized, self.space), self.space))
        weighted, state_distances = self._distances_rgb(new_rgb)
        return ObjectiveInfo(
            value=-weighted + self.penalty(params),
            new_colors=[format_hex(rgb) for rgb in new_rgb],
            distance=weighted,
            state_distances=state_distances,
            normalized=normalized,
        )
