import numpy as np
import pytest

from color_spaces import ColorSpace, is_hex_color
from color_vision import CVD_STATES
from palette_bounds import Bounds, bounds_for_palette
from palette_objective import PaletteObjective

PALETTE = ["#4477AA", "#228833"]
EQUAL_WEIGHTS = {state: 1.0 for state in CVD_STATES}


def make_objective(space="oklab", n=1, widths=(0.0, 0.0, 0.0), weights=None, **kwargs):
    bounds = bounds_for_palette(PALETTE, space, widths)
    return PaletteObjective(PALETTE, space, bounds, n, weights or EQUAL_WEIGHTS, **kwargs)


def test_duplicate_color_scores_lower_than_distinct_one():
    objective = make_objective()
    duplicate, _ = objective.distances(["#4477AA"])
    distinct, _ = objective.distances(["#FFFF00"])
    assert duplicate < distinct
    assert duplicate < 1e-3


def test_value_is_negative_distance_plus_penalty():
    objective = make_objective(n=2)
    x = np.random.default_rng(1).standard_normal(objective.dimension)
    info = objective.evaluate_info(x)
    assert objective(x) == pytest.approx(info.value)
    assert info.value == pytest.approx(-info.distance + 1e-3 * np.sum(x**2))
    assert objective.distances(info.new_colors)[0] == pytest.approx(info.distance)
    assert set(info.state_distances) == set(CVD_STATES)
    assert len(info.new_colors) == 2
    assert all(is_hex_color(c) for c in info.new_colors)


def test_zero_weights_leave_only_the_penalty():
    objective = make_objective(weights={state: 0.0 for state in CVD_STATES})
    x = np.ones(objective.dimension)
    assert objective(x) == pytest.approx(3e-3)


@pytest.mark.parametrize("space", list(ColorSpace))
def test_decoded_values_respect_bounds(space):
    objective = make_objective(space=space, n=3, widths=(0.5, 0.5, 0.5))
    rng = np.random.default_rng(5)
    for _ in range(20):
        decoded = objective.decode(rng.normal(0, 4, objective.dimension))
        for index in range(3):
            if index == space.hue_index:
                continue
            low, high = objective.bounds.pair(index)
            assert np.all(decoded[:, index] >= low - 1e-12)
            assert np.all(decoded[:, index] <= high + 1e-12)


def test_lightness_is_sorted():
    objective = make_objective(n=4)
    rng = np.random.default_rng(9)
    for _ in range(20):
        lightness = objective.decode(rng.standard_normal(objective.dimension))[:, 0]
        assert np.all(np.diff(lightness) >= 0)


def test_hue_stays_in_circular_interval():
    bounds = Bounds(ColorSpace.LCH, (0.0, 0.0, 0.9), (1.0, 1.0, 1.1))
    objective = PaletteObjective(PALETTE, "lch", bounds, 5, EQUAL_WEIGHTS)
    rng = np.random.default_rng(11)
    for _ in range(20):
        hue = objective.decode(rng.normal(0, 3, objective.dimension))[:, 2]
        assert np.all((hue >= 0.9 - 1e-9) | (hue <= 0.1 + 1e-9))
        assert np.all((hue >= 0.0) & (hue < 1.0))


def test_decode_does_not_modify_params():
    objective = make_objective(n=2)
    x = np.arange(objective.dimension, dtype=float)
    objective.decode(x)
    assert x == pytest.approx(np.arange(objective.dimension))


def test_alternative_metrics():
    x = np.zeros(3)
    for metric in ("lab76", "oklab76"):
        value = make_objective(distance_metric=metric)(x)
        assert np.isfinite(value)
    with pytest.raises(ValueError):
        make_objective(distance_metric="euclid")


def test_wrong_candidate_count():
    with pytest.raises(ValueError):
        make_objective(n=2).distances(["#FFFF00"])
