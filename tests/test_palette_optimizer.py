import json
import threading

import numpy as np
import pytest

from color_spaces import is_hex_color
from nelder_mead import CONVERGED, MAX_ITERATIONS
from palette_optimizer import (
    InvalidConfigError, InvalidPaletteError, OptimizerConfig, main, optimize_palette, parse_palette,
)

PALETTE = ["#4477AA", "#228833"]


def quick_config(**overrides):
    settings = dict(color_space="oklab", n_colors_to_add=1, n_optim_runs=5, nm_iterations=100, seed=42)
    settings.update(overrides)
    return OptimizerConfig(**settings)


def test_end_to_end_run():
    calls = []

    def callback(run, percent, best_score):
        calls.append((run, percent, best_score))
        return False

    result = optimize_palette(PALETTE, quick_config(), callback=callback)

    assert len(result.new_colors) == 1
    assert is_hex_color(result.new_colors[0])
    assert result.new_colors[0] not in PALETTE
    assert result.convergence_reason in (CONVERGED, MAX_ITERATIONS)
    assert len(result.progress) == 5
    assert all(b <= a for a, b in zip(result.progress, result.progress[1:]))
    assert result.best_score == pytest.approx(result.progress[-1])
    assert result.best_score < 0
    assert result.best_distance > 0
    assert result.restarts_completed == 5
    assert not result.cancelled

    assert [c[0] for c in calls] == [1, 2, 3, 4, 5]
    assert [c[1] for c in calls] == [20, 40, 60, 80, 100]
    assert [c[2] for c in calls] == result.progress


def test_callback_can_stop_the_run():
    result = optimize_palette(PALETTE, quick_config(), callback=lambda run, percent, score: run == 2)
    assert len(result.progress) == 2
    assert result.restarts_completed == 2
    assert result.cancelled
    assert len(result.new_colors) == 1


def test_stop_event_before_start():
    stop = threading.Event()
    stop.set()
    result = optimize_palette(PALETTE, quick_config(), stop_event=stop)
    assert result.cancelled
    assert result.new_colors == []
    assert result.progress == []
    assert result.best_score == np.inf


def test_stop_event_keeps_best_so_far():
    stop = threading.Event()

    def callback(run, percent, best_score):
        if run == 3:
            stop.set()
        return False

    result = optimize_palette(PALETTE, quick_config(), callback=callback, stop_event=stop)
    assert result.restarts_completed == 3
    assert result.cancelled
    assert len(result.new_colors) == 1


def test_seed_makes_runs_reproducible():
    config = quick_config(n_colors_to_add=2, n_optim_runs=3, nm_iterations=60, seed=7)
    first = optimize_palette(PALETTE, config)
    second = optimize_palette(PALETTE, config)
    assert first.new_colors == second.new_colors
    assert first.progress == second.progress


@pytest.mark.parametrize("space", ["hsl", "lab", "lch", "oklch"])
def test_other_spaces(space):
    result = optimize_palette(PALETTE, quick_config(color_space=space, n_colors_to_add=2,
                                                    n_optim_runs=2, nm_iterations=40))
    assert len(result.new_colors) == 2
    assert all(is_hex_color(c) for c in result.new_colors)


def test_single_color_palette():
    result = optimize_palette(["#000000"], quick_config(n_optim_runs=2, nm_iterations=50,
                                                        widths=(0.5, 0.5, 0.5)))
    assert len(result.new_colors) == 1
    assert result.new_colors[0] != "#000000"


def test_config_dict_with_camel_case_keys():
    config = {"colorSpace": "lch", "nColsToAdd": 2, "nOptimRuns": 2, "nmIterations": 30,
              "colorblindWeights": {"none": 1, "deutan": 2}, "seed": 1}
    result = optimize_palette(PALETTE, config)
    assert len(result.new_colors) == 2
    assert result.to_dict()["bounds"] == {"l": [0.0, 1.0], "c": [0.0, 1.0], "h": [0.0, 1.0]}


@pytest.mark.parametrize("colors", [[], None, "#4477AA", ["#4477AA", "blue"], ["#12345"]])
def test_invalid_palettes(colors):
    with pytest.raises(InvalidPaletteError):
        optimize_palette(colors, quick_config())


@pytest.mark.parametrize("overrides", [
    {"color_space": "xyz"},
    {"n_colors_to_add": 0},
    {"n_optim_runs": -1},
    {"nm_iterations": 2.5},
    {"widths": (0.5, 0.5)},
    {"widths": (0.5, 1.5, 0.0)},
    {"colorblind_weights": {"achromat": 1.0}},
    {"colorblind_weights": {"deutan": -1.0}},
    {"mean_kind": "median"},
    {"distance_metric": "euclid"},
    {"seed": "abc"},
])
def test_invalid_configs(overrides):
    with pytest.raises(InvalidConfigError):
        optimize_palette(PALETTE, quick_config(**overrides))


def test_unknown_config_key():
    with pytest.raises(InvalidConfigError):
        OptimizerConfig.from_dict({"colour": "oklab"})


def test_errors_are_value_errors():
    assert issubclass(InvalidPaletteError, ValueError)
    assert issubclass(InvalidConfigError, ValueError)


def test_parse_palette():
    assert parse_palette("'#4477aa', 228833 junk #FFF") == ["#4477AA", "#228833"]
    assert parse_palette("") == []
    assert parse_palette(None) == []


def test_cli_summary(capsys):
    code = main(["#4477AA", "#228833", "-r", "2", "-i", "30", "--seed", "3", "-q"])
    out = capsys.readouterr().out
    assert code == 0
    assert "PALETTE EXTENSION RESULT" in out
    assert "best score =" not in out


def test_cli_json(capsys):
    code = main(["#4477AA,#228833", "-n", "2", "-s", "lch", "-r", "2", "-i", "30",
                 "--seed", "3", "--weight", "deutan=2,none=1", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert code == 0
    assert len(data["newColors"]) == 2
    assert data["config"]["color_space"] == "lch"
    assert data["config"]["colorblind_weights"] == {"deutan": 2.0, "none": 1.0}
    assert len(data["progressSequence"]) == 2


def test_cli_config_file(tmp_path, capsys):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"nOptimRuns": 2, "nmIterations": 30, "seed": 5}))
    code = main(["#4477AA", "--config", str(config_path), "-s", "hsl", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert code == 0
    assert data["config"]["n_optim_runs"] == 2
    assert data["config"]["color_space"] == "hsl"


def test_cli_invalid_input(capsys):
    assert main(["nothing-here"]) == 2
    assert "error" in capsys.readouterr().err
    assert main(["#4477AA", "--weight", "deutan"]) == 2


def test_cli_plot(tmp_path, capsys):
    plot_path = tmp_path / "result.png"
    code = main(["#4477AA", "#228833", "-r", "2", "-i", "20", "--seed", "1", "--plot", str(plot_path)])
    assert code == 0
    assert plot_path.exists()
    assert "Visualization saved" in capsys.readouterr().out
