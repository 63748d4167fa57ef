#!/usr/bin/env python3
"""
Extend a color palette with new colors that stay distinguishable from the
existing ones (and from each other) under simulated color-vision deficiency.

The search is a multi-start Nelder-Mead over an unconstrained parameter vector;
each restart begins from an independent standard-normal point and the best
result across restarts wins.
"""

import argparse
import json
import logging
import math
import re
import sys
from dataclasses import asdict, dataclass, field, fields

import numpy as np

from color_difference import MEAN_KINDS
from color_spaces import ColorSpace, is_hex_color, normalize_hex
from color_vision import CVD_STATES
from nelder_mead import nelder_mead
from palette_bounds import bounds_for_palette
from palette_objective import DISTANCE_METRICS, PENALTY_WEIGHT, PaletteObjective

logger = logging.getLogger(__name__)

START_STEP = 1.2
MIN_NM_ITERATIONS = 10


class InvalidPaletteError(ValueError):
    """The input palette is empty or contains something that is not a hex color."""


class InvalidConfigError(ValueError):
    """An optimizer setting is missing, unknown or out of range."""


# camelCase names accepted by OptimizerConfig.from_dict
CONFIG_ALIASES = {
    "colorSpace": "color_space",
    "nColsToAdd": "n_colors_to_add",
    "nOptimRuns": "n_optim_runs",
    "nmIterations": "nm_iterations",
    "colorblindWeights": "colorblind_weights",
    "penaltyWeight": "penalty_weight",
    "meanKind": "mean_kind",
    "distanceMetric": "distance_metric",
}


def _default_weights():
    return {state: 1.0 for state in ("none", "deutan", "protan", "tritan")}


@dataclass
class OptimizerConfig:
    color_space: str = "oklab"
    n_colors_to_add: int = 1
    n_optim_runs: int = 20
    nm_iterations: int = 260
    widths: tuple = (0.0, 0.0, 0.0)
    colorblind_weights: dict = field(default_factory=_default_weights)
    seed: int = None
    tolerance: float = 1e-5
    step: float = START_STEP
    penalty_weight: float = PENALTY_WEIGHT
    mean_kind: str = "harmonic"
    distance_metric: str = "de2000"

    @classmethod
    def from_dict(cls, data):
        """Build a config from snake_case or camelCase keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = CONFIG_ALIASES.get(key, key)
            if name not in known:
                raise InvalidConfigError(f"Unknown configuration key {key!r}")
            kwargs[name] = value
        return cls(**kwargs).validated()

    def validated(self):
        """Check every setting and return a normalized copy."""
        try:
            space = ColorSpace.from_name(self.color_space)
        except ValueError as e:
            raise InvalidConfigError(str(e)) from e

        n_colors = _positive_int("n_colors_to_add", self.n_colors_to_add)
        n_runs = _positive_int("n_optim_runs", self.n_optim_runs)
        iterations = _positive_int("nm_iterations", self.nm_iterations)
        if iterations < MIN_NM_ITERATIONS:
            raise InvalidConfigError(f"nm_iterations must be at least {MIN_NM_ITERATIONS}, got {iterations}")

        widths = tuple(float(w) for w in self.widths)
        if len(widths) != len(space.channels):
            raise InvalidConfigError(f"widths needs {len(space.channels)} values, got {len(widths)}")
        if any(not 0.0 <= w <= 1.0 for w in widths):
            raise InvalidConfigError(f"widths must lie in [0, 1], got {list(widths)}")

        weights = {}
        for state, weight in dict(self.colorblind_weights).items():
            if state not in CVD_STATES:
                raise InvalidConfigError(f"Unknown CVD state {state!r} in colorblind_weights")
            weight = float(weight)
            if not math.isfinite(weight) or weight < 0:
                raise InvalidConfigError(f"CVD weight for {state!r} must be a non-negative number")
            weights[state] = weight

        if self.seed is not None and not isinstance(self.seed, (int, np.integer)):
            raise InvalidConfigError(f"seed must be an integer or None, got {self.seed!r}")
        for name in ("tolerance", "step"):
            if not float(getattr(self, name)) > 0:
                raise InvalidConfigError(f"{name} must be positive")
        if float(self.penalty_weight) < 0:
            raise InvalidConfigError("penalty_weight must be non-negative")
        if self.mean_kind not in MEAN_KINDS:
            raise InvalidConfigError(f"mean_kind must be one of {', '.join(MEAN_KINDS)}")
        if self.distance_metric not in DISTANCE_METRICS:
            raise InvalidConfigError(f"distance_metric must be one of {', '.join(DISTANCE_METRICS)}")

        return OptimizerConfig(
            color_space=space.label,
            n_colors_to_add=n_colors,
            n_optim_runs=n_runs,
            nm_iterations=iterations,
            widths=widths,
            colorblind_weights=weights,
            seed=None if self.seed is None else int(self.seed),
            tolerance=float(self.tolerance),
            step=float(self.step),
            penalty_weight=float(self.penalty_weight),
            mean_kind=self.mean_kind,
            distance_metric=self.distance_metric,
        )


def _positive_int(name, value):
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = None
    if isinstance(value, bool) or number is None or number != value or number < 1:
        raise InvalidConfigError(f"{name} must be a positive integer, got {value!r}")
    return number


@dataclass
class RunResult:
    best_score: float
    new_colors: list
    convergence_reason: str
    progress: list
    best_params: np.ndarray = None
    best_distance: float = 0.0
    state_distances: dict = field(default_factory=dict)
    restarts_completed: int = 0
    cancelled: bool = False
    bounds: object = None

    def to_dict(self):
        return {
            "bestScore": self.best_score,
            "newColors": list(self.new_colors),
            "convergenceReason": self.convergence_reason,
            "progressSequence": list(self.progress),
            "bestDistance": self.best_distance,
            "stateDistances": dict(self.state_distances),
            "restartsCompleted": self.restarts_completed,
            "cancelled": self.cancelled,
            "bounds": self.bounds.as_dict() if self.bounds is not None else None,
        }


def parse_palette(text):
    """Pull the valid hex codes out of free text (commas, spaces or quotes as separators)."""
    tokens = re.split(r"[\s,;]+", re.sub(r"['\"]", " ", text or ""))
    return [normalize_hex(token) for token in tokens if token and is_hex_color(token)]


def validate_palette(colors):
    """Return the palette as canonical '#RRGGBB' codes, rejecting empty or invalid input."""
    if colors is None or isinstance(colors, str):
        raise InvalidPaletteError("Expected a list of hex colors")
    colors = list(colors)
    if not colors:
        raise InvalidPaletteError("The palette is empty; provide at least one hex color")
    invalid = [c for c in colors if not is_hex_color(c)]
    if invalid:
        raise InvalidPaletteError(f"Invalid hex color(s): {', '.join(map(str, invalid))}")
    return [normalize_hex(c) for c in colors]


def _coerce_config(config):
    if config is None:
        return OptimizerConfig().validated()
    if isinstance(config, OptimizerConfig):
        return config.validated()
    return OptimizerConfig.from_dict(config)


def optimize_palette(colors, config=None, callback=None, stop_event=None):
    """Find ``config.n_colors_to_add`` new colors for ``colors``.

    ``callback(restart_index, percent_complete, best_score_so_far)`` runs after
    every restart; returning True stops before the next restart, as does
    setting ``stop_event``. Stopping never discards the best result found so far.
    """
    palette = validate_palette(colors)
    config = _coerce_config(config)
    space = ColorSpace.from_name(config.color_space)
    rng = np.random.default_rng(config.seed)

    bounds = bounds_for_palette(palette, space, config.widths)
    objective = PaletteObjective(
        palette, space, bounds, config.n_colors_to_add, config.colorblind_weights,
        penalty_weight=config.penalty_weight,
        mean_kind=config.mean_kind,
        distance_metric=config.distance_metric,
    )
    logger.info("Adding %d color(s) to %d in %s: %d restarts, up to %d iterations each",
                config.n_colors_to_add, len(palette), space, config.n_optim_runs, config.nm_iterations)

    best = None
    progress = []
    cancelled = False
    for run in range(config.n_optim_runs):
        if stop_event is not None and stop_event.is_set():
            cancelled = True
            break

        start = rng.standard_normal(objective.dimension)
        res = nelder_mead(objective, start, max_iterations=config.nm_iterations,
                          tolerance=config.tolerance, step=config.step)
        if best is None or res.fun < best.fun:
            best = res
        progress.append(best.fun)
        logger.debug("Restart %d/%d: %.4f (%s after %d evaluations), best %.4f",
                     run + 1, config.n_optim_runs, res.fun, res.reason, res.evaluations, best.fun)

        percent = int(100 * (run + 1) / config.n_optim_runs + 0.5)
        if callback is not None and callback(run + 1, percent, best.fun):
            cancelled = run + 1 < config.n_optim_runs
            break

    if cancelled:
        logger.info("Stopped after %d of %d restarts", len(progress), config.n_optim_runs)

    if best is None:
        return RunResult(best_score=math.inf, new_colors=[], convergence_reason=None,
                         progress=[], cancelled=True, bounds=bounds)

    info = objective.evaluate_info(best.x)
    logger.info("Best score %.4f (%s): %s", best.fun, best.reason, ", ".join(info.new_colors))
    return RunResult(
        best_score=best.fun,
        new_colors=info.new_colors,
        convergence_reason=best.reason,
        progress=progress,
        best_params=best.x,
        best_distance=info.distance,
        state_distances=info.state_distances,
        restarts_completed=len(progress),
        cancelled=cancelled,
        bounds=bounds,
    )


def _parse_weights(items):
    weights = {}
    for item in items:
        for part in item.split(","):
            state, sep, value = part.partition("=")
            if not sep:
                raise InvalidConfigError(f"Expected STATE=WEIGHT, got {part!r}")
            try:
                weights[state.strip()] = float(value)
            except ValueError:
                raise InvalidConfigError(f"Weight for {state.strip()!r} is not a number: {value!r}") from None
    return weights


def build_parser():
    parser = argparse.ArgumentParser(
        description="Add colors to a palette so every color stays distinguishable, including under CVD.")
    parser.add_argument("palette", nargs="+", help="Existing colors as hex codes (#RRGGBB), comma or space separated")
    parser.add_argument("-n", "--n-colors", type=int, dest="n_colors_to_add", help="Number of colors to add")
    parser.add_argument("-s", "--space", dest="color_space", choices=[s.label for s in ColorSpace],
                        help="Color space to optimize in")
    parser.add_argument("-r", "--runs", type=int, dest="n_optim_runs", help="Number of random restarts")
    parser.add_argument("-i", "--iterations", type=int, dest="nm_iterations", help="Nelder-Mead iterations per restart")
    parser.add_argument("-w", "--widths", type=float, nargs=3, metavar="W",
                        help="Bound tightness per channel in [0, 1], in the space's channel order")
    parser.add_argument("--weight", action="append", default=[], metavar="STATE=W",
                        help="CVD weight, e.g. --weight deutan=2 (states: none, deutan, protan, tritan)")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible runs")
    parser.add_argument("--mean", dest="mean_kind", choices=MEAN_KINDS, help="How pairwise distances are aggregated")
    parser.add_argument("--metric", dest="distance_metric", choices=DISTANCE_METRICS, help="Pairwise distance metric")
    parser.add_argument("--config", help="JSON file with optimizer settings (flags override it)")
    parser.add_argument("--plot", help="Save a figure of the result to this path")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every restart")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print the result")
    return parser


def config_from_args(args):
    settings = {}
    if args.config:
        with open(args.config) as f:
            settings.update(json.load(f))
    for name in ("color_space", "n_colors_to_add", "n_optim_runs", "nm_iterations",
                 "widths", "seed", "mean_kind", "distance_metric"):
        value = getattr(args, name)
        if value is not None:
            settings[name] = value
    if args.weight:
        # Any explicit weight replaces the whole weight set
        settings.pop("colorblindWeights", None)
        settings["colorblind_weights"] = _parse_weights(args.weight)
    return OptimizerConfig.from_dict(settings)


def main(argv=None):
    """Command-line entry point."""
    from palette_report import format_summary, visualize_result

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    def progress(run, percent, best_score):
        if not args.quiet and not args.json:
            print(f"Restart {run:3d} ({percent:3d}%): best score = {best_score:9.4f}")
        return False

    try:
        palette = validate_palette(parse_palette(" ".join(args.palette)))
        config = config_from_args(args)
        result = optimize_palette(palette, config, callback=progress)
    except (ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nOptimization cancelled by user.")
        return 1

    if args.json:
        print(json.dumps({"config": asdict(config), "palette": palette, **result.to_dict()}, indent=2))
    else:
        print(format_summary(palette, result, config))

    if args.plot:
        visualize_result(palette, result, path=args.plot)
        if not args.json:
            print(f"\nVisualization saved to: {args.plot}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
