"""
Approximate color-vision deficiency (CVD) simulation with fixed 3x3 RGB transforms.
"""

import numpy as np

from color_spaces import format_hex, parse_hex

# Order in which the objective visits the simulated vision types
CVD_STATES = ("deutan", "protan", "tritan", "none")

CVD_MATRICES = {
    "deutan": np.array([
        [0.625, 0.375, 0.0],
        [0.7, 0.3, 0.0],
        [0.0, 0.3, 0.7],
    ]),
    "protan": np.array([
        [0.56667, 0.43333, 0.0],
        [0.55833, 0.44167, 0.0],
        [0.0, 0.24167, 0.75833],
    ]),
    "tritan": np.array([
        [0.95, 0.05, 0.0],
        [0.0, 0.43333, 0.56667],
        [0.0, 0.475, 0.525],
    ]),
}


def check_state(state):
    if state != "none" and state not in CVD_MATRICES:
        raise ValueError(f"Unknown CVD state {state!r} (expected one of {', '.join(CVD_STATES)})")
    return state


def simulate_rgb(rgb, state):
    """Simulate how sRGB values (..., 3) in [0, 1] appear under ``state``."""
    check_state(state)
    rgb = np.asarray(rgb, dtype=float)
    if state == "none":
        return rgb
    clamped = np.clip(rgb, 0.0, 1.0)
    return np.clip(clamped @ CVD_MATRICES[state].T, 0.0, 1.0)


def simulate_cvd(hex_color, state):
    """Return the hex code of ``hex_color`` as seen with the given deficiency."""
    if check_state(state) == "none":
        return hex_color
    return format_hex(simulate_rgb(parse_hex(hex_color), state))


def simulate_palette(hex_colors, state):
    return [simulate_cvd(c, state) for c in hex_colors]
