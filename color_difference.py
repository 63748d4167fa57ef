"""
Perceptual color differences (CIEDE2000, CIE76) and the means used to aggregate them.
"""

import numpy as np
from scipy import stats

from color_spaces import parse_hex

MEAN_KINDS = ("harmonic", "geometric", "arithmetic", "quadratic", "minimum", "power", "lehmer")


def delta_e_cie2000(lab1, lab2, k_l=1.0, k_c=1.0, k_h=1.0):
    """Calculate CIEDE2000 color difference.

    Inputs are CIELAB arrays of shape (..., 3) and broadcast against each other,
    so a single call can score a whole set of pairs.
    """
    lab1 = np.asarray(lab1, dtype=float)
    lab2 = np.asarray(lab2, dtype=float)
    L1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    L2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    # Calculate C and h
    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar = (C1 + C2) / 2

    G = 0.5 * (1 - np.sqrt(C_bar**7 / (C_bar**7 + 25**7)))

    a1_prime = a1 * (1 + G)
    a2_prime = a2 * (1 + G)

    C1_prime = np.hypot(a1_prime, b1)
    C2_prime = np.hypot(a2_prime, b2)

    h1_prime = np.arctan2(b1, a1_prime) % (2 * np.pi)
    h2_prime = np.arctan2(b2, a2_prime) % (2 * np.pi)

    # Calculate differences
    delta_L_prime = L2 - L1
    delta_C_prime = C2_prime - C1_prime

    chroma_product = C1_prime * C2_prime
    achromatic = chroma_product == 0

    delta_h = h2_prime - h1_prime
    delta_h_prime = np.where(
        delta_h > np.pi, delta_h - 2 * np.pi,
        np.where(delta_h < -np.pi, delta_h + 2 * np.pi, delta_h),
    )
    delta_h_prime = np.where(achromatic, 0.0, delta_h_prime)

    delta_H_prime = 2 * np.sqrt(chroma_product) * np.sin(delta_h_prime / 2)

    # Calculate mean values
    L_bar_prime = (L1 + L2) / 2
    C_bar_prime = (C1_prime + C2_prime) / 2

    h_sum = h1_prime + h2_prime
    h_bar_prime = np.where(
        achromatic, h_sum,
        np.where(
            np.abs(h1_prime - h2_prime) <= np.pi, h_sum / 2,
            np.where(h_sum < 2 * np.pi, (h_sum + 2 * np.pi) / 2, (h_sum - 2 * np.pi) / 2),
        ),
    )

    T = (1 - 0.17 * np.cos(h_bar_prime - np.pi/6) +
         0.24 * np.cos(2 * h_bar_prime) +
         0.32 * np.cos(3 * h_bar_prime + np.pi/30) -
         0.20 * np.cos(4 * h_bar_prime - 63*np.pi/180))

    delta_theta = (30 * np.pi / 180) * np.exp(-((h_bar_prime - 275*np.pi/180) / (25*np.pi/180))**2)

    R_C = 2 * np.sqrt(C_bar_prime**7 / (C_bar_prime**7 + 25**7))

    S_L = 1 + (0.015 * (L_bar_prime - 50)**2) / np.sqrt(20 + (L_bar_prime - 50)**2)
    S_C = 1 + 0.045 * C_bar_prime
    S_H = 1 + 0.015 * C_bar_prime * T

    R_T = -np.sin(2 * delta_theta) * R_C

    term_L = delta_L_prime / (k_l * S_L)
    term_C = delta_C_prime / (k_c * S_C)
    term_H = delta_H_prime / (k_h * S_H)
    delta_E = np.sqrt(np.maximum(
        term_L**2 + term_C**2 + term_H**2 + R_T * term_C * term_H, 0.0
    ))

    if np.ndim(delta_E) == 0:
        return float(delta_E)
    return delta_E


def delta_e_cie76(coords1, coords2):
    """Euclidean distance between two sets of (L, a, b)-like coordinates."""
    diff = np.asarray(coords1, dtype=float) - np.asarray(coords2, dtype=float)
    distance = np.sqrt(np.sum(diff**2, axis=-1))
    if np.ndim(distance) == 0:
        return float(distance)
    return distance


def aggregate_distances(values, kind="harmonic", p=None, eps=1e-9):
    """Reduce a list of pairwise distances to one number.

    Every value is floored at ``eps`` first, so a single zero distance drives
    the harmonic and geometric means towards zero without dividing by zero.
    Non-finite values are ignored and an empty list aggregates to 0.
    """
    vals = np.asarray(values, dtype=float).ravel()
    vals = np.maximum(vals[np.isfinite(vals)], eps)
    if vals.size == 0:
        return 0.0

    kind = str(kind).lower()
    if kind in ("minimum", "min"):
        return float(vals.min())
    if kind in ("arithmetic", "mean"):
        return float(vals.mean())
    if kind in ("quadratic", "rms"):
        return float(np.sqrt(np.mean(vals**2)))
    if kind == "geometric":
        return float(stats.gmean(vals))
    if kind == "harmonic":
        return float(stats.hmean(vals))
    if kind == "power":
        p = -2.0 if p is None else p
        if abs(p) < 1e-12:
            return float(stats.gmean(vals))
        return float(stats.pmean(vals, p))
    if kind == "lehmer":
        p = -2.0 if p is None else p
        return float(np.sum(vals ** (p + 1)) / np.sum(vals ** p))
    raise ValueError(f"Unknown mean kind {kind!r} (expected one of {', '.join(MEAN_KINDS)})")


def relative_luminance(hex_color):
    """Calculate relative luminance for contrast ratio."""
    rgb = parse_hex(hex_color)
    linear = np.where(rgb <= 0.03928, rgb / 12.92, ((rgb + 0.055) / 1.055) ** 2.4)
    return float(0.2126 * linear[0] + 0.7152 * linear[1] + 0.0722 * linear[2])


def contrast_ratio(hex1, hex2):
    """Calculate the WCAG contrast ratio between two colors."""
    l1 = relative_luminance(hex1)
    l2 = relative_luminance(hex2)
    lighter = max(l1, l2)
    darker = min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


def text_color_for(hex_color):
    """Pick a legible label color for text drawn on top of ``hex_color``."""
    return "#111827" if relative_luminance(hex_color) > 0.5 else "#F8FAFC"
