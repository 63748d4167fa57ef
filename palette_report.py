"""
Reporting helpers for an extended palette: nearest neighbours per vision type,
each new color's influence on the aggregate distance, a text summary and a
matplotlib figure.
"""

import itertools

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from color_difference import aggregate_distances, delta_e_cie2000, delta_e_cie76, text_color_for
from color_spaces import parse_hex, quantize_rgb, srgb_to_lab, srgb_to_oklab
from color_vision import simulate_palette, simulate_rgb

REPORT_STATES = ("none", "deutan", "protan", "tritan")


def _coords(hex_colors, state, metric):
    rgb = np.array([parse_hex(c) for c in hex_colors]).reshape(-1, 3)
    rgb = quantize_rgb(simulate_rgb(rgb, state))
    return srgb_to_oklab(rgb) if metric == "oklab76" else srgb_to_lab(rgb)


def _distance(c1, c2, metric):
    return delta_e_cie2000(c1, c2) if metric == "de2000" else delta_e_cie76(c1, c2)


def nearest_neighbours(new_colors, existing, metric="de2000"):
    """For each new color, the closest other color (and its distance) under every vision type."""
    all_colors = list(existing) + list(new_colors)
    offset = len(existing)
    out = [{"hex": c, "closest_hex": "", "closest_distance": None, "by_state": {}} for c in new_colors]
    if len(all_colors) < 2:
        return out

    for state in REPORT_STATES:
        coords = _coords(all_colors, state, metric)
        for local, entry in enumerate(out):
            idx = offset + local
            dists = np.asarray(_distance(coords[idx][None, :], coords, metric), dtype=float)
            dists[idx] = np.inf
            nearest = int(np.argmin(dists))
            entry["by_state"][state] = (all_colors[nearest], float(dists[nearest]))
            if state == "none":
                entry["closest_hex"] = all_colors[nearest]
                entry["closest_distance"] = float(dists[nearest])
    return out


def influences(new_colors, existing, mean_kind="harmonic", metric="de2000"):
    """How much the aggregate distance would drop if each new color were removed.

    Pairs follow the optimizer: existing-to-new and new-to-new, never
    existing-to-existing. Rank 1 is the most influential color.
    """
    offset = len(existing)
    coords = _coords(list(existing) + list(new_colors), "none", metric)
    pairs = [(i, offset + j) for i in range(offset) for j in range(len(new_colors))]
    pairs += [(offset + i, offset + j) for i, j in itertools.combinations(range(len(new_colors)), 2)]
    dists = np.array([_distance(coords[i], coords[j], metric) for i, j in pairs])
    overall = aggregate_distances(dists, mean_kind)

    out = []
    for local, hex_color in enumerate(new_colors):
        idx = offset + local
        keep = np.array([idx not in pair for pair in pairs], dtype=bool)
        without = aggregate_distances(dists[keep], mean_kind) if keep.any() else overall
        out.append({"hex": hex_color, "influence": overall - without})

    ranked = sorted(range(len(out)), key=lambda k: out[k]["influence"], reverse=True)
    for rank, k in enumerate(ranked, 1):
        out[k]["rank"] = rank
    return out


def format_summary(existing, result, config=None):
    """Render a run result as the block of text printed by the command line tool."""
    metric = getattr(config, "distance_metric", "de2000")
    lines = ["=" * 70, "PALETTE EXTENSION RESULT", "=" * 70]
    lines.append(f"Existing colors: {', '.join(existing)}")
    if not result.new_colors:
        lines.append("No restart completed; nothing to report.")
        return "\n".join(lines)

    neighbours = nearest_neighbours(result.new_colors, existing, metric)
    influence = influences(result.new_colors, existing, getattr(config, "mean_kind", "harmonic"), metric)
    lines.append("")
    lines.append("New colors:")
    for neighbour, inf in zip(neighbours, influence):
        lines.append(f"  {neighbour['hex']}  closest {neighbour['closest_hex']} "
                     f"(dE {neighbour['closest_distance']:.2f})  "
                     f"influence {inf['influence']:.2f} (rank {inf['rank']})")
        per_state = " | ".join(f"{state} {dist:.1f}" for state, (_, dist) in neighbour["by_state"].items())
        lines.append(f"    nearest by vision type: {per_state}")

    lines.append("")
    lines.append("-" * 70)
    lines.append(f"Best score:        {result.best_score:.4f}")
    lines.append(f"Weighted distance: {result.best_distance:.4f}")
    lines.append("Per-state distance: " + " | ".join(
        f"{state} {value:.2f}" for state, value in result.state_distances.items()))
    lines.append(f"Convergence:       {result.convergence_reason}")
    lines.append(f"Restarts:          {result.restarts_completed}" + (" (stopped early)" if result.cancelled else ""))
    lines.append("=" * 70)
    return "\n".join(lines)


def visualize_result(existing, result, path=None, states=REPORT_STATES):
    """Plot existing and new colors under each vision type, plus the restart progress."""
    existing = list(existing)
    new_colors = list(result.new_colors)
    n_rows = max(len(existing), len(new_colors), 1)

    fig, axes = plt.subplots(2, 1, figsize=(3 * len(states) + 2, 4 + 0.5 * n_rows),
                             gridspec_kw={'height_ratios': [2, 1]})

    # Top plot: one column pair (existing | new) per vision type
    ax1 = axes[0]
    ax1.set_xlim(0, 3 * len(states))
    ax1.set_ylim(0, n_rows + 1)
    ax1.invert_yaxis()
    for col, state in enumerate(states):
        x = 3 * col
        ax1.text(x + 1.25, 0.5, state, ha='center', va='center', fontsize=11, fontweight='bold')
        for column_colors, dx in ((existing, 0.1), (new_colors, 1.3)):
            for row, (original, seen) in enumerate(zip(column_colors, simulate_palette(column_colors, state))):
                rect = Rectangle((x + dx, row + 1), 1.1, 0.9, facecolor=seen,
                                 edgecolor='black', linewidth=2 if dx > 1 else 0.5)
                ax1.add_patch(rect)
                ax1.text(x + dx + 0.55, row + 1.45, original, ha='center', va='center',
                         fontsize=7, color=text_color_for(seen), family='monospace')
    ax1.set_xticks([])
    ax1.set_yticks([])
    ax1.set_title("Existing (thin border) and new (thick border) colors by vision type",
                  fontsize=12, fontweight='bold')

    # Bottom plot: best score after each restart
    ax2 = axes[1]
    if result.progress:
        runs = np.arange(1, len(result.progress) + 1)
        ax2.plot(runs, result.progress, marker='o', color='#4477AA')
        ax2.set_xticks(runs if len(runs) <= 20 else np.linspace(1, len(runs), 10, dtype=int))
    ax2.set_xlabel("Restart")
    ax2.set_ylabel("Best score so far")
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    if path:
        fig.savefig(path, dpi=150, bbox_inches='tight')
    return fig
