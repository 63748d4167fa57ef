#!/usr/bin/env python3
"""
Streamlit web app for interactively extending a palette with distinguishable colors.
"""

import numpy as np
import streamlit as st

from color_difference import contrast_ratio, delta_e_cie2000, text_color_for
from color_spaces import ColorSpace, decode_color, parse_hex, srgb_to_lab
from color_vision import simulate_cvd
from palette_optimizer import OptimizerConfig, optimize_palette, parse_palette
from palette_report import REPORT_STATES, influences, nearest_neighbours

st.set_page_config(page_title="Palette Extender", layout="wide")

st.title("🎨 Colorblind-Safe Palette Extender")

if 'last_result' not in st.session_state:
    st.session_state['last_result'] = None

col1, col2 = st.columns(2)

with col1:
    st.subheader("Configuration")

    palette_input = st.text_area(
        "Existing colors (hex codes, comma or space separated):",
        value="#4477AA, #EE6677, #228833",
        height=100,
        help="Invalid tokens are ignored"
    )
    palette = parse_palette(palette_input)
    if palette:
        st.caption(f"{len(palette)} valid color(s): {', '.join(palette)}")
    else:
        st.error("No valid hex colors found. Use #RRGGBB or RRGGBB")

    space = ColorSpace.from_name(st.selectbox(
        "Color space",
        options=[s.label for s in ColorSpace],
        index=3,
        help="Space in which new colors are parameterised and bounded"
    ))

    n_colors = st.slider("Number of colors to add:", min_value=1, max_value=12, value=3)
    n_runs = st.number_input("Random restarts", min_value=1, max_value=500, value=20)
    iters = st.number_input("Nelder-Mead iterations per restart", min_value=10, max_value=5000, value=260)

with col2:
    st.subheader("Constraints & weights")

    width_cols = st.columns(3)
    widths = []
    for width_col, channel in zip(width_cols, space.channels):
        with width_col:
            widths.append(st.slider(
                f"Width {channel.upper()}", min_value=0.0, max_value=1.0, value=0.0, step=0.05,
                help="0 leaves the channel unconstrained; 1 keeps it within the palette's own spread"
            ))

    weight_cols = st.columns(4)
    weights = {}
    for weight_col, state in zip(weight_cols, REPORT_STATES):
        with weight_col:
            weights[state] = st.number_input(f"{state} weight", min_value=0.0, max_value=20.0, value=1.0, step=0.5)

    seed_text = st.text_input("Seed (optional)", value="", help="Leave empty for a different result each run")

start = st.button('Start optimization', disabled=not palette)

if start:
    try:
        config = OptimizerConfig(
            color_space=space.label,
            n_colors_to_add=int(n_colors),
            n_optim_runs=int(n_runs),
            nm_iterations=int(iters),
            widths=tuple(widths),
            colorblind_weights=weights,
            seed=int(seed_text) if seed_text.strip() else None,
        ).validated()
    except ValueError as e:
        st.error(f"Invalid configuration: {e}")
        config = None

    if config is not None:
        progress_bar = st.progress(0, text="Starting optimization...")

        def _ui_callback(run, percent, best_score):
            progress_bar.progress(percent, text=f"Restart {run}/{config.n_optim_runs}: best score {best_score:.3f}")
            return False

        result = optimize_palette(palette, config, callback=_ui_callback)
        progress_bar.progress(100, text=f"Done: {result.convergence_reason}")
        st.session_state['last_result'] = (palette, config, result)

last = st.session_state['last_result']
if last is not None:
    existing, config, result = last
    new_colors = result.new_colors

    # Display color swatches as native HTML, one row per vision type
    st.subheader("Extended Palette")
    for state in REPORT_STATES:
        st.caption(state)
        cols = st.columns(len(existing) + len(new_colors))
        for col, hex_code in zip(cols, existing + new_colors):
            seen = simulate_cvd(hex_code, state)
            border = "4px solid #111" if hex_code in new_colors else "1px solid #999"
            with col:
                st.markdown(f"""
                <div style="
                    background-color: {seen};
                    border: {border};
                    border-radius: 8px;
                    padding: 12px;
                    text-align: center;
                    color: {text_color_for(seen)};
                    font-family: monospace;
                    font-size: 11px;
                    min-height: 60px;
                ">{hex_code}</div>
                """, unsafe_allow_html=True)

    # Color statistics table
    st.subheader("New Color Details")
    neighbours = nearest_neighbours(new_colors, existing, config.distance_metric)
    influence = influences(new_colors, existing, config.mean_kind, config.distance_metric)
    color_data = []
    for neighbour, inf in zip(neighbours, influence):
        channels = decode_color(neighbour["hex"], space)
        row = {
            "Hex": neighbour["hex"],
            config.color_space.upper(): ", ".join(f"{k}={v:.3g}" for k, v in channels.items()),
            "Closest": neighbour["closest_hex"],
            "ΔE to closest": f"{neighbour['closest_distance']:.2f}",
            "Influence": f"{inf['influence']:.2f} (#{inf['rank']})",
            "Contrast (vs white)": f"{contrast_ratio(neighbour['hex'], '#FFFFFF'):.2f}:1",
        }
        for state in ("deutan", "protan", "tritan"):
            row[f"ΔE {state}"] = f"{neighbour['by_state'][state][1]:.2f}"
        color_data.append(row)
    st.dataframe(color_data, width="stretch")

    metric_cols = st.columns(3)
    with metric_cols[0]:
        st.metric("Best score", f"{result.best_score:.3f}")
    with metric_cols[1]:
        st.metric("Weighted distance", f"{result.best_distance:.2f}")
    with metric_cols[2]:
        st.metric("Convergence", result.convergence_reason)

    # Distance matrix
    st.subheader("CIEDE2000 Distance Matrix")
    all_colors = existing + [c for c in new_colors if c not in existing]
    labs = srgb_to_lab(np.array([parse_hex(c) for c in all_colors]))
    distance_matrix = delta_e_cie2000(labs[:, None, :], labs[None, :, :])
    max_distance = np.max(distance_matrix)

    html_parts = ['<table style="border-collapse: collapse; font-family: monospace; margin: 20px auto;">', '<tr><th></th>']
    for hex_code in all_colors:
        html_parts.append(f'<th><div style="width: 40px; height: 40px; background-color: {hex_code}; '
                          f'border: 2px solid #333; margin: 0 auto;"></div></th>')
    html_parts.append('</tr>')
    for i, hex_i in enumerate(all_colors):
        html_parts.append(f'<tr><th><div style="width: 40px; height: 40px; background-color: {hex_i}; '
                          f'border: 2px solid #333;"></div></th>')
        for j in range(len(all_colors)):
            if i == j:
                html_parts.append('<td style="background-color: #f0f0f0; color: #999; text-align: center; '
                                  'min-width: 50px;">&mdash;</td>')
                continue
            distance = distance_matrix[i, j]
            intensity = distance / max_distance if max_distance > 0 else 0
            bg_color = f"rgb(255, {int(255 * (1 - intensity * 0.7))}, {int(100 * (1 - intensity))})"
            html_parts.append(f'<td style="background-color: {bg_color}; text-align: center; min-width: 50px; '
                              f'font-size: 11px; font-weight: 600;">{distance:.1f}</td>')
        html_parts.append('</tr>')
    html_parts.append('</table>')
    st.markdown(''.join(html_parts), unsafe_allow_html=True)

    # Progress across restarts
    st.subheader("Best Score by Restart")
    st.line_chart({"best score": result.progress})
