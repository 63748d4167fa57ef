"""
Derivative-free Nelder-Mead simplex search.
"""

from dataclasses import dataclass

import numpy as np

ALPHA = 1.0  # reflection
GAMMA = 2.0  # expansion
RHO = 0.5  # contraction
SIGMA = 0.5  # shrink

CONVERGED = "converged (spread)"
MAX_ITERATIONS = "max iterations"


@dataclass
class NelderMeadResult:
    x: np.ndarray
    fun: float
    reason: str
    iterations: int
    evaluations: int


def nelder_mead(func, x0, max_iterations=200, tolerance=1e-5, step=1.0):
    """Minimize ``func`` starting from ``x0``.

    The initial simplex is ``x0`` plus one vertex per coordinate, moved by
    ``step``. The search stops when the spread of vertex values drops below
    ``tolerance`` or after ``max_iterations`` iterations; either way the best
    vertex is returned.
    """
    x0 = np.asarray(x0, dtype=float)
    n = x0.size
    evaluations = 0

    def f(x):
        nonlocal evaluations
        evaluations += 1
        return float(func(x))

    simplex = np.tile(x0, (n + 1, 1))
    simplex[np.arange(1, n + 1), np.arange(n)] += step
    values = np.array([f(p) for p in simplex])

    for iteration in range(max_iterations):
        order = np.argsort(values, kind="stable")
        simplex = simplex[order]
        values = values[order]

        if values[-1] - values[0] < tolerance:
            return NelderMeadResult(simplex[0].copy(), float(values[0]), CONVERGED, iteration, evaluations)

        worst = simplex[-1]
        centroid = simplex[:-1].mean(axis=0)

        reflected = centroid + ALPHA * (centroid - worst)
        f_reflected = f(reflected)

        if f_reflected < values[0]:
            expanded = centroid + GAMMA * (reflected - centroid)
            f_expanded = f(expanded)
            if f_expanded < f_reflected:
                simplex[-1], values[-1] = expanded, f_expanded
            else:
                simplex[-1], values[-1] = reflected, f_reflected
            continue

        if f_reflected < values[-2]:
            simplex[-1], values[-1] = reflected, f_reflected
            continue

        if f_reflected < values[-1]:
            contracted = centroid + RHO * (reflected - centroid)
        else:
            contracted = centroid + RHO * (worst - centroid)
        f_contracted = f(contracted)
        if f_contracted < values[-1]:
            simplex[-1], values[-1] = contracted, f_contracted
            continue

        best = simplex[0]
        for i in range(1, n + 1):
            simplex[i] = best + SIGMA * (simplex[i] - best)
            values[i] = f(simplex[i])

    order = np.argsort(values, kind="stable")
    return NelderMeadResult(simplex[order[0]].copy(), float(values[order[0]]),
                            MAX_ITERATIONS, max_iterations, evaluations)
