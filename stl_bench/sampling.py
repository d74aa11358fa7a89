"""
Area-weighted surface sampling of triangle soups.

Triangles are picked by inverse-CDF lookup on the cumulative area array,
then a point is placed inside the triangle with the square-root barycentric
transform, which is uniform over the triangle's area.
"""

import logging
from typing import Callable, Optional, Sequence

import numpy as np

from stl_bench.geometry import triangle_areas, triangles_to_array
from stl_bench.mesh_io import Triangle

log = logging.getLogger(__name__)

UniformSource = Callable[[], float]
"""Zero-argument callable returning successive uniform floats in [0, 1)."""


def make_rng(seed: Optional[int] = None) -> UniformSource:
    """
    Return a uniform [0, 1) source backed by a fresh numpy Generator.

    With seed=None the generator is seeded from OS entropy, so two calls
    never share state.
    """
    return np.random.default_rng(seed).random


def pick_triangle_indices(cumulative: np.ndarray, values: np.ndarray) -> np.ndarray:
    """
    Lowest index i with cumulative[i] >= value, for each value.

    Ties resolve to the first qualifying index, so zero-weight triangles
    directly after a boundary are never picked.
    """
    idx = np.searchsorted(cumulative, values, side="left")
    return np.minimum(idx, len(cumulative) - 1)


def sample_surface_points(
    triangles: Sequence[Triangle],
    sample_count: int,
    rng: Optional[UniformSource] = None,
) -> np.ndarray:
    """
    Sample ``sample_count`` points uniformly over the mesh surface.

    Each sample consumes three values from ``rng`` in order: the triangle
    pick, then u1 and u2 for the barycentric placement. Returns an empty
    (0, 3) array for an empty mesh or a non-positive count. When every
    triangle is degenerate, triangles are weighted uniformly instead.
    """
    n = len(triangles)
    if n == 0 or sample_count <= 0:
        return np.zeros((0, 3), dtype=np.float64)

    if rng is None:
        rng = make_rng()

    tris = triangles_to_array(triangles)
    weights = triangle_areas(tris)
    if weights.sum() == 0:
        log.debug(f"Zero total area over {n} triangles; sampling triangles uniformly")
        weights = np.ones(n, dtype=np.float64)

    cumulative = np.cumsum(weights)
    total = cumulative[-1]

    draws = np.array([rng() for _ in range(3 * sample_count)], dtype=np.float64)
    draws = draws.reshape(sample_count, 3)

    idx = pick_triangle_indices(cumulative, draws[:, 0] * total)
    r1 = np.sqrt(draws[:, 1])
    u2 = draws[:, 2]
    bary = np.stack([1.0 - r1, r1 * (1.0 - u2), r1 * u2], axis=1)

    # (N, 3) weights against (N, 3, 3) vertices -> (N, 3) points
    return np.einsum("nk,nkj->nj", bary, tris[idx])
