"""
Geometry primitives over triangle soups: vector math, areas, signed volume,
axis-aligned bounding boxes and the area-weighted surface centroid.

Mesh-level quantities are computed on a (N, 3, 3) numpy vertex array.
Every function is total for empty and degenerate meshes.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from stl_bench.mesh_io import Triangle, Vec3

_INF = float("inf")


# ──────────────────────────────────────────────────────────────────────────────
# Vector helpers
# ──────────────────────────────────────────────────────────────────────────────

def vector_subtract(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def vector_add(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def vector_scale(a: Vec3, s: float) -> Vec3:
    return (a[0] * s, a[1] * s, a[2] * s)


def cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def triangles_to_array(triangles: Sequence[Triangle]) -> np.ndarray:
    """Stack triangle vertices into a float64 array of shape (N, 3, 3)."""
    if len(triangles) == 0:
        return np.zeros((0, 3, 3), dtype=np.float64)
    return np.array([t.vertices for t in triangles], dtype=np.float64)


# ──────────────────────────────────────────────────────────────────────────────
# Areas and volume
# ──────────────────────────────────────────────────────────────────────────────

def triangle_area(t: Triangle) -> float:
    a, b, c = t.vertices
    cr = cross(vector_subtract(b, a), vector_subtract(c, a))
    return 0.5 * math.sqrt(dot(cr, cr))


def triangle_areas(tris: np.ndarray) -> np.ndarray:
    """Per-triangle areas for a (N, 3, 3) vertex array."""
    if tris.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    cr = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    return 0.5 * np.linalg.norm(cr, axis=1)


def surface_area(triangles: Sequence[Triangle]) -> float:
    return float(triangle_areas(triangles_to_array(triangles)).sum())


def signed_volume(triangles: Sequence[Triangle]) -> float:
    """
    Divergence-theorem volume: sum of signed tetrahedra (origin, v0, v1, v2).

    Only meaningful for closed, consistently wound meshes. Outward winding
    gives a positive value; take abs() when only the magnitude matters.
    """
    tris = triangles_to_array(triangles)
    if tris.shape[0] == 0:
        return 0.0
    vol6 = np.einsum("ij,ij->i", tris[:, 0], np.cross(tris[:, 1], tris[:, 2]))
    return float(vol6.sum() / 6.0)


def surface_centroid(triangles: Sequence[Triangle]) -> Vec3:
    """Area-weighted mean of triangle centroids; origin for zero total area."""
    tris = triangles_to_array(triangles)
    areas = triangle_areas(tris)
    total = areas.sum()
    if total == 0:
        return (0.0, 0.0, 0.0)
    centroids = tris.mean(axis=1)
    c = (centroids * areas[:, None]).sum(axis=0) / total
    return (float(c[0]), float(c[1]), float(c[2]))


# ──────────────────────────────────────────────────────────────────────────────
# Axis-aligned bounding boxes
# ──────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Aabb:
    min: Vec3
    max: Vec3

    @property
    def is_empty(self) -> bool:
        return any(hi < lo for lo, hi in zip(self.min, self.max))


EMPTY_AABB = Aabb(min=(_INF, _INF, _INF), max=(-_INF, -_INF, -_INF))


def aabb_of_triangles(triangles: Sequence[Triangle]) -> Aabb:
    """
    Componentwise min/max over all vertices.

    An empty mesh yields EMPTY_AABB (min=+inf, max=-inf), which every
    consumer below treats as a zero-volume, zero-diagonal box.
    """
    tris = triangles_to_array(triangles)
    if tris.shape[0] == 0:
        return EMPTY_AABB
    pts = tris.reshape(-1, 3)
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    return Aabb(
        min=(float(lo[0]), float(lo[1]), float(lo[2])),
        max=(float(hi[0]), float(hi[1]), float(hi[2])),
    )


def aabb_intersection(a: Aabb, b: Aabb) -> Optional[Aabb]:
    lo = tuple(max(x, y) for x, y in zip(a.min, b.min))
    hi = tuple(min(x, y) for x, y in zip(a.max, b.max))
    if any(h < lo_ for lo_, h in zip(lo, hi)):
        return None
    return Aabb(min=lo, max=hi)


def aabb_volume(box: Aabb) -> float:
    if box.is_empty:
        return 0.0
    vol = 1.0
    for lo, hi in zip(box.min, box.max):
        vol *= max(0.0, hi - lo)
    return vol


def aabb_iou(a: Aabb, b: Aabb) -> float:
    """Intersection-over-union of two boxes; 0 when the union has no volume."""
    inter = aabb_intersection(a, b)
    if inter is None:
        return 0.0
    v_inter = aabb_volume(inter)
    v_union = aabb_volume(a) + aabb_volume(b) - v_inter
    return v_inter / v_union if v_union > 0 else 0.0


def aabb_diagonal(box: Aabb) -> float:
    if box.is_empty:
        return 0.0
    d = vector_subtract(box.max, box.min)
    return math.sqrt(dot(d, d))


# ──────────────────────────────────────────────────────────────────────────────
# Point cloud transforms
# ──────────────────────────────────────────────────────────────────────────────

def translate_points(points: np.ndarray, delta: Vec3) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 3) + np.asarray(delta, dtype=np.float64)


def scale_points(points: np.ndarray, s: float) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 3) * s
