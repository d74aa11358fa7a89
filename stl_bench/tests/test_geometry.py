"""
Unit tests for geometry primitives: areas, volume, bounding boxes.

trimesh serves as an independent reference for closed meshes.
"""

from __future__ import annotations

import math
import random

import numpy as np
import pytest

from stl_bench.geometry import (
    EMPTY_AABB,
    Aabb,
    aabb_diagonal,
    aabb_intersection,
    aabb_iou,
    aabb_of_triangles,
    aabb_volume,
    cross,
    dot,
    scale_points,
    signed_volume,
    surface_area,
    surface_centroid,
    translate_points,
    triangle_area,
    vector_add,
    vector_scale,
    vector_subtract,
)
from stl_bench.mesh_io import Triangle, parse_ascii_stl


def _from_trimesh(mesh):
    return [
        Triangle(tuple(float(c) for c in n), tuple(tuple(float(c) for c in v) for v in tri))
        for n, tri in zip(mesh.face_normals, mesh.triangles)
    ]


# ---------------------------------------------------------------------------
# Vectors and triangles
# ---------------------------------------------------------------------------

class TestVectors:
    def test_basic_ops(self):
        assert vector_add((1, 2, 3), (4, 5, 6)) == (5, 7, 9)
        assert vector_subtract((4, 5, 6), (1, 2, 3)) == (3, 3, 3)
        assert vector_scale((1, -2, 3), 2) == (2, -4, 6)
        assert dot((1, 2, 3), (4, 5, 6)) == 32

    def test_cross_right_handed(self):
        assert cross((1, 0, 0), (0, 1, 0)) == (0, 0, 1)
        assert cross((0, 1, 0), (1, 0, 0)) == (0, 0, -1)


class TestTriangleArea:
    def test_right_triangle(self, right_triangle):
        assert triangle_area(right_triangle) == pytest.approx(0.5)

    @pytest.mark.parametrize("verts", [
        ((0, 0, 0), (1, 1, 1), (2, 2, 2)),
        ((1, 2, 3), (1, 2, 3), (4, 5, 6)),
        ((0, 0, 0), (0, 0, 0), (0, 0, 0)),
    ])
    def test_degenerate_is_zero(self, verts):
        assert triangle_area(Triangle((0, 0, 0), verts)) == 0.0


# ---------------------------------------------------------------------------
# Surface area / volume / centroid
# ---------------------------------------------------------------------------

class TestMeshMeasures:
    def test_single_triangle_scenario(self):
        text = """solid s
facet normal 0 0 1
 outer loop
  vertex 0 0 0
  vertex 1 0 0
  vertex 0 1 0
 endloop
endfacet
endsolid s"""
        mesh = parse_ascii_stl(text)
        assert surface_area(mesh) == pytest.approx(0.5)
        assert aabb_of_triangles(mesh) == Aabb(min=(0.0, 0.0, 0.0), max=(1.0, 1.0, 0.0))
        assert signed_volume(mesh) == 0.0

    def test_empty_mesh(self):
        assert surface_area([]) == 0.0
        assert signed_volume([]) == 0.0
        assert surface_centroid([]) == (0.0, 0.0, 0.0)

    def test_unit_cube(self, unit_cube):
        assert surface_area(unit_cube) == pytest.approx(6.0)
        assert signed_volume(unit_cube) == pytest.approx(1.0)

    @pytest.mark.parametrize("offset", [(0, 0, 0), (10, -3, 2.5), (-100, 100, 0)])
    def test_volume_is_translation_invariant(self, make_cube, offset):
        assert signed_volume(make_cube(offset, 2.0)) == pytest.approx(8.0)

    def test_inverted_winding_flips_sign(self, unit_cube):
        flipped = [Triangle(t.normal, (t.vertices[0], t.vertices[2], t.vertices[1])) for t in unit_cube]
        assert signed_volume(flipped) == pytest.approx(-1.0)

    def test_order_invariance(self, make_cube):
        mesh = make_cube((0.3, 0.1, -0.2), 1.7)
        shuffled = list(mesh)
        random.Random(3).shuffle(shuffled)
        assert surface_area(shuffled) == pytest.approx(surface_area(mesh))
        assert signed_volume(shuffled) == pytest.approx(signed_volume(mesh))

    def test_open_mesh_still_returns_number(self, unit_cube):
        assert math.isfinite(signed_volume(unit_cube[:-2]))

    def test_matches_trimesh_on_icosphere(self):
        trimesh = pytest.importorskip("trimesh")
        sphere = trimesh.creation.icosphere(subdivisions=2, radius=1.5)
        mesh = _from_trimesh(sphere)
        assert surface_area(mesh) == pytest.approx(sphere.area, rel=1e-9)
        assert signed_volume(mesh) == pytest.approx(sphere.volume, rel=1e-9)

    def test_centroid_of_cube(self, make_cube):
        cx, cy, cz = surface_centroid(make_cube((1, 2, 3), 2.0))
        assert (cx, cy, cz) == pytest.approx((2.0, 3.0, 4.0))

    def test_centroid_is_area_weighted(self):
        small = Triangle((0, 0, 0), ((0, 0, 0), (1, 0, 0), (0, 1, 0)))
        big = Triangle((0, 0, 0), ((10, 0, 0), (13, 0, 0), (10, 3, 0)))
        cx, _, _ = surface_centroid([small, big])
        # areas 0.5 and 4.5, centroids x=1/3 and x=11
        assert cx == pytest.approx((0.5 * (1 / 3) + 4.5 * 11) / 5.0)

    def test_centroid_of_degenerate_mesh(self):
        flat = Triangle((0, 0, 0), ((1, 1, 1), (2, 2, 2), (3, 3, 3)))
        assert surface_centroid([flat]) == (0.0, 0.0, 0.0)


# ---------------------------------------------------------------------------
# Bounding boxes
# ---------------------------------------------------------------------------

class TestAabb:
    def test_empty_sentinel(self):
        box = aabb_of_triangles([])
        assert box == EMPTY_AABB
        assert box.is_empty
        assert aabb_volume(box) == 0.0
        assert aabb_diagonal(box) == 0.0

    def test_cube_box(self, make_cube):
        box = aabb_of_triangles(make_cube((1, 2, 3), 2.0))
        assert box == Aabb(min=(1.0, 2.0, 3.0), max=(3.0, 4.0, 5.0))
        assert aabb_volume(box) == pytest.approx(8.0)
        assert aabb_diagonal(box) == pytest.approx(math.sqrt(12.0))

    def test_volume_clamps_negative_extent(self):
        assert aabb_volume(Aabb(min=(0, 0, 0), max=(1, -1, 1))) == 0.0
        assert aabb_volume(Aabb(min=(0, 0, 0), max=(2, 3, 0))) == 0.0

    def test_intersection(self):
        a = Aabb(min=(0, 0, 0), max=(2, 2, 2))
        b = Aabb(min=(1, 1, 1), max=(3, 3, 3))
        assert aabb_intersection(a, b) == Aabb(min=(1, 1, 1), max=(2, 2, 2))

    def test_disjoint_intersection_is_none(self):
        a = Aabb(min=(0, 0, 0), max=(1, 1, 1))
        b = Aabb(min=(2, 0, 0), max=(3, 1, 1))
        assert aabb_intersection(a, b) is None
        assert aabb_iou(a, b) == 0.0

    def test_touching_boxes(self):
        a = Aabb(min=(0, 0, 0), max=(1, 1, 1))
        b = Aabb(min=(1, 0, 0), max=(2, 1, 1))
        assert aabb_intersection(a, b) is not None
        assert aabb_iou(a, b) == 0.0

    def test_iou_self_is_one(self, make_cube):
        box = aabb_of_triangles(make_cube((5, -1, 0), 3.0))
        assert aabb_iou(box, box) == pytest.approx(1.0)

    def test_iou_symmetric(self):
        rng = np.random.default_rng(11)
        for _ in range(20):
            lo_a, lo_b = rng.uniform(-1, 1, 3), rng.uniform(-1, 1, 3)
            a = Aabb(min=tuple(lo_a), max=tuple(lo_a + rng.uniform(0.1, 2, 3)))
            b = Aabb(min=tuple(lo_b), max=tuple(lo_b + rng.uniform(0.1, 2, 3)))
            assert aabb_iou(a, b) == aabb_iou(b, a)
            assert 0.0 <= aabb_iou(a, b) <= 1.0

    def test_iou_translated_cubes(self, make_cube):
        a = aabb_of_triangles(make_cube())
        b = aabb_of_triangles(make_cube((0.5, 0, 0)))
        iou = aabb_iou(a, b)
        assert 0.0 < iou < 1.0
        assert iou == pytest.approx(1.0 / 3.0)

    def test_iou_with_empty(self, unit_cube):
        box = aabb_of_triangles(unit_cube)
        assert aabb_iou(box, EMPTY_AABB) == 0.0
        assert aabb_iou(EMPTY_AABB, box) == 0.0
        assert aabb_iou(EMPTY_AABB, EMPTY_AABB) == 0.0

    def test_iou_flat_boxes(self, right_triangle):
        box = aabb_of_triangles([right_triangle])
        assert aabb_iou(box, box) == 0.0


# ---------------------------------------------------------------------------
# Point transforms
# ---------------------------------------------------------------------------

class TestPointTransforms:
    def test_translate_and_scale(self):
        pts = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
        np.testing.assert_allclose(translate_points(pts, (1, 1, 1)), [[1, 1, 1], [2, 3, 4]])
        np.testing.assert_allclose(scale_points(pts, 2.0), [[0, 0, 0], [2, 4, 6]])

    def test_inputs_are_not_modified(self):
        pts = np.ones((4, 3))
        translate_points(pts, (5, 5, 5))
        scale_points(pts, 3.0)
        np.testing.assert_array_equal(pts, np.ones((4, 3)))
