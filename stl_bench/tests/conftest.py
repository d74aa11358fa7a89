"""Shared mesh fixtures for the stl_bench tests."""

from __future__ import annotations

import struct

import pytest

from stl_bench.mesh_io import Triangle

# Outward-wound unit cube on [0, 1]^3, two triangles per face
_CUBE_FACES = [
    ((0, 0, -1), [((0, 0, 0), (0, 1, 0), (1, 1, 0)), ((0, 0, 0), (1, 1, 0), (1, 0, 0))]),
    ((0, 0, 1), [((0, 0, 1), (1, 0, 1), (1, 1, 1)), ((0, 0, 1), (1, 1, 1), (0, 1, 1))]),
    ((0, -1, 0), [((0, 0, 0), (1, 0, 0), (1, 0, 1)), ((0, 0, 0), (1, 0, 1), (0, 0, 1))]),
    ((0, 1, 0), [((0, 1, 0), (0, 1, 1), (1, 1, 1)), ((0, 1, 0), (1, 1, 1), (1, 1, 0))]),
    ((-1, 0, 0), [((0, 0, 0), (0, 0, 1), (0, 1, 1)), ((0, 0, 0), (0, 1, 1), (0, 1, 0))]),
    ((1, 0, 0), [((1, 0, 0), (1, 1, 0), (1, 1, 1)), ((1, 0, 0), (1, 1, 1), (1, 0, 1))]),
]


def build_cube(offset=(0.0, 0.0, 0.0), size=1.0):
    ox, oy, oz = offset
    tris = []
    for normal, faces in _CUBE_FACES:
        for face in faces:
            verts = tuple(
                (ox + size * x, oy + size * y, oz + size * z) for x, y, z in face
            )
            tris.append(Triangle(tuple(float(c) for c in normal), verts))
    return tris


def build_binary_stl(triangles, count=None) -> bytes:
    header = b"binary stl test".ljust(80, b"\0")
    n = len(triangles) if count is None else count
    body = b"".join(
        struct.pack("<12fH", *t.normal, *t.vertices[0], *t.vertices[1], *t.vertices[2], 0)
        for t in triangles
    )
    return header + struct.pack("<I", n) + body


@pytest.fixture
def unit_cube():
    return build_cube()


@pytest.fixture
def make_cube():
    return build_cube


@pytest.fixture
def make_binary_stl():
    return build_binary_stl


@pytest.fixture
def right_triangle():
    return Triangle((0.0, 0.0, 1.0), ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)))
