"""
STL decoding and encoding: lenient ASCII parsing, binary decoding with a
size-based format sniffer, and re-encoding to ASCII.

The ASCII parser never raises. STL files coming back from an LLM are messy,
so malformed numbers become 0 and malformed facets are dropped instead of
failing the whole file.
"""

import math
import struct
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

import numpy as np

log = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

HEADER_SIZE = 80
BINARY_PREAMBLE_SIZE = HEADER_SIZE + 4
BINARY_RECORD_SIZE = 50

# normal (3 x f32) + 3 vertices (9 x f32) + attribute byte count (u16), packed
_BINARY_RECORD = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attribute", "<u2"),
])


class FormatError(ValueError):
    """Raised when a buffer is not a well-formed binary STL."""


@dataclass(frozen=True)
class Triangle:
    """One facet: a (possibly zero) normal and three ordered vertices."""
    normal: Vec3
    vertices: Tuple[Vec3, Vec3, Vec3]


Mesh = List[Triangle]


# ══════════════════════════════════════════════════════════════════════════════
# ASCII STL
# ══════════════════════════════════════════════════════════════════════════════

def _to_float(token: str) -> float:
    # float() also accepts digit separators like "1_000"
    if "_" in token:
        return 0.0
    try:
        value = float(token)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def _parse_vec3(tokens: Sequence[str]) -> Vec3:
    vals = [_to_float(t) for t in tokens[:3]]
    vals += [0.0] * (3 - len(vals))
    return (vals[0], vals[1], vals[2])


def parse_ascii_stl(text: str) -> Mesh:
    """
    Parse ASCII STL text into a list of triangles.

    Expected facet structure:
        facet normal nx ny nz
          outer loop
            vertex x y z
            vertex x y z
            vertex x y z
          endloop
        endfacet

    Unrecognized lines are skipped. Facets that do not yield exactly three
    consecutive vertex lines after ``outer loop`` are dropped.
    """
    lines = text.replace("\r\n", "\n").split("\n")
    n = len(lines)
    triangles: Mesh = []

    i = 0
    while i < n:
        line = lines[i].strip()
        if line.startswith("facet normal"):
            normal = _parse_vec3(line.split()[2:])
            i += 1

            while i < n and not lines[i].strip().startswith("outer loop"):
                i += 1
            i += 1

            verts: List[Vec3] = []
            while len(verts) < 3 and i < n:
                vline = lines[i].strip()
                if not vline.startswith("vertex"):
                    break
                verts.append(_parse_vec3(vline.split()[1:]))
                i += 1

            while i < n and not lines[i].strip().startswith("endfacet"):
                i += 1

            if len(verts) == 3:
                triangles.append(Triangle(normal, (verts[0], verts[1], verts[2])))
        i += 1

    log.debug(f"Parsed {len(triangles)} facets from ASCII STL")
    return triangles


def _format_float(value: float, precision: int) -> str:
    if not math.isfinite(value) or value == 0:
        return "0"
    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def triangles_to_ascii(triangles: Sequence[Triangle], solid_name: str, precision: int = 6) -> str:
    """
    Serialize triangles to ASCII STL.

    ``precision`` is the number of fractional digits, clamped to 0..12.
    Trailing zeros are trimmed so integral coordinates print as integers.
    """
    precision = max(0, min(12, int(precision)))

    def fmt(v: Vec3) -> str:
        return " ".join(_format_float(c, precision) for c in v)

    lines = [f"solid {solid_name}"]
    for tri in triangles:
        lines.append(f"  facet normal {fmt(tri.normal)}")
        lines.append("    outer loop")
        for vertex in tri.vertices:
            lines.append(f"      vertex {fmt(vertex)}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {solid_name}")
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════════════════════
# BINARY STL
# ══════════════════════════════════════════════════════════════════════════════

def is_binary_stl(data: bytes) -> bool:
    """True if the buffer size matches the triangle count in its header."""
    if len(data) < BINARY_PREAMBLE_SIZE:
        return False
    (count,) = struct.unpack_from("<I", data, HEADER_SIZE)
    return BINARY_PREAMBLE_SIZE + count * BINARY_RECORD_SIZE == len(data)


def parse_binary_stl(data: bytes) -> Mesh:
    """
    Decode a binary STL buffer.

    Raises FormatError if the buffer is shorter than the 84-byte preamble or
    its length disagrees with the embedded triangle count. The count is
    authoritative: no triangle is ever dropped. NaN and Inf components
    decode as 0.
    """
    if len(data) < BINARY_PREAMBLE_SIZE:
        raise FormatError(
            f"Buffer too small to be a binary STL ({len(data)} < {BINARY_PREAMBLE_SIZE} bytes)"
        )
    if not is_binary_stl(data):
        (count,) = struct.unpack_from("<I", data, HEADER_SIZE)
        raise FormatError(
            f"Binary STL size mismatch: header declares {count} triangles "
            f"({BINARY_PREAMBLE_SIZE + count * BINARY_RECORD_SIZE} bytes), got {len(data)} bytes"
        )

    (count,) = struct.unpack_from("<I", data, HEADER_SIZE)
    records = np.frombuffer(data, dtype=_BINARY_RECORD, count=count, offset=BINARY_PREAMBLE_SIZE)
    normals = np.nan_to_num(records["normal"].astype(np.float64), nan=0.0, posinf=0.0, neginf=0.0).tolist()
    vertices = np.nan_to_num(records["vertices"].astype(np.float64), nan=0.0, posinf=0.0, neginf=0.0).tolist()

    triangles = [
        Triangle(tuple(nrm), (tuple(v[0]), tuple(v[1]), tuple(v[2])))
        for nrm, v in zip(normals, vertices)
    ]
    log.debug(f"Decoded {len(triangles)} facets from binary STL")
    return triangles


def binary_stl_to_ascii(data: bytes, solid_name: str, precision: int = 6) -> str:
    """Convert a binary STL buffer straight to ASCII STL text."""
    return triangles_to_ascii(parse_binary_stl(data), solid_name, precision)


# ══════════════════════════════════════════════════════════════════════════════
# LOADING
# ══════════════════════════════════════════════════════════════════════════════

def load_stl_bytes(data: bytes) -> Mesh:
    """Decode STL bytes of either flavour, sniffing binary by size."""
    if is_binary_stl(data):
        return parse_binary_stl(data)
    return parse_ascii_stl(data.decode("utf-8", errors="replace"))


def read_stl(path: Union[str, Path]) -> Mesh:
    return load_stl_bytes(Path(path).read_bytes())
