"""
=================================================================================
 DESCRIPTION → STL: LLM GEOMETRY BENCHMARK
=================================================================================

 PURPOSE:
   Score how well an LLM can write an ASCII STL for a 3D model given only its
   text description. Reference models come from a public catalog; the
   generated STL is compared with the reference purely geometrically, on raw
   triangle soups (no topology, no vertex welding).

 PIPELINE:
   1. Download popular models + descriptions          (download_stls.py)
   2. Ask an LLM (via OpenRouter) for an ASCII STL     (bench_stl.py)
   3. Compare generated vs. reference mesh
   4. Log a per-model report and write JSON results

 METRICS:
 ─────────────────────────────────────────────────
   1. AABB IoU — overlap of the axis-aligned bounding boxes. Cheap, no
      sampling noise, catches wrong size / placement.
   2. SURFACE AREA RATIO — min/max of the two total areas.
   3. VOLUME RATIO — min/max of the divergence-theorem volumes. Best-effort
      on open or inconsistently wound meshes, which LLMs produce often.
   4. CHAMFER STATISTICS — mean / p95 / max nearest-point distance between
      area-uniform surface samples, in both directions, divided by the
      larger bounding-box diagonal so scores compare across model sizes.

 DEPENDENCIES:
   pip install numpy scipy requests
=================================================================================
"""

from stl_bench.config import Config, parse_bench_args, parse_download_args, setup_logging
from stl_bench.mesh_io import (
    FormatError,
    Triangle,
    is_binary_stl,
    parse_ascii_stl,
    parse_binary_stl,
    read_stl,
    triangles_to_ascii,
)
from stl_bench.metrics import ChamferStats, MetricBundle, chamfer_distance, compare_meshes
from stl_bench.sampling import make_rng, sample_surface_points

__all__ = [
    "Config",
    "parse_bench_args",
    "parse_download_args",
    "setup_logging",
    "FormatError",
    "Triangle",
    "is_binary_stl",
    "parse_ascii_stl",
    "parse_binary_stl",
    "read_stl",
    "triangles_to_ascii",
    "ChamferStats",
    "MetricBundle",
    "chamfer_distance",
    "compare_meshes",
    "make_rng",
    "sample_surface_points",
]
