"""
Benchmark orchestrator.

For every downloaded model folder: read the reference STL and its
description, ask the LLM for a fresh STL from the description alone, and
score the result against the reference. Folders are independent, so with
max_workers > 1 they run on a thread pool (the LLM call dominates).
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed

from stl_bench.config import Config
from stl_bench.llm import generate_ascii_stl
from stl_bench.metrics import compare_meshes
from stl_bench.mesh_io import parse_ascii_stl, read_stl
from stl_bench.results import BenchResult, print_results, save_results_json

log = logging.getLogger(__name__)

GenerateFn = Callable[[str, str, Config], Tuple[Optional[str], float]]


def discover_model_dirs(root: str, pattern: str = "*", limit: int = -1) -> List[str]:
    """Sorted sub-directory names of ``root`` containing ``pattern`` (case-insensitive)."""
    needle = pattern.lower()
    names = sorted(
        e.name for e in os.scandir(root)
        if e.is_dir() and (needle == "*" or needle in e.name.lower())
    )
    return names if limit < 0 else names[:limit]


def load_reference(model_dir: str) -> Optional[Dict[str, Any]]:
    """
    Locate the reference STL of a model folder.

    Returns None when the folder holds no .stl file. The description falls
    back from metadata description → summary → folder name.
    """
    stl_files = sorted(f for f in os.listdir(model_dir) if f.lower().endswith(".stl"))
    if not stl_files:
        return None

    meta: Dict[str, Any] = {}
    meta_path = os.path.join(model_dir, "metadata.json")
    try:
        with open(meta_path) as f:
            loaded = json.load(f)
        if isinstance(loaded, dict):
            meta = loaded
    except (OSError, ValueError) as e:
        log.debug(f"  No usable metadata in {model_dir}: {e}")

    src_path = os.path.join(model_dir, stl_files[0])
    return {
        "file": stl_files[0],
        "path": src_path,
        "description": meta.get("description") or meta.get("summary") or os.path.basename(model_dir),
        "solid_name": Path(src_path).stem,
    }


def _process_model_dir(dir_name: str, config: Config, generate: GenerateFn) -> Optional[BenchResult]:
    model_dir = os.path.join(config.downloads_dir, dir_name)
    ref = load_reference(model_dir)
    if ref is None:
        log.info(f"  Skipping {dir_name}: no .stl files")
        return None

    gen_text, response_time = generate(ref["description"], ref["solid_name"], config)
    if gen_text is None:
        return BenchResult(
            model_dir=dir_name, file=ref["file"],
            response_time=response_time, error="No STL returned",
        )

    metrics = compare_meshes(
        read_stl(ref["path"]),
        parse_ascii_stl(gen_text),
        sample_count=config.num_sample_points,
        seed=config.seed,
        method=config.nn_method,
    )
    return BenchResult(
        model_dir=dir_name, file=ref["file"], metrics=metrics,
        response_time=response_time, generated_chars=len(gen_text),
    )


def run_benchmark(config: Config, generate: GenerateFn = generate_ascii_stl) -> List[BenchResult]:
    """Benchmark every selected model folder, then report and save results."""
    dirs = discover_model_dirs(config.downloads_dir, config.pattern, config.limit)

    log.info("=" * 60)
    log.info("  DESCRIPTION → STL: LLM BENCHMARK")
    log.info("=" * 60)
    log.info(f"  Downloads:  {config.downloads_dir}")
    log.info(f"  Folders:    {len(dirs)} (pattern '{config.pattern}', limit {config.limit})")
    log.info(f"  Model:      {config.model}")
    log.info(f"  Samples:    {config.num_sample_points} ({config.nn_method})")
    log.info("=" * 60)

    results: List[BenchResult] = []
    workers = max(1, min(config.max_workers, len(dirs) or 1))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_dir = {
            executor.submit(_process_model_dir, d, config, generate): d
            for d in dirs
        }
        for future in as_completed(future_to_dir):
            dir_name = future_to_dir[future]
            try:
                result = future.result()
            except Exception as exc:
                log.error(f"  ✗ {dir_name} worker crashed: {exc}")
                result = BenchResult(model_dir=dir_name, file="", error=f"Worker exception: {exc}")
            if result is not None:
                results.append(result)

    # Report in folder order regardless of completion order
    order = {d: i for i, d in enumerate(dirs)}
    results.sort(key=lambda r: order.get(r.model_dir, len(order)))

    print_results(results)
    save_results_json(results, config)
    return results
