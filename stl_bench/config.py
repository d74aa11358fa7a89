"""
Configuration and CLI argument parsing for the STL benchmark.
"""

import os
import logging
import argparse
import textwrap
from typing import List, Optional
from dataclasses import dataclass

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# LOGGING SETUP
# ──────────────────────────────────────────────────────────────────────────────

def setup_logging(level: int = logging.INFO):
    """Configure the shared logging format. Call once at startup."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s │ %(levelname)-7s │ %(message)s",
        datefmt="%H:%M:%S",
    )


# ──────────────────────────────────────────────────────────────────────────────
# CONFIGURATION: edit these or override via CLI args
# ──────────────────────────────────────────────────────────────────────────────

DEFAULT_MODEL = "openai/gpt-4o-mini"


@dataclass
class Config:
    """All configurable parameters in one place."""

    # ── Downloads ────────────────────────────────────────────────────────────
    downloads_dir: str = "downloads"
    """Root folder holding one sub-directory per catalog model."""

    download_count: int = 2
    """Number of popular models to fetch from the catalog."""

    max_files_per_model: int = 1
    """STL files to keep per model. -1 keeps all of them."""

    precision: int = 6
    """Fractional digits when converting binary STL to ASCII (0..12)."""

    cookie: Optional[str] = None
    """Optional Cookie header for catalog requests."""

    # ── Benchmark selection ──────────────────────────────────────────────────
    pattern: str = "*"
    """Case-insensitive substring filter on model folder names. '*' = all."""

    limit: int = 3
    """Max model folders to benchmark."""

    # ── LLM generation ───────────────────────────────────────────────────────
    openrouter_api_key: str = ""
    """OpenRouter API key. Set via OPENROUTER_API_KEY env var or --api-key."""

    model: str = DEFAULT_MODEL
    """OpenRouter model identifier used to generate candidate meshes."""

    temperature: float = 0.2
    """Low temperature keeps the emitted STL syntax stable."""

    max_tokens: int = 16384
    """Upper bound on the response length. STL text is verbose."""

    request_timeout: int = 300
    """Seconds before an LLM request is abandoned."""

    # ── Metrics ──────────────────────────────────────────────────────────────
    num_sample_points: int = 2000
    """Surface samples per mesh for the Chamfer statistics. The nearest-
       neighbour search is the dominant cost at large counts."""

    nn_method: str = "kdtree"
    """'kdtree' (default) or 'brute' for the quadratic reference scan."""

    seed: Optional[int] = None
    """Seed for surface sampling. None draws a fresh seed per comparison."""

    # ── Output / execution ───────────────────────────────────────────────────
    results_path: str = "bench_results.json"
    """Where to write the JSON results of a benchmark run."""

    max_workers: int = 1
    """Concurrent model folders in a benchmark run (I/O-bound LLM calls)."""

    debug: bool = False
    """Verbose logging."""


def resolve_api_key(cli_value: Optional[str]) -> str:
    """CLI arg → OPENROUTER_API_KEY env var → empty."""
    return cli_value or os.environ.get("OPENROUTER_API_KEY", "")


def parse_bench_args(argv: Optional[List[str]] = None) -> Config:
    """Parse benchmark CLI arguments into a Config, using Config defaults for unset args."""
    _defaults = Config()

    parser = argparse.ArgumentParser(
        prog="bench_stl",
        description="Benchmark LLM-generated ASCII STL against reference models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            EXAMPLES:
              # Benchmark the first 3 downloaded models with the default LLM
              python bench_stl.py

              # Only folders containing "vase", with a different model
              python bench_stl.py --pattern vase --model x-ai/grok-4-fast:free
        """),
    )
    parser.add_argument("--downloads", type=str, default=_defaults.downloads_dir,
                        help=f"Downloads root folder (default: {_defaults.downloads_dir})")
    parser.add_argument("--pattern", type=str, default=_defaults.pattern,
                        help="Folder name substring filter (default: '*')")
    parser.add_argument("--model", type=str, default=None,
                        help=f"OpenRouter model id (or OPENROUTER_MODEL env var, default: {DEFAULT_MODEL})")
    parser.add_argument("--limit", type=int, default=_defaults.limit,
                        help=f"Max folders to process (default: {_defaults.limit})")
    parser.add_argument("--samples", type=int, default=_defaults.num_sample_points,
                        help=f"Surface sample count per mesh (default: {_defaults.num_sample_points})")
    parser.add_argument("--seed", type=int, default=_defaults.seed,
                        help="Seed for surface sampling (default: random)")
    parser.add_argument("--nn-method", choices=["kdtree", "brute"], default=_defaults.nn_method,
                        help=f"Nearest-neighbour search (default: {_defaults.nn_method})")
    parser.add_argument("--temperature", type=float, default=_defaults.temperature,
                        help=f"LLM temperature (default: {_defaults.temperature})")
    parser.add_argument("--api-key", type=str, default=None,
                        help="OpenRouter API key (or set OPENROUTER_API_KEY env var)")
    parser.add_argument("--output", type=str, default=_defaults.results_path,
                        help=f"Results JSON path (default: {_defaults.results_path})")
    parser.add_argument("--max-workers", type=int, default=_defaults.max_workers,
                        help=f"Concurrent model folders (default: {_defaults.max_workers})")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    args = parser.parse_args(argv)

    config = Config(
        downloads_dir=args.downloads,
        pattern=args.pattern,
        limit=args.limit,
        openrouter_api_key=resolve_api_key(args.api_key),
        model=args.model or os.environ.get("OPENROUTER_MODEL", "") or DEFAULT_MODEL,
        temperature=args.temperature,
        num_sample_points=args.samples,
        nn_method=args.nn_method,
        seed=args.seed,
        results_path=args.output,
        max_workers=max(1, args.max_workers),
        debug=args.debug,
    )

    if not config.openrouter_api_key:
        parser.error(
            "OpenRouter API key required. Set via --api-key or OPENROUTER_API_KEY env var.\n"
            "  Get one at: https://openrouter.ai/keys"
        )

    return config


def parse_download_args(argv: Optional[List[str]] = None) -> Config:
    """Parse downloader CLI arguments into a Config."""
    _defaults = Config()

    parser = argparse.ArgumentParser(
        prog="download_stls",
        description="Download popular STL models from Printables and convert them to ASCII",
    )
    parser.add_argument("--count", type=int, default=_defaults.download_count,
                        help=f"Number of models (default: {_defaults.download_count})")
    parser.add_argument("--out", type=str, default=_defaults.downloads_dir,
                        help=f"Output directory (default: {_defaults.downloads_dir})")
    parser.add_argument("--cookie", type=str, default=None,
                        help="Cookie header to include")
    parser.add_argument("--max-files-per-model", type=str, default=str(_defaults.max_files_per_model),
                        help="Max files per model or 'all' (default: 1)")
    parser.add_argument("--precision", type=int, default=_defaults.precision,
                        help=f"ASCII float precision, 0..12 (default: {_defaults.precision})")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    args = parser.parse_args(argv)

    if args.max_files_per_model == "all":
        max_files = -1
    else:
        try:
            max_files = int(args.max_files_per_model)
        except ValueError:
            parser.error(f"--max-files-per-model must be an integer or 'all', got {args.max_files_per_model!r}")

    return Config(
        downloads_dir=args.out,
        download_count=args.count,
        cookie=args.cookie,
        max_files_per_model=max_files,
        precision=max(0, min(12, args.precision)),
        debug=args.debug,
    )
