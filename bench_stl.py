#!/usr/bin/env python3
"""Entry point for the description-to-STL benchmark. See stl_bench/ for details."""

import logging

from stl_bench.config import setup_logging, parse_bench_args
from stl_bench.pipeline import run_benchmark


def main():
    config = parse_bench_args()
    setup_logging(logging.DEBUG if config.debug else logging.INFO)
    run_benchmark(config)


if __name__ == "__main__":
    main()
