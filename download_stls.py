#!/usr/bin/env python3
"""Download reference STL models for the benchmark. See stl_bench/dataset.py."""

import logging

from stl_bench.config import setup_logging, parse_download_args
from stl_bench.dataset import download_models


def main():
    config = parse_download_args()
    setup_logging(logging.DEBUG if config.debug else logging.INFO)
    download_models(config)


if __name__ == "__main__":
    main()
