"""
Result data structures and reporting (log lines + JSON output).
"""

import json
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass, asdict
from datetime import datetime

from stl_bench.config import Config
from stl_bench.metrics import MetricBundle

log = logging.getLogger(__name__)

# Never written to disk
_SECRET_CONFIG_FIELDS = ("openrouter_api_key", "cookie")


@dataclass
class BenchResult:
    """Result of benchmarking one generated mesh against one reference."""
    model_dir: str
    file: str
    metrics: Optional[MetricBundle] = None
    response_time: float = 0.0
    error: Optional[str] = None
    generated_chars: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def print_results(results: List[BenchResult]):
    """Log a short per-model summary."""
    for r in results:
        log.info(f"[bench] {r.model_dir}")
        if r.metrics is None:
            log.info(f"  ✗ {r.error or 'no metrics'}")
            continue
        m = r.metrics
        c = m.chamfer
        log.info(f"  AABB IoU: {m.aabb_iou:.4f}")
        log.info(f"  Surface area ratio: {m.surface_area_ratio:.4f}")
        log.info(f"  Volume ratio: {m.volume_ratio:.4f}")
        log.info(f"  Chamfer meanAB/meanBA: {c.mean_ab:.4f} / {c.mean_ba:.4f}")
        log.info(f"  Chamfer p95AB/p95BA: {c.p95_ab:.4f} / {c.p95_ba:.4f}")
        log.info(f"  Chamfer maxAB/maxBA: {c.max_ab:.4f} / {c.max_ba:.4f}")


def save_results_json(results: List[BenchResult], config: Config, path: Optional[str] = None) -> str:
    """Save detailed results to a JSON file for later analysis."""
    config_dict = {k: v for k, v in asdict(config).items() if k not in _SECRET_CONFIG_FIELDS}
    output = {
        "timestamp": datetime.now().isoformat(),
        "config": config_dict,
        "results": [r.to_dict() for r in results],
    }

    json_path = path or config.results_path
    with open(json_path, "w") as f:
        json.dump(output, f, indent=2, default=str)

    log.info(f"Results saved to {json_path}")
    return json_path
