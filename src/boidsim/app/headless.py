from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.flock import Flock
from ..sim.systems.metrics import flock_centroid
from ..sim.types.metrics import StepMetrics

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "neighbor_checks",
    "avg_speed",
    "spread",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "separation_pairs",
    "alignment_links",
    "cohesion_links",
    "neighbor_checks",
    "tick_ms",
    "neighbor_checks_per_boid",
    "tick_ms_per_boid",
    "avg_speed",
    "max_speed",
    "spread",
    "centroid_x",
    "centroid_y",
    "centroid_z",
]


def _format_basic_row(metrics: StepMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.neighbor_checks,
        f"{metrics.average_speed:.4f}",
        f"{metrics.spread:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(flock: Flock, metrics: StepMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        neighbor_checks_per_boid = 0.0
        tick_ms_per_boid = 0.0
    else:
        neighbor_checks_per_boid = metrics.neighbor_checks / population
        tick_ms_per_boid = tick_ms / population
    centroid = flock_centroid(flock.positions())

    return [
        metrics.tick,
        population,
        metrics.separation_pairs,
        metrics.alignment_links,
        metrics.cohesion_links,
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
        f"{neighbor_checks_per_boid:.4f}",
        f"{tick_ms_per_boid:.4f}",
        f"{metrics.average_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        f"{metrics.spread:.4f}",
        f"{centroid.x:.4f}",
        f"{centroid.y:.4f}",
        f"{centroid.z:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    total = sum(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(total / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
    config: Optional[SimulationConfig] = None,
) -> Flock:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config = replace(config, seed=seed)

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    flock = Flock.from_config(config)
    logger.info("Running %d steps with %d boids (seed=%s)", steps, len(flock), config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    spread_series: list[float] = []
    neighbor_checks_series: list[int] = []
    max_tick_ms = (-1.0, -1)
    max_speed = (-1.0, -1)
    max_neighbor_checks = (-1, -1)

    try:
        for _ in range(steps):
            metrics = flock.update()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick = metrics.tick
                tick_ms_series.append(tick_ms)
                speed_series.append(metrics.average_speed)
                spread_series.append(metrics.spread)
                neighbor_checks_series.append(metrics.neighbor_checks)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, tick)
                if metrics.max_speed > max_speed[0]:
                    max_speed = (metrics.max_speed, tick)
                if metrics.neighbor_checks > max_neighbor_checks[0]:
                    max_neighbor_checks = (metrics.neighbor_checks, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(flock, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "population": len(flock),
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "symmetric_neighbors": config.symmetric_neighbors,
            "tick_ms": _summary_stats(tick_ms_series),
            "avg_speed": _summary_stats(speed_series),
            "spread": _summary_stats(spread_series),
            "neighbor_checks": _summary_stats([float(v) for v in neighbor_checks_series]),
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "max_speed": {"value": float(max_speed[0]), "tick": max_speed[1]},
                "neighbor_checks": {"value": max_neighbor_checks[0], "tick": max_neighbor_checks[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "avg_speed": _summary_stats(speed_series[tail_slice]),
                "spread": _summary_stats(spread_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Summary written to %s", summary_path)

    return flock


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boid flock simulation")
    parser.add_argument("--steps", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with flock settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=500,
        help="Tail window size (steps) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument(
        "--symmetric-neighbors",
        action="store_true",
        help="Let alignment and cohesion see every neighbor in range, not only higher-indexed ones.",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    if args.symmetric_neighbors:
        config = replace(config, symmetric_neighbors=True)
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
    )


if __name__ == "__main__":
    main()
