from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class StepMetrics:
    tick: int
    population: int
    separation_pairs: int
    alignment_links: int
    cohesion_links: int
    neighbor_checks: int
    average_speed: float
    max_speed: float
    spread: float
    tick_duration_ms: float = 0.0
