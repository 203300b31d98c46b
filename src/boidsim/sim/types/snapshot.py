from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import StepMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: StepMetrics | None
    boids: List[Dict[str, Any]]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotMetadata:
    population: int
    seed: int | None
    config_version: str
    symmetric_neighbors: bool
    parameters: Dict[str, float]
