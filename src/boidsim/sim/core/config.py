from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

import yaml


@dataclass
class FlockParameters:
    separation_fov: float = 2.0
    separation_mag: float = 1.0
    alignment_fov: float = 4.0
    alignment_mag: float = 0.5
    cohesion_fov: float = 6.0
    cohesion_mag: float = 0.05


@dataclass
class SpawnConfig:
    count: int = 60
    radius: float = 12.0
    center: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 30.0
    seed: int = 42
    symmetric_neighbors: bool = False
    config_version: str = "v1"
    parameters: FlockParameters = field(default_factory=FlockParameters)
    spawn: SpawnConfig = field(default_factory=SpawnConfig)
    # Explicit starting positions take precedence over `spawn`.
    starting_positions: List[tuple[float, float, float]] | None = None

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


def _triple(value: Sequence[float]) -> tuple[float, float, float]:
    if isinstance(value, (tuple, list)) and len(value) == 3:
        return (float(value[0]), float(value[1]), float(value[2]))
    raise ValueError(f"Expected three coordinates, got {value!r}")


def load_config(raw: dict) -> SimulationConfig:
    parameters = FlockParameters(**raw.get("parameters", {}))

    spawn_raw = dict(raw.get("spawn", {}))
    if "center" in spawn_raw:
        spawn_raw["center"] = _triple(spawn_raw["center"])
    spawn = SpawnConfig(**spawn_raw)

    positions_raw = raw.get("starting_positions")
    starting_positions = None
    if positions_raw is not None:
        starting_positions = [_triple(entry) for entry in positions_raw]

    sim_values = {
        k: v for k, v in raw.items() if k not in {"parameters", "spawn", "starting_positions"}
    }
    return SimulationConfig(
        parameters=parameters,
        spawn=spawn,
        starting_positions=starting_positions,
        **sim_values,
    )
