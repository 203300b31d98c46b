from __future__ import annotations

from typing import List

from pygame.math import Vector3

from ..core.config import SimulationConfig, SpawnConfig
from ..core.rng import DeterministicRng


def scatter_positions(spawn: SpawnConfig, rng: DeterministicRng) -> List[Vector3]:
    """Uniformly scatter `spawn.count` boids inside a ball around `spawn.center`."""
    center = Vector3(spawn.center)
    return [center + rng.next_in_sphere(spawn.radius) for _ in range(max(0, int(spawn.count)))]


def starting_positions(config: SimulationConfig) -> List[Vector3]:
    if config.starting_positions is not None:
        return [Vector3(position) for position in config.starting_positions]
    return scatter_positions(config.spawn, DeterministicRng(config.seed))
