from __future__ import annotations

import logging
from dataclasses import asdict, replace
from time import perf_counter
from typing import Iterable, List

from pygame.math import Vector3

from .config import FlockParameters, SimulationConfig
from ..systems import integrator, metrics as metrics_system, spawn, steering
from ..types.metrics import StepMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata
from ..utils.math3d import Point, coerce_positions

logger = logging.getLogger(__name__)


class Flock:
    """Positions, velocities and rule parameters of one running boid simulation.

    Agent `i` is the `i`-th entry of both the position and the velocity list.
    Each call to `update()` advances every boid by one step: the acceleration
    accumulator is zeroed, separation, alignment and cohesion add their
    contributions in that order, and the integrator moves the boids.
    """

    def __init__(
        self,
        starting_positions: Iterable[Point],
        parameters: FlockParameters | None = None,
        symmetric_neighbors: bool = False,
        seed: int | None = None,
        config_version: str = "v1",
    ):
        self.parameters = replace(parameters) if parameters is not None else FlockParameters()
        self.symmetric_neighbors = symmetric_neighbors
        self._seed = seed
        self._config_version = config_version
        self._positions: List[Vector3] = []
        self._velocities: List[Vector3] = []
        self._accelerations: List[Vector3] = []
        self._starting_positions: List[Vector3] = []
        self._tick = 0
        self._metrics: StepMetrics | None = None
        self._load(starting_positions)

    @classmethod
    def from_config(cls, config: SimulationConfig) -> "Flock":
        return cls(
            spawn.starting_positions(config),
            parameters=config.parameters,
            symmetric_neighbors=config.symmetric_neighbors,
            seed=config.seed,
            config_version=config.config_version,
        )

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def metrics(self) -> StepMetrics | None:
        return self._metrics

    def __len__(self) -> int:
        return len(self._positions)

    def positions(self) -> List[Vector3]:
        return [Vector3(position) for position in self._positions]

    def velocities(self) -> List[Vector3]:
        return [Vector3(velocity) for velocity in self._velocities]

    def set_parameters(self, parameters: FlockParameters | None = None, **values: float) -> None:
        """Replace the rule parameters, either wholesale or field by field.

        Agent state is untouched, so this is safe between any two steps.
        """
        base = parameters if parameters is not None else self.parameters
        self.parameters = replace(base, **values)

    def reset(self, starting_positions: Iterable[Point] | None = None) -> None:
        """Discard the current state and restart from `starting_positions`.

        Without an argument the flock restarts from the positions it was
        last constructed or reset with.
        """
        self._load(self._starting_positions if starting_positions is None else starting_positions)

    def update(self) -> StepMetrics:
        start = perf_counter()
        params = self.parameters
        positions = self._positions
        count = len(positions)
        accelerations = self._accelerations
        accelerations[:] = [Vector3() for _ in range(count)]

        separation_pairs = steering.separate(
            positions,
            accelerations,
            params.separation_fov,
            params.separation_mag,
        )
        alignment_links = steering.align(
            positions,
            self._velocities,
            accelerations,
            params.alignment_fov,
            params.alignment_mag,
            symmetric=self.symmetric_neighbors,
        )
        cohesion_links = steering.cohere(
            positions,
            accelerations,
            params.cohesion_fov,
            params.cohesion_mag,
            symmetric=self.symmetric_neighbors,
        )

        integrator.integrate(positions, self._velocities, accelerations)

        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._tick,
            positions,
            self._velocities,
            (separation_pairs, alignment_links, cohesion_links),
            duration_ms,
        )
        self._tick += 1
        return self._metrics

    def snapshot(self) -> Snapshot:
        boids = []
        for index, (position, velocity) in enumerate(zip(self._positions, self._velocities)):
            boids.append(
                {
                    "id": index,
                    "x": position.x,
                    "y": position.y,
                    "z": position.z,
                    "vx": velocity.x,
                    "vy": velocity.y,
                    "vz": velocity.z,
                    "speed": velocity.length(),
                }
            )
        metadata = SnapshotMetadata(
            population=len(self._positions),
            seed=self._seed,
            config_version=self._config_version,
            symmetric_neighbors=self.symmetric_neighbors,
            parameters=asdict(self.parameters),
        )
        return Snapshot(tick=self._tick, metrics=self._metrics, boids=boids, metadata=metadata)

    def _load(self, starting_positions: Iterable[Point]) -> None:
        positions = coerce_positions(starting_positions)
        self._starting_positions = [Vector3(position) for position in positions]
        self._positions = positions
        self._velocities = [Vector3() for _ in positions]
        self._accelerations = []
        self._tick = 0
        self._metrics = None
        logger.debug("Flock loaded with %d boids", len(positions))
