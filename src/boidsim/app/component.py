from __future__ import annotations

import logging
from typing import Iterable, List

from pygame.math import Vector3

from ..sim.core.config import FlockParameters
from ..sim.core.flock import Flock
from ..sim.utils.math3d import Point

logger = logging.getLogger(__name__)


class FlockComponent:
    """Host node around a `Flock`: one `solve()` per host evaluation.

    The flock is created lazily on the first solve, and again whenever the
    host raises `reset`. Parameters are read on every solve before stepping.
    """

    def __init__(self, symmetric_neighbors: bool = False, seed: int | None = None):
        self.flock: Flock | None = None
        self._symmetric_neighbors = symmetric_neighbors
        self._seed = seed

    def reset(self, starting_positions: Iterable[Point], parameters: FlockParameters | None = None) -> Flock:
        self.flock = Flock(
            starting_positions,
            parameters=parameters,
            symmetric_neighbors=self._symmetric_neighbors,
            seed=self._seed,
        )
        logger.info("Flock reset with %d boids", len(self.flock))
        return self.flock

    def solve(
        self,
        reset: bool,
        starting_positions: Iterable[Point],
        parameters: FlockParameters,
    ) -> List[Vector3]:
        flock = self.flock
        if reset or flock is None:
            flock = self.reset(starting_positions)
        flock.set_parameters(parameters)
        flock.update()
        return flock.positions()
