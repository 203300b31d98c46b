from __future__ import annotations

import math
import random

from pygame.math import Vector3


class DeterministicRng:
    def __init__(self, seed: int):
        self._random = random.Random(seed)

    def next_unit_sphere(self) -> Vector3:
        # Uniform direction: z uniform in [-1, 1], azimuth uniform.
        z = self._random.uniform(-1.0, 1.0)
        angle = self._random.uniform(0.0, 2.0 * math.pi)
        ring = math.sqrt(max(0.0, 1.0 - z * z))
        return Vector3(ring * math.cos(angle), ring * math.sin(angle), z)

    def next_in_sphere(self, radius: float) -> Vector3:
        if radius <= 0.0:
            return Vector3()
        distance = radius * self._random.random() ** (1.0 / 3.0)
        return self.next_unit_sphere() * distance
