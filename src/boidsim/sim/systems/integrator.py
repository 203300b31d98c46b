from __future__ import annotations

from typing import List

from pygame.math import Vector3


def integrate(
    positions: List[Vector3],
    velocities: List[Vector3],
    accelerations: List[Vector3],
) -> None:
    # First-order update: the velocity is the acceleration applied this step,
    # not an accumulation of previous steps.
    for index, acceleration in enumerate(accelerations):
        positions[index] = positions[index] + acceleration
        velocities[index] = Vector3(acceleration)
