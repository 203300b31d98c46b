from __future__ import annotations

from typing import List

from pygame.math import Vector3

from ..utils.math3d import _mean_or_zero
from . import neighbors


def separate(
    positions: List[Vector3],
    accelerations: List[Vector3],
    fov: float,
    magnitude: float,
) -> int:
    """Collision avoidance.

    Every unordered pair closer than `fov` pushes both boids apart with equal
    and opposite contributions. The push is half the overlap `fov - dist`,
    so it vanishes at the edge of the field of view and grows as the pair
    closes in. Coincident boids have no direction to push along and are
    left alone.

    Returns the number of pairs that were inspected.
    """
    neighbor_sets = neighbors.query_neighbors(positions, fov)
    for i, found in enumerate(neighbor_sets):
        origin = positions[i]
        for j in found:
            push = positions[j] - origin
            distance = push.length()
            if distance > fov or distance == 0.0:
                continue
            push *= 0.5 * (distance - fov) / distance
            push *= magnitude
            accelerations[i] += push
            accelerations[j] -= push
    return neighbors.count_links(neighbor_sets)


def align(
    positions: List[Vector3],
    velocities: List[Vector3],
    accelerations: List[Vector3],
    fov: float,
    magnitude: float,
    symmetric: bool = False,
) -> int:
    """Velocity matching: steer each boid by the mean velocity of its neighbors."""
    neighbor_sets = neighbors.query_neighbors(positions, fov, symmetric=symmetric)
    for i, found in enumerate(neighbor_sets):
        total = Vector3()
        for j in found:
            total += velocities[j]
        accelerations[i] += _mean_or_zero(total, len(found)) * magnitude
    return neighbors.count_links(neighbor_sets)


def cohere(
    positions: List[Vector3],
    accelerations: List[Vector3],
    fov: float,
    magnitude: float,
    symmetric: bool = False,
) -> int:
    """Flock centering: pull each boid toward the centroid of its neighbors.

    A boid with no neighbors is skipped and gets no cohesion at all. Treating
    its empty sum as a centroid at the world origin would pull lonely boids
    (always including the highest-indexed one) toward the origin, so this
    deliberately departs from the divide-by-one averaging that `align` uses.
    """
    neighbor_sets = neighbors.query_neighbors(positions, fov, symmetric=symmetric)
    for i, found in enumerate(neighbor_sets):
        if not found:
            continue
        total = Vector3()
        for j in found:
            total += positions[j]
        centroid = total / len(found)
        accelerations[i] -= (positions[i] - centroid) * magnitude
    return neighbors.count_links(neighbor_sets)
