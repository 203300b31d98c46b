from __future__ import annotations

from typing import List

from pygame.math import Vector3

from ..types.metrics import StepMetrics


def create_metrics(
    tick: int,
    positions: List[Vector3],
    velocities: List[Vector3],
    link_counts: tuple[int, int, int],
    duration_ms: float,
) -> StepMetrics:
    separation_pairs, alignment_links, cohesion_links = link_counts
    population = len(positions)
    average_speed, max_speed = _speed_stats(velocities)
    return StepMetrics(
        tick=tick,
        population=population,
        separation_pairs=separation_pairs,
        alignment_links=alignment_links,
        cohesion_links=cohesion_links,
        neighbor_checks=separation_pairs + alignment_links + cohesion_links,
        average_speed=average_speed,
        max_speed=max_speed,
        spread=flock_spread(positions),
        tick_duration_ms=duration_ms,
    )


def _speed_stats(velocities: List[Vector3]) -> tuple[float, float]:
    if not velocities:
        return 0.0, 0.0
    speed_sum = 0.0
    max_speed = 0.0
    for velocity in velocities:
        speed = velocity.length()
        speed_sum += speed
        if speed > max_speed:
            max_speed = speed
    return speed_sum / len(velocities), max_speed


def flock_centroid(positions: List[Vector3]) -> Vector3:
    centroid = Vector3()
    if not positions:
        return centroid
    for position in positions:
        centroid += position
    return centroid / len(positions)


def flock_spread(positions: List[Vector3]) -> float:
    """Mean distance of the boids from the flock centroid."""
    if not positions:
        return 0.0
    centroid = flock_centroid(positions)
    return sum(position.distance_to(centroid) for position in positions) / len(positions)
