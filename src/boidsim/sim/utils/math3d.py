from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import List, Union

from pygame.math import Vector3

Point = Union[Sequence[float], Vector3]


def to_vector3(value: Point) -> Vector3:
    if isinstance(value, Vector3):
        return Vector3(value)
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 3:
        raise ValueError(f"Expected a 3D point, got {value!r}")
    try:
        x, y, z = (float(component) for component in value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected a 3D point, got {value!r}") from exc
    return Vector3(x, y, z)


def coerce_positions(values: Iterable[Point]) -> List[Vector3]:
    return [to_vector3(value) for value in values]


def _mean_or_zero(total: Vector3, count: int) -> Vector3:
    # An empty neighbor set divides by one, leaving the zero sum untouched.
    return total / (count if count else 1)


def as_tuple(vector: Vector3) -> tuple[float, float, float]:
    return (float(vector.x), float(vector.y), float(vector.z))
