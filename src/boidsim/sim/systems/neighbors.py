from __future__ import annotations

import math
from typing import List

from pygame.math import Vector3

from ..core.spatial_grid import SpatialGrid

# Cell size used when the query radius cannot size the grid itself.
_FALLBACK_CELL_SIZE = 1.0
# Widest cell-coordinate range the grid is asked to hash, relative to the flock extent.
_CELL_EXTENT_RATIO = 1e-9


def _is_finite(position: Vector3) -> bool:
    return math.isfinite(position.x) and math.isfinite(position.y) and math.isfinite(position.z)


def _cell_size(positions: List[Vector3], radius: float) -> float:
    size = radius if radius > 0.0 else _FALLBACK_CELL_SIZE
    extent = 0.0
    for position in positions:
        if _is_finite(position):
            extent = max(extent, abs(position.x), abs(position.y), abs(position.z))
    # Cells never shrink below the radius, so the 27-cell query stays exact.
    return max(size, extent * _CELL_EXTENT_RATIO)


def build_index(positions: List[Vector3], radius: float) -> SpatialGrid:
    """Index every finite position under its agent index.

    Cells are sized to the query radius, which keeps each query to the 27
    cells around the querying boid. Flocks spread far beyond the radius get
    proportionally larger cells instead of unbounded cell coordinates.
    Boids with a non-finite coordinate are left out of the index.
    """
    grid = SpatialGrid(_cell_size(positions, radius))
    for index, position in enumerate(positions):
        if _is_finite(position):
            grid.insert(index, position)
    return grid


def query_neighbors(positions: List[Vector3], radius: float, symmetric: bool = False) -> List[List[int]]:
    """Neighbor sets for every boid within `radius`, sorted by index.

    By default boid `i` only records neighbors `j > i`, so each unordered pair
    appears exactly once across the result. With `symmetric` every other boid
    in range is recorded, and a pair shows up under both of its members.
    A boid with a non-finite coordinate has no neighbors and is nobody's
    neighbor.
    """
    neighbor_sets: List[List[int]] = [[] for _ in positions]
    if not radius > 0.0 or len(positions) < 2:
        return neighbor_sets
    if math.isinf(radius):
        return _everyone_in_range(positions, symmetric)

    grid = build_index(positions, radius)
    for index, position in enumerate(positions):
        if not _is_finite(position):
            continue
        found = neighbor_sets[index]
        if symmetric:
            grid.collect_neighbors(position, radius, found, exclude_index=index)
        else:
            grid.collect_neighbors(position, radius, found, min_index=index)
        found.sort()
    return neighbor_sets


def _everyone_in_range(positions: List[Vector3], symmetric: bool) -> List[List[int]]:
    finite = [index for index, position in enumerate(positions) if _is_finite(position)]
    neighbor_sets: List[List[int]] = [[] for _ in positions]
    for index in finite:
        if symmetric:
            neighbor_sets[index] = [other for other in finite if other != index]
        else:
            neighbor_sets[index] = [other for other in finite if other > index]
    return neighbor_sets


def count_links(neighbor_sets: List[List[int]]) -> int:
    return sum(len(found) for found in neighbor_sets)
