from __future__ import annotations

import math
from typing import Dict, List, Tuple

from pygame.math import Vector3

CellKey = Tuple[int, int, int]


class SpatialGrid:
    """Uniform hash grid over labelled 3D points with spherical range queries."""

    def __init__(self, cell_size: float) -> None:
        if cell_size <= 0.0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self._cell_size = cell_size
        self._cells: Dict[CellKey, List[Tuple[int, Vector3]]] = {}
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def insert(self, index: int, position: Vector3) -> None:
        key = self._cell_key(position)
        bucket = self._cells.get(key)
        if bucket is None:
            bucket = []
            self._cells[key] = bucket
        bucket.append((index, position))
        self._count += 1

    def collect_neighbors(
        self,
        position: Vector3,
        radius: float,
        out_indices: List[int],
        min_index: int | None = None,
        exclude_index: int | None = None,
    ) -> None:
        """
        Fill `out_indices` with the labels of points inside the closed sphere
        of `radius` around `position`.

        `min_index` keeps only labels strictly greater than it, which is how a
        caller enumerates each unordered pair once. A non-positive radius
        yields no neighbors.
        """

        out_indices.clear()
        if radius <= 0.0 or not self._count:
            return
        base_x, base_y, base_z = self._cell_key(position)
        cell_range = int(math.ceil(radius / self._cell_size))
        radius_sq = radius * radius
        pos_x = position.x
        pos_y = position.y
        pos_z = position.z

        cells = self._cells
        append = out_indices.append
        span = range(-cell_range, cell_range + 1)

        for dx in span:
            for dy in span:
                for dz in span:
                    bucket = cells.get((base_x + dx, base_y + dy, base_z + dz))
                    if not bucket:
                        continue
                    for index, pos in bucket:
                        if min_index is not None and index <= min_index:
                            continue
                        if exclude_index is not None and index == exclude_index:
                            continue
                        offset_x = pos.x - pos_x
                        offset_y = pos.y - pos_y
                        offset_z = pos.z - pos_z
                        if offset_x * offset_x + offset_y * offset_y + offset_z * offset_z <= radius_sq:
                            append(index)

    def _cell_key(self, position: Vector3) -> CellKey:
        # Positions must be finite and no more than ~1e9 cells from the origin.
        size = self._cell_size
        return (int(position.x // size), int(position.y // size), int(position.z // size))
