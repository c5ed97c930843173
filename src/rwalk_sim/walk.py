"""
Sampled walks.

A ``Walk`` is an immutable sequence of ``(cell, elapsed_time)`` entries with
strictly increasing times. Walks produced by walkers have exactly
``time_steps + 1`` entries with consecutive times.
"""

from __future__ import annotations

import math
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
from numba import njit

Cell = Tuple[int, int]


@njit(cache=True)
def _discrete_frechet(a: np.ndarray, b: np.ndarray) -> float:
    """
    Discrete Fréchet distance between two polylines (Eiter & Mannila 1994),
    computed with a rolling row of the coupling table.
    """
    n = a.shape[0]
    m = b.shape[0]
    prev = np.empty(m)
    cur = np.empty(m)
    for i in range(n):
        for j in range(m):
            dx = a[i, 0] - b[j, 0]
            dy = a[i, 1] - b[j, 1]
            d = math.sqrt(dx * dx + dy * dy)
            if i == 0 and j == 0:
                cur[j] = d
            elif i == 0:
                cur[j] = max(cur[j - 1], d)
            elif j == 0:
                cur[j] = max(prev[j], d)
            else:
                best = min(prev[j], prev[j - 1], cur[j - 1])
                cur[j] = max(best, d)
        for j in range(m):
            prev[j] = cur[j]
    return prev[m - 1]


class Walk:
    """Ordered ``(cell, time)`` entries of one sampled walk."""

    __slots__ = ("_cells", "_times")

    def __init__(self, cells, times: Optional[Sequence[int]] = None) -> None:
        cells_arr = np.array(cells, dtype=np.int64).reshape(-1, 2)
        if times is None:
            times_arr = np.arange(cells_arr.shape[0], dtype=np.int64)
        else:
            times_arr = np.array(times, dtype=np.int64).reshape(-1)
        if times_arr.shape[0] != cells_arr.shape[0]:
            raise ValueError(
                f"{cells_arr.shape[0]} cells but {times_arr.shape[0]} timestamps"
            )
        if np.any(np.diff(times_arr) <= 0):
            raise ValueError("walk times must be strictly increasing")
        cells_arr.flags.writeable = False
        times_arr.flags.writeable = False
        self._cells = cells_arr
        self._times = times_arr

    # ------------------------------------------------------------------ access
    @property
    def cells(self) -> np.ndarray:
        """``(n, 2)`` read-only array of cells."""
        return self._cells

    @property
    def times(self) -> np.ndarray:
        return self._times

    @property
    def start(self) -> Cell:
        return int(self._cells[0, 0]), int(self._cells[0, 1])

    @property
    def end(self) -> Cell:
        return int(self._cells[-1, 0]), int(self._cells[-1, 1])

    def steps(self) -> np.ndarray:
        """Displacements between consecutive entries, shape ``(n - 1, 2)``."""
        return np.diff(self._cells, axis=0)

    def __len__(self) -> int:
        return self._cells.shape[0]

    def __getitem__(self, index: int) -> Cell:
        x, y = self._cells[index]
        return int(x), int(y)

    def __iter__(self) -> Iterator[Cell]:
        for x, y in self._cells:
            yield int(x), int(y)

    def entries(self) -> Iterator[Tuple[Cell, int]]:
        for (x, y), t in zip(self._cells, self._times):
            yield (int(x), int(y)), int(t)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Walk):
            return NotImplemented
        return np.array_equal(self._cells, other._cells) and np.array_equal(
            self._times, other._times
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Walk(len={len(self)}, start={self.start}, end={self.end})"

    # ------------------------------------------------------------------ transforms
    def translate(self, by: Cell) -> "Walk":
        return Walk(self._cells + np.asarray(by, dtype=np.int64), self._times)

    def scale(self, by: Cell) -> "Walk":
        return Walk(self._cells * np.asarray(by, dtype=np.int64), self._times)

    def rotate(self, degrees: float) -> "Walk":
        """Rotates all cells around the origin (truncating towards zero)."""
        rad = math.radians(degrees)
        c, s = math.cos(rad), math.sin(rad)
        x = self._cells[:, 0].astype(np.float64)
        y = self._cells[:, 1].astype(np.float64)
        # round away tiny float noise before truncating, e.g. cos(90°) != 0
        rx = np.trunc(np.round(x * c - y * s, 9))
        ry = np.trunc(np.round(y * c + x * s, 9))
        return Walk(np.column_stack((rx, ry)), self._times)

    # ------------------------------------------------------------------ metrics
    def frechet_distance(self, other: "Walk") -> float:
        return float(
            _discrete_frechet(
                self._cells.astype(np.float64), other._cells.astype(np.float64)
            )
        )

    def directness_deviation(self) -> float:
        """How far the walk strays from the straight segment between its end points."""
        line = np.array([self._cells[0], self._cells[-1]], dtype=np.float64)
        return float(_discrete_frechet(self._cells.astype(np.float64), line))


__all__ = ["Walk"]
