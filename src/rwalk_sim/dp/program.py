"""
Reachability fields computed by backward induction.

``DynamicProgram.table[t, ix, iy]`` is the probability that a walker standing
on cell ``(x, y)`` at elapsed time ``t`` is on the target at ``horizon``. The
terminal slice is the target indicator. The table is a single C-contiguous
buffer (flat index ``(t * width + ix) * height + iy``) and is read-only once
the program is constructed, so one program can be shared by any number of
sampling threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, Optional, Tuple

import numpy as np

from ..errors import InvalidProgramData
from ..kernel import Kernel

Cell = Tuple[int, int]


class BoundaryPolicy(str, Enum):
    """What happens to kernel mass that would leave the grid."""

    DISCARD = "discard"
    REFLECT = "reflect"


@dataclass(frozen=True)
class GridBounds:
    """Inclusive rectangular cell range ``[x_min, x_max] x [y_min, y_max]``."""

    x_min: int
    y_min: int
    x_max: int
    y_max: int

    def __post_init__(self) -> None:
        if self.x_max < self.x_min or self.y_max < self.y_min:
            raise ValueError(f"Empty grid bounds: {self}")

    @classmethod
    def from_shape(cls, width: int, height: int, origin: Cell = (0, 0)) -> "GridBounds":
        return cls(origin[0], origin[1], origin[0] + width - 1, origin[1] + height - 1)

    @classmethod
    def centered(cls, radius: int) -> "GridBounds":
        """The symmetric grid ``[-radius, radius]^2``."""
        return cls(-radius, -radius, radius, radius)

    @property
    def width(self) -> int:
        return self.x_max - self.x_min + 1

    @property
    def height(self) -> int:
        return self.y_max - self.y_min + 1

    @property
    def shape(self) -> Tuple[int, int]:
        return self.width, self.height

    def contains(self, x: int, y: int) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max

    def index(self, x: int, y: int) -> Tuple[int, int]:
        return x - self.x_min, y - self.y_min

    def cell(self, ix: int, iy: int) -> Cell:
        return ix + self.x_min, iy + self.y_min

    def reflect(self, x: int, y: int) -> Cell:
        """Mirrors a cell back across the violated edge, clamping if still outside."""
        return (
            _reflect_axis(x, self.x_min, self.x_max),
            _reflect_axis(y, self.y_min, self.y_max),
        )

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.x_min, self.y_min, self.x_max, self.y_max


def _reflect_axis(v: int, lo: int, hi: int) -> int:
    if v < lo:
        v = 2 * lo - v
    elif v > hi:
        v = 2 * hi - v
    return min(max(v, lo), hi)


class DynamicProgram:
    """
    Immutable reachability table plus everything needed to interpret it.

    Instances are created by ``DynamicProgramBuilder`` (or loaded from disk);
    walkers borrow them read-only.
    """

    def __init__(
        self,
        table: np.ndarray,
        bounds: GridBounds,
        target: Cell,
        kernels_by_type: Dict[int, Kernel],
        field_types: Optional[np.ndarray] = None,
        field_probabilities: Optional[np.ndarray] = None,
        *,
        boundary: BoundaryPolicy = BoundaryPolicy.DISCARD,
        renormalize: bool = True,
        start: Optional[Cell] = None,
        key: Optional[Hashable] = None,
    ) -> None:
        table = np.ascontiguousarray(table, dtype=np.float64)
        if table.ndim != 3 or table.shape[1:] != bounds.shape:
            raise InvalidProgramData(
                f"Table shape {table.shape} does not match grid {bounds.shape}"
            )
        if not kernels_by_type:
            raise InvalidProgramData("A dynamic program needs at least one kernel")
        table.flags.writeable = False

        if field_types is None:
            field_types = np.zeros(bounds.shape, dtype=np.int64)
        if field_probabilities is None:
            field_probabilities = np.ones(bounds.shape, dtype=np.float64)
        field_types = np.array(field_types, dtype=np.int64)
        field_probabilities = np.array(field_probabilities, dtype=np.float64)
        field_types.flags.writeable = False
        field_probabilities.flags.writeable = False

        self._table = table
        self.bounds = bounds
        self.target: Cell = (int(target[0]), int(target[1]))
        self.kernels_by_type = dict(kernels_by_type)
        self.field_types = field_types
        self.field_probabilities = field_probabilities
        self.boundary = BoundaryPolicy(boundary)
        self.renormalize = bool(renormalize)
        self.start: Optional[Cell] = None if start is None else (int(start[0]), int(start[1]))
        self.key = key

    # ------------------------------------------------------------------ properties
    @property
    def table(self) -> np.ndarray:
        return self._table

    @property
    def horizon(self) -> int:
        return self._table.shape[0] - 1

    @property
    def kernel(self) -> Kernel:
        """The kernel of the program when it uses a single field type."""
        if len(self.kernels_by_type) != 1:
            raise AttributeError("Program uses several field types, use kernel_at()")
        return next(iter(self.kernels_by_type.values()))

    # ------------------------------------------------------------------ lookup
    def at(self, x: int, y: int, t: int) -> float:
        """Field value at cell ``(x, y)`` and elapsed time ``t`` (0 outside the grid)."""
        if not self.bounds.contains(x, y) or not 0 <= t <= self.horizon:
            return 0.0
        ix, iy = self.bounds.index(x, y)
        return float(self._table[t, ix, iy])

    def slice(self, t: int) -> np.ndarray:
        return self._table[t]

    def kernel_at(self, x: int, y: int) -> Kernel:
        ix, iy = self.bounds.index(x, y)
        return self.kernels_by_type[int(self.field_types[ix, iy])]

    def is_passable(self, x: int, y: int) -> bool:
        if not self.bounds.contains(x, y):
            return False
        ix, iy = self.bounds.index(x, y)
        return self.field_probabilities[ix, iy] > 0.0

    def landing(self, x: int, y: int) -> Optional[Cell]:
        """
        Cell a step aimed at ``(x, y)`` actually lands on under the boundary
        policy, or ``None`` if the step is discarded.
        """
        if not self.bounds.contains(x, y):
            if self.boundary is not BoundaryPolicy.REFLECT:
                return None
            x, y = self.bounds.reflect(x, y)
        if not self.is_passable(x, y):
            return None
        return x, y

    def matches(self, other: "DynamicProgram") -> bool:
        """Whether two programs share bounds, target and horizon."""
        return (
            self.bounds == other.bounds
            and self.target == other.target
            and self.horizon == other.horizon
        )

    def check_invariants(self) -> None:
        """Raises ``InvalidProgramData`` if the table is not a valid field."""
        if not self.bounds.contains(*self.target):
            raise InvalidProgramData(f"Target {self.target} lies outside {self.bounds}")
        if not np.all(np.isfinite(self._table)) or np.any(self._table < 0.0):
            raise InvalidProgramData("Table contains negative or non-finite values")
        expected = np.zeros(self.bounds.shape)
        expected[self.bounds.index(*self.target)] = 1.0
        if not np.array_equal(self._table[self.horizon], expected):
            raise InvalidProgramData("Terminal slice is not the target indicator")
        if self.field_types.shape != self.bounds.shape:
            raise InvalidProgramData("Field type grid does not match the bounds")
        if self.field_probabilities.shape != self.bounds.shape:
            raise InvalidProgramData("Field probability grid does not match the bounds")
        missing = set(np.unique(self.field_types).tolist()) - set(self.kernels_by_type)
        if missing:
            raise InvalidProgramData(f"No kernel for field types {sorted(missing)}")

    def metadata(self) -> Dict[str, Any]:
        return {
            "bounds": list(self.bounds.as_tuple()),
            "target": list(self.target),
            "start": None if self.start is None else list(self.start),
            "horizon": self.horizon,
            "boundary": self.boundary.value,
            "renormalize": self.renormalize,
        }

    # ------------------------------------------------------------------ dunder
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DynamicProgram):
            return NotImplemented
        return self.matches(other) and np.array_equal(self._table, other._table)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"DynamicProgram(bounds={self.bounds.as_tuple()}, target={self.target}, "
            f"horizon={self.horizon}, types={sorted(self.kernels_by_type)})"
        )


__all__ = ["BoundaryPolicy", "Cell", "DynamicProgram", "GridBounds"]
