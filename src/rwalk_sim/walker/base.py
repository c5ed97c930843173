"""
Shared sampling skeleton for all walkers.

A walk of ``time_steps`` steps towards ``dp.target`` starts at elapsed time
``t0 = dp.horizon - time_steps``. At every time ``t`` a walker lists its
candidate moves from the current cell; each move is scored::

    score = proposal_weight * field[t + cost][landing_cell]

The scores are normalised and one move is drawn with the caller's random
generator. Variants only differ in how they list candidates and what state
they carry between steps (see ``Walker._candidates``).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, NamedTuple, Optional, Tuple, Union

import numpy as np

from ..dp.pool import DynamicProgramPool
from ..dp.program import Cell, DynamicProgram
from ..errors import (
    InconsistentPath,
    NoPathExists,
    RandomDistributionError,
    RequiresMultipleDynamicPrograms,
    RequiresSingleDynamicProgram,
)
from ..kernel import Kernel
from ..walk import Walk

logger = logging.getLogger(__name__)

Program = Union[DynamicProgram, DynamicProgramPool]
RandomSource = Union[None, int, np.random.Generator]


class Move(NamedTuple):
    """A candidate move: the cells it visits (landing cell last) and its displacement."""

    path: Tuple[Cell, ...]
    displacement: Tuple[int, int]

    @property
    def landing(self) -> Cell:
        return self.path[-1]

    @property
    def cost(self) -> int:
        return len(self.path)


def as_generator(rng: RandomSource) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def step_cost(dx: int, dy: int) -> int:
    """Number of time steps a displacement takes: its Chebyshev length, at least 1."""
    return max(1, abs(dx), abs(dy))


def line_cells(x0: int, y0: int, x1: int, y1: int) -> List[Cell]:
    """
    Cells of the Bresenham line from ``(x0, y0)`` to ``(x1, y1)``, excluding
    the start and including the end. The line has exactly
    ``max(|x1 - x0|, |y1 - y0|)`` cells.
    """
    cells: List[Cell] = []
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx + dy
    x, y = x0, y0
    while (x, y) != (x1, y1):
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x += sx
        if e2 <= dx:
            err += dx
            y += sy
        cells.append((x, y))
    return cells


def straight_move(dp: DynamicProgram, cell: Cell, dx: int, dy: int) -> Optional[Move]:
    """
    A multi-cell move along a straight line, or ``None`` if the line leaves
    the grid or crosses a blocked cell. The move takes ``step_cost(dx, dy)``
    time steps; staying in place takes one.
    """
    x, y = cell
    cells = line_cells(x, y, x + dx, y + dy) or [cell]
    if not all(dp.is_passable(cx, cy) for cx, cy in cells):
        return None
    return Move(tuple(cells), (dx, dy))


def kernel_moves(dp: DynamicProgram, kernel: Kernel, cell: Cell) -> Tuple[List[Move], List[float]]:
    """One-step moves of ``kernel`` from ``cell`` after applying the boundary policy."""
    offsets, weights = kernel.support()
    moves: List[Move] = []
    kept: List[float] = []
    x, y = cell
    for (dx, dy), w in zip(offsets.tolist(), weights.tolist()):
        landing = dp.landing(x + dx, y + dy)
        if landing is None:
            continue
        moves.append(Move((landing,), (dx, dy)))
        kept.append(w)
    return moves, kept


def choose(scores: np.ndarray, rng: np.random.Generator, where: str) -> int:
    """Draws an index proportional to ``scores``."""
    if scores.size == 0:
        raise NoPathExists(f"no move available {where}")
    if not np.all(np.isfinite(scores)) or np.any(scores < 0.0):
        raise RandomDistributionError(f"scores cannot be normalised {where}: {scores}")
    total = scores.sum()
    if total <= 0.0:
        raise NoPathExists(f"target unreachable {where}")
    return int(rng.choice(scores.size, p=scores / total))


class Walker:
    """
    Base class of the walker variants.

    Subclasses set ``requires_pool`` and implement ``_candidates``; they may
    override ``_initial_state``/``_next_state`` to carry state (e.g. the
    previous heading) between steps.
    """

    requires_pool = False
    short_name = "w"
    long_name = "Walker"

    def name(self, short: bool = False) -> str:
        return self.short_name if short else self.long_name

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # ------------------------------------------------------------------ public
    def generate_path(
        self,
        dp: Program,
        target: Cell,
        time_steps: int,
        rng: RandomSource = None,
        *,
        start: Optional[Cell] = None,
    ) -> Walk:
        """Samples one walk of ``time_steps`` steps from ``start`` to ``target``."""
        self.check_program(dp)
        generator = as_generator(rng)
        start, t0 = self._prepare(dp, target, time_steps, start)
        logger.debug(
            "%s: sampling %d steps from %s to %s", self.name(), time_steps, start, target
        )
        return self._walk(dp, start, t0, generator)

    def generate_paths(
        self,
        dp: Program,
        qty: int,
        target: Cell,
        time_steps: int,
        rng: RandomSource = None,
        *,
        start: Optional[Cell] = None,
        workers: Optional[int] = None,
    ) -> List[Walk]:
        """Samples ``qty`` independent walks, in parallel when ``workers != 1``."""
        from .batch import generate_batch

        return generate_batch(
            self, dp, qty, target, time_steps, rng, start=start, workers=workers
        )

    def check_program(self, dp: Program) -> None:
        """Raises if ``dp`` has the wrong arity for this walker."""
        if self.requires_pool and not isinstance(dp, DynamicProgramPool):
            raise RequiresMultipleDynamicPrograms(
                f"{self.name()} requires a DynamicProgramPool"
            )
        if not self.requires_pool and not isinstance(dp, DynamicProgram):
            raise RequiresSingleDynamicProgram(f"{self.name()} requires a single DynamicProgram")

    # ------------------------------------------------------------------ skeleton
    def _prepare(
        self, dp: Program, target: Cell, time_steps: int, start: Optional[Cell]
    ) -> Tuple[Cell, int]:
        if time_steps < 0 or time_steps > dp.horizon:
            raise ValueError(
                f"time_steps must lie in [0, {dp.horizon}], got {time_steps}"
            )
        target = (int(target[0]), int(target[1]))
        if target != dp.target:
            raise NoPathExists(f"dynamic program was built for target {dp.target}, not {target}")
        if start is None:
            start = dp.start
        if start is None:
            raise ValueError("a start cell must be given (the dynamic program has none)")
        start = (int(start[0]), int(start[1]))
        t0 = dp.horizon - time_steps
        if self._start_mass(dp, start, t0) <= 0.0:
            raise NoPathExists(
                f"target {target} is unreachable from {start} in {time_steps} steps"
            )
        return start, t0

    def _start_mass(self, dp: Program, start: Cell, t0: int) -> float:
        return dp.at(start[0], start[1], t0)

    def _walk(self, dp: Program, start: Cell, t0: int, rng: np.random.Generator) -> Walk:
        horizon = dp.horizon
        cells: List[Cell] = [start]
        cell = start
        t = t0
        state = self._initial_state(dp, start)
        while t < horizon:
            moves, scores = self._candidates(dp, cell, t, horizon - t, state, rng)
            idx = choose(np.asarray(scores, dtype=np.float64), rng, f"from {cell} at t={t}")
            move = moves[idx]
            cells.extend(move.path)
            cell = move.landing
            t += move.cost
            state = self._next_state(state, move)

        if cell != dp.target or len(cells) != horizon - t0 + 1:
            raise InconsistentPath(
                f"walk ended at {cell} after {len(cells) - 1} steps, expected {dp.target} "
                f"after {horizon - t0}"
            )
        return Walk(cells)

    def _initial_state(self, dp: Program, start: Cell) -> Any:
        return None

    def _next_state(self, state: Any, move: Move) -> Any:
        return state

    def _candidates(
        self,
        dp: Program,
        cell: Cell,
        t: int,
        remaining: int,
        state: Any,
        rng: np.random.Generator,
    ) -> Tuple[List[Move], Iterable[float]]:
        raise NotImplementedError


def score_moves(
    dp: DynamicProgram, moves: List[Move], weights: Iterable[float], t: int
) -> List[float]:
    """``weight * field[t + cost][landing]`` for each move."""
    return [w * dp.at(m.landing[0], m.landing[1], t + m.cost) for m, w in zip(moves, weights)]


__all__ = [
    "Move",
    "Walker",
    "as_generator",
    "choose",
    "kernel_moves",
    "line_cells",
    "score_moves",
    "step_cost",
    "straight_move",
]
