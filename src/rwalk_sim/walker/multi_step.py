"""Walker that may cover several cells along an axis in one move."""

from __future__ import annotations

from ..kernel import Direction
from .base import Walker, straight_move


class MultiStepWalker(Walker):
    """
    Proposes staying in place or moving ``k`` cells (``1 <= k <= max_step_size``)
    north, east, south or west, all with equal weight.

    A move of ``k`` cells takes ``k`` time steps, so the walk still has one
    entry per time step; the cells crossed must lie on the grid and be
    passable.
    """

    short_name = "msw"
    long_name = "Multi Step Walker"

    def __init__(self, max_step_size: int = 1) -> None:
        if max_step_size < 1:
            raise ValueError(f"max_step_size must be at least 1, got {max_step_size}")
        self.max_step_size = int(max_step_size)

    def __repr__(self) -> str:
        return f"MultiStepWalker(max_step_size={self.max_step_size})"

    def _candidates(self, dp, cell, t, remaining, state, rng):
        moves = [straight_move(dp, cell, 0, 0)]
        for direction in (Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST):
            for k in range(1, min(self.max_step_size, remaining) + 1):
                move = straight_move(dp, cell, k * direction.dx, k * direction.dy)
                if move is None:
                    # farther cells on this axis are behind the same obstacle
                    break
                moves.append(move)
        moves = [m for m in moves if m is not None]
        scores = [dp.at(m.landing[0], m.landing[1], t + m.cost) for m in moves]
        return moves, scores
