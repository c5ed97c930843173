"""Walker with a heading-dependent kernel."""

from __future__ import annotations

from typing import Union

from ..kernel import Direction
from .base import Move, Walker, kernel_moves


class CorrelatedWalker(Walker):
    """
    Correlated random walk over a ``DynamicProgramPool`` keyed by ``Direction``.

    The kernel used at each step is the one of the previous heading; the
    heading after a step is ``Direction.from_displacement`` of the intended
    displacement. Moves are weighted by the field of the heading they lead
    to, matching the coupled recurrence the pool was built with.
    """

    requires_pool = True
    short_name = "cwg"
    long_name = "Correlated Walker"

    def __init__(self, initial_heading: Union[Direction, str] = Direction.STAY) -> None:
        self.initial_heading = Direction.parse(initial_heading)

    def __repr__(self) -> str:
        return f"CorrelatedWalker(initial_heading={self.initial_heading.name})"

    def _start_mass(self, dp, start, t0):
        program = dp.get(self.initial_heading)
        if program is None:
            return 0.0
        return program.at(start[0], start[1], t0)

    def _initial_state(self, dp, start):
        return self.initial_heading

    def _next_state(self, state: Direction, move: Move) -> Direction:
        return Direction.from_displacement(*move.displacement)

    def _candidates(self, dp, cell, t, remaining, state, rng):
        current = dp[state]
        moves, weights = kernel_moves(current, current.kernel, cell)
        scores = []
        for move, w in zip(moves, weights):
            program = dp.get(Direction.from_displacement(*move.displacement))
            if program is None:
                scores.append(0.0)
                continue
            x, y = move.landing
            scores.append(w * program.at(x, y, t + 1))
        return moves, scores
