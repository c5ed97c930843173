"""Walker that mixes kernel steps with long straight jumps."""

from __future__ import annotations

import math
from typing import Optional

from ..errors import RandomDistributionError
from ..kernel import Kernel
from .base import Walker, kernel_moves, score_moves, straight_move


class LevyWalker(Walker):
    """
    Lévy-flight style walker.

    Before each step, if at least ``2 * jump_distance`` time steps remain, a
    coin with probability ``jump_probability`` decides whether to jump. A jump
    goes ``jump_distance`` cells (rounded onto the lattice) along a direction
    drawn from the kernel's angular marginal, weighted by the field at the
    landing cell; it takes as many time steps as its Chebyshev length.
    Otherwise the walker takes an ordinary kernel step.

    If every jump is blocked by the grid edge or by obstacles, or leaves the
    target out of reach, sampling fails with ``RandomDistributionError``.

    With ``jump_probability == 0`` no coin is drawn and the walker samples
    exactly like ``StandardWalker`` for the same random stream.
    """

    short_name = "lw"
    long_name = "Levy Walker"

    def __init__(
        self,
        jump_probability: float = 0.1,
        jump_distance: int = 2,
        kernel: Optional[Kernel] = None,
    ) -> None:
        if not 0.0 <= jump_probability <= 1.0:
            raise ValueError(f"jump_probability must lie in [0, 1], got {jump_probability}")
        if jump_distance < 1:
            raise ValueError(f"jump_distance must be at least 1, got {jump_distance}")
        self.jump_probability = float(jump_probability)
        self.jump_distance = int(jump_distance)
        self.kernel = kernel

    def __repr__(self) -> str:
        return (
            f"LevyWalker(jump_probability={self.jump_probability}, "
            f"jump_distance={self.jump_distance})"
        )

    def _candidates(self, dp, cell, t, remaining, state, rng):
        kernel = self.kernel if self.kernel is not None else dp.kernel_at(*cell)
        if self.jump_probability > 0.0 and remaining >= 2 * self.jump_distance:
            if rng.random() < self.jump_probability:
                return self._jumps(dp, kernel, cell, t)
        moves, weights = kernel_moves(dp, kernel, cell)
        return moves, score_moves(dp, moves, weights, t)

    def _jumps(self, dp, kernel, cell, t):
        directions, weights = kernel.angular_marginal()
        moves, kept = [], []
        for (ux, uy), w in zip(directions.tolist(), weights.tolist()):
            norm = math.hypot(ux, uy)
            dx = int(round(self.jump_distance * ux / norm))
            dy = int(round(self.jump_distance * uy / norm))
            move = straight_move(dp, cell, dx, dy)
            if move is None:
                continue
            moves.append(move)
            kept.append(w)
        scores = score_moves(dp, moves, kept, t)
        if sum(scores) <= 0.0:
            raise RandomDistributionError(
                f"no jump of length {self.jump_distance} from {cell} at t={t} can reach the target"
            )
        return moves, scores
