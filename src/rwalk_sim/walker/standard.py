"""Walker that follows the kernel stored in the dynamic program."""

from __future__ import annotations

from typing import Optional

from ..kernel import Kernel
from .base import Walker, kernel_moves, score_moves


class StandardWalker(Walker):
    """
    Samples one kernel step per time step, weighted by the reachability field.

    With ``kernel=None`` the kernel of the current cell's field type is used,
    which is what the dynamic program was built with. Passing a kernel
    explicitly lets the walker propose steps from a different distribution
    than the one the field was computed for.
    """

    short_name = "swg"
    long_name = "Standard Walker"

    def __init__(self, kernel: Optional[Kernel] = None) -> None:
        self.kernel = kernel

    def __repr__(self) -> str:
        return f"StandardWalker(kernel={None if self.kernel is None else self.kernel.name()!r})"

    def _candidates(self, dp, cell, t, remaining, state, rng):
        kernel = self.kernel if self.kernel is not None else dp.kernel_at(*cell)
        moves, weights = kernel_moves(dp, kernel, cell)
        return moves, score_moves(dp, moves, weights, t)
