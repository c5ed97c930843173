"""Walker whose reach depends on the land cover of the current cell."""

from __future__ import annotations

from typing import Dict, Mapping

import numpy as np

from ..errors import LandCoverError
from ..kernel import Kernel
from .base import Walker, kernel_moves, score_moves


class LandCoverWalker(Walker):
    """
    Restricts a base kernel per land-cover class.

    ``land_cover[ix, iy]`` holds the class of each cell of the dynamic program
    grid (index space of ``GridBounds``); ``max_step_sizes[cls]`` caps the
    Chebyshev length of a step taken from a cell of that class. A cap of 0
    means the walker cannot leave such cells.

    The dynamic program must be built with the same restricted kernels, which
    ``apply_to`` sets up on a builder::

        walker = LandCoverWalker({0: 2, 1: 1}, land_cover, kernel)
        dp = walker.apply_to(DynamicProgramBuilder().bounds(bounds)).build(walker)
    """

    short_name = "lcw"
    long_name = "Land Cover Walker"

    def __init__(
        self,
        max_step_sizes: Mapping[int, int],
        land_cover: np.ndarray,
        kernel: Kernel,
    ) -> None:
        land_cover = np.array(land_cover, dtype=np.int64)
        if land_cover.ndim != 2:
            raise LandCoverError(f"land cover must be a 2-D grid, got shape {land_cover.shape}")
        steps = {int(k): int(v) for k, v in max_step_sizes.items()}
        if any(v < 0 for v in steps.values()):
            raise LandCoverError("max step sizes must be non-negative")
        missing = sorted(set(np.unique(land_cover).tolist()) - set(steps))
        if missing:
            raise LandCoverError(f"no max step size for land cover classes {missing}")
        land_cover.flags.writeable = False
        self.land_cover = land_cover
        self.max_step_sizes = steps
        self.kernel = kernel
        self._kernels = self.kernels_by_type()

    def __repr__(self) -> str:
        return (
            f"LandCoverWalker(max_step_sizes={self.max_step_sizes}, "
            f"land_cover={self.land_cover.shape}, kernel={self.kernel.name()!r})"
        )

    def kernels_by_type(self) -> Dict[int, Kernel]:
        """Base kernel restricted to each class's max step size."""
        return {cls: self.kernel.restrict(step) for cls, step in self.max_step_sizes.items()}

    def apply_to(self, builder):
        """Configures a ``DynamicProgramBuilder`` with this walker's field types and kernels."""
        return builder.field_types(self.land_cover).kernels_by_type(self._kernels)

    def check_program(self, dp) -> None:
        super().check_program(dp)
        if self.land_cover.shape != dp.bounds.shape:
            raise LandCoverError(
                f"land cover grid {self.land_cover.shape} does not cover the "
                f"dynamic program grid {dp.bounds.shape}"
            )

    def _candidates(self, dp, cell, t, remaining, state, rng):
        ix, iy = dp.bounds.index(*cell)
        kernel = self._kernels[int(self.land_cover[ix, iy])]
        moves, weights = kernel_moves(dp, kernel, cell)
        return moves, score_moves(dp, moves, weights, t)
