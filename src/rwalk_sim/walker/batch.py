"""
Parallel batch sampling.

Walk ``i`` of a batch is drawn with its own generator seeded ``base_seed + i``,
so a batch is reproducible from one seed whatever the number of workers. The
dynamic program is shared read-only between threads. Sampling is a
pure-Python loop that holds the GIL, so threads give little speed-up.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, List, Optional

import numpy as np

if TYPE_CHECKING:
    from ..dp.program import Cell
    from ..walk import Walk
    from .base import Program, RandomSource, Walker

logger = logging.getLogger(__name__)

SEED_RANGE = 2**32


def base_seed(rng: "RandomSource") -> int:
    """Seed for walk 0 of a batch; walk ``i`` uses ``base_seed + i``."""
    if rng is None:
        rng = np.random.default_rng()
    if isinstance(rng, np.random.Generator):
        return int(rng.integers(SEED_RANGE))
    return int(rng)


def generate_batch(
    walker: "Walker",
    dp: "Program",
    qty: int,
    target: "Cell",
    time_steps: int,
    rng: "RandomSource" = None,
    *,
    start: Optional["Cell"] = None,
    workers: Optional[int] = None,
) -> List["Walk"]:
    """
    Samples ``qty`` walks and returns them in index order.

    The first failing walk cancels everything still pending and its error is
    re-raised.
    """
    if qty < 0:
        raise ValueError(f"qty must be non-negative, got {qty}")
    if qty == 0:
        return []
    walker.check_program(dp)

    seed = base_seed(rng)
    n_workers = min(qty, workers or os.cpu_count() or 1)
    t_start = time.time()

    if n_workers == 1:
        walks = [
            walker.generate_path(
                dp, target, time_steps, np.random.default_rng(seed + i), start=start
            )
            for i in range(qty)
        ]
    else:
        walks = _generate_parallel(walker, dp, qty, target, time_steps, seed, start, n_workers)

    logger.info(
        "%s: sampled %d walks with %d workers in %.2f s (base seed %d)",
        walker.name(),
        qty,
        n_workers,
        time.time() - t_start,
        seed,
    )
    return walks


def _generate_parallel(walker, dp, qty, target, time_steps, seed, start, n_workers):
    results: List[Optional["Walk"]] = [None] * qty
    error: Optional[BaseException] = None

    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        future_to_index = {
            executor.submit(
                walker.generate_path,
                dp,
                target,
                time_steps,
                np.random.default_rng(seed + i),
                start=start,
            ): i
            for i in range(qty)
        }
        for future in as_completed(future_to_index):
            if future.cancelled():
                continue
            index = future_to_index[future]
            exc = future.exception()
            if exc is None:
                results[index] = future.result()
                continue
            if error is None:
                error = exc
                logger.error("Walk %d of %d failed: %s", index, qty, exc)
                for pending in future_to_index:
                    pending.cancel()

    if error is not None:
        raise error
    return results


__all__ = ["base_seed", "generate_batch"]
