"""
Builder for reachability fields.

The builder owns the backward-induction recurrence. Starting from the target
indicator at ``t = horizon`` it computes, for ``t = horizon - 1 .. 0``::

    field[t][c] = p(c) * sum_d K_type(c)(d) * field[t + 1][land(c + d)] / Z(c)

where ``p`` is the per-cell field probability (0 on barriers), ``land``
applies the boundary policy and ``Z(c)`` is the in-bounds, passable kernel
mass at ``c`` (1 when renormalisation is disabled). The cost is
``O(horizon * grid_area * kernel_support)``; the loops are compiled with
numba.

Heading-dependent kernels (correlated walks) are computed jointly, one field
per heading ``h``::

    field_h[t][c] = p(c) * sum_d K_h(d) * field_dir(d)[t + 1][land(c + d)] / Z_h(c)

and returned as a ``DynamicProgramPool`` keyed by ``Direction``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
from numba import njit

from ..errors import (
    BarrierOutOfRange,
    DynamicProgramBuilderError,
    MissingFieldTypeKernel,
    MissingHeadingKernel,
    NoKernelSet,
    NoPathExists,
    NoTimeLimitSet,
    RequiresMultipleDynamicPrograms,
    RequiresSingleDynamicProgram,
    TargetOutOfRange,
    WrongSizeOfFieldProbabilities,
)
from ..kernel import Direction, Kernel, kernels_by_direction
from .pool import DynamicProgramPool
from .program import BoundaryPolicy, Cell, DynamicProgram, GridBounds

logger = logging.getLogger(__name__)


###############################################################################
# Numba recurrences
###############################################################################


@njit(cache=True)
def _reflect_index(v: int, n: int) -> int:
    if v < 0:
        v = -v
    elif v >= n:
        v = 2 * (n - 1) - v
    if v < 0:
        return 0
    if v >= n:
        return n - 1
    return v


@njit(cache=True, boundscheck=False)
def _backward_pass(
    table: np.ndarray,
    kernels: np.ndarray,
    type_index: np.ndarray,
    field_probs: np.ndarray,
    reflect: bool,
    renormalize: bool,
) -> None:
    """
    Fills ``table[:-1]`` in place from the terminal slice ``table[-1]``.

    ``kernels`` is a stack ``(n_types, ks, ks)`` and ``type_index`` maps each
    cell to its kernel in the stack.
    """
    horizon = table.shape[0] - 1
    width = table.shape[1]
    height = table.shape[2]
    ks = kernels.shape[1]
    r = ks // 2

    for t in range(horizon - 1, -1, -1):
        for ix in range(width):
            for iy in range(height):
                p = field_probs[ix, iy]
                if p <= 0.0:
                    table[t, ix, iy] = 0.0
                    continue
                k = type_index[ix, iy]
                total = 0.0
                norm = 0.0
                for a in range(ks):
                    for b in range(ks):
                        w = kernels[k, a, b]
                        if w <= 0.0:
                            continue
                        nx = ix + a - r
                        ny = iy + b - r
                        if nx < 0 or nx >= width or ny < 0 or ny >= height:
                            if not reflect:
                                continue
                            nx = _reflect_index(nx, width)
                            ny = _reflect_index(ny, height)
                        if field_probs[nx, ny] <= 0.0:
                            continue
                        norm += w
                        total += w * table[t + 1, nx, ny]
                if renormalize:
                    if norm > 0.0:
                        total /= norm
                    else:
                        total = 0.0
                table[t, ix, iy] = total * p


@njit(cache=True, boundscheck=False)
def _backward_pass_coupled(
    table: np.ndarray,
    kernels: np.ndarray,
    heading_of: np.ndarray,
    field_probs: np.ndarray,
    reflect: bool,
    renormalize: bool,
) -> None:
    """
    Heading-coupled variant: ``table`` is ``(n_headings, horizon + 1, W, H)``,
    ``kernels`` is ``(n_headings, ks, ks)`` and ``heading_of[a, b]`` is the
    heading reached by the kernel offset ``(a - r, b - r)``.
    """
    n_headings = table.shape[0]
    horizon = table.shape[1] - 1
    width = table.shape[2]
    height = table.shape[3]
    ks = kernels.shape[1]
    r = ks // 2

    for t in range(horizon - 1, -1, -1):
        for h in range(n_headings):
            for ix in range(width):
                for iy in range(height):
                    p = field_probs[ix, iy]
                    if p <= 0.0:
                        table[h, t, ix, iy] = 0.0
                        continue
                    total = 0.0
                    norm = 0.0
                    for a in range(ks):
                        for b in range(ks):
                            w = kernels[h, a, b]
                            if w <= 0.0:
                                continue
                            nx = ix + a - r
                            ny = iy + b - r
                            if nx < 0 or nx >= width or ny < 0 or ny >= height:
                                if not reflect:
                                    continue
                                nx = _reflect_index(nx, width)
                                ny = _reflect_index(ny, height)
                            if field_probs[nx, ny] <= 0.0:
                                continue
                            norm += w
                            total += w * table[heading_of[a, b], t + 1, nx, ny]
                    if renormalize:
                        if norm > 0.0:
                            total /= norm
                        else:
                            total = 0.0
                    table[h, t, ix, iy] = total * p


###############################################################################
# Builder
###############################################################################


@dataclass
class DynamicProgramConfig:
    """Grid, horizon and edge handling of a dynamic program."""

    horizon: Optional[int] = None
    target: Cell = (0, 0)
    bounds: Optional[GridBounds] = None  # defaults to GridBounds.centered(horizon)
    start: Optional[Cell] = None
    boundary: BoundaryPolicy = BoundaryPolicy.DISCARD
    renormalize: bool = True
    field_types: Optional[np.ndarray] = None
    field_probabilities: Optional[np.ndarray] = None
    barriers: List[Cell] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.boundary = BoundaryPolicy(self.boundary)


class DynamicProgramBuilder:
    """
    Assembles a ``DynamicProgram`` (one kernel per field type) or a
    ``DynamicProgramPool`` (one kernel per heading).

    Typical use::

        dp = (
            DynamicProgramBuilder()
            .bounds(GridBounds.from_shape(5, 5))
            .target((4, 4))
            .time_limit(8)
            .kernel(Kernel.from_generator(SimpleRwGenerator()))
            .build()
        )
    """

    def __init__(self, config: DynamicProgramConfig | None = None) -> None:
        self.config = config or DynamicProgramConfig()
        self._kernels_by_type: Optional[Dict[int, Kernel]] = None
        self._heading_kernels: Optional[Dict[Direction, Kernel]] = None

    # ------------------------------------------------------------------ options
    def time_limit(self, horizon: int) -> "DynamicProgramBuilder":
        self.config.horizon = horizon
        return self

    def bounds(self, bounds: GridBounds) -> "DynamicProgramBuilder":
        self.config.bounds = bounds
        return self

    def target(self, target: Cell) -> "DynamicProgramBuilder":
        self.config.target = (int(target[0]), int(target[1]))
        return self

    def start(self, start: Cell) -> "DynamicProgramBuilder":
        self.config.start = (int(start[0]), int(start[1]))
        return self

    def boundary(self, policy: Union[BoundaryPolicy, str]) -> "DynamicProgramBuilder":
        self.config.boundary = BoundaryPolicy(policy)
        return self

    def renormalize(self, enabled: bool = True) -> "DynamicProgramBuilder":
        self.config.renormalize = enabled
        return self

    def kernel(self, kernel: Kernel) -> "DynamicProgramBuilder":
        return self.kernels_by_type({0: kernel})

    def kernels_by_type(self, kernels: Mapping[int, Kernel]) -> "DynamicProgramBuilder":
        self._kernels_by_type = {int(k): v for k, v in kernels.items()}
        return self

    def heading_kernels(
        self, kernels: Union[Mapping[Direction, Kernel], Sequence[Kernel]]
    ) -> "DynamicProgramBuilder":
        """Per-heading kernels, as a mapping or a list ordered like ``Direction``."""
        if isinstance(kernels, Mapping):
            self._heading_kernels = {Direction.parse(k): v for k, v in kernels.items()}
        else:
            self._heading_kernels = kernels_by_direction(list(kernels))
        return self

    def field_types(self, field_types: np.ndarray) -> "DynamicProgramBuilder":
        self.config.field_types = np.asarray(field_types, dtype=np.int64)
        return self

    def field_probabilities(self, probabilities: np.ndarray) -> "DynamicProgramBuilder":
        self.config.field_probabilities = np.asarray(probabilities, dtype=np.float64)
        return self

    def add_single_barrier(self, at: Cell) -> "DynamicProgramBuilder":
        self.config.barriers.append((int(at[0]), int(at[1])))
        return self

    def add_rect_barrier(self, corner_a: Cell, corner_b: Cell) -> "DynamicProgramBuilder":
        """Blocks every cell of the inclusive rectangle spanned by two corners."""
        x0, x1 = sorted((corner_a[0], corner_b[0]))
        y0, y1 = sorted((corner_a[1], corner_b[1]))
        for x in range(x0, x1 + 1):
            for y in range(y0, y1 + 1):
                self.config.barriers.append((x, y))
        return self

    # ------------------------------------------------------------------ build
    def build(self, walker=None) -> Union[DynamicProgram, DynamicProgramPool]:
        """
        Computes the field.

        If ``walker`` is given, the kernel configuration is checked against the
        walker first (a pool for walkers that need one, a single program
        otherwise).
        """
        cfg = self.config
        multi = self._heading_kernels is not None
        if walker is not None:
            if walker.requires_pool and not multi:
                raise RequiresMultipleDynamicPrograms(
                    f"{walker.name()} needs per-heading kernels, got a single kernel set"
                )
            if not walker.requires_pool and multi:
                raise RequiresSingleDynamicProgram(
                    f"{walker.name()} needs a single dynamic program, got per-heading kernels"
                )

        if cfg.horizon is None:
            raise NoTimeLimitSet("a time limit must be set")
        if cfg.horizon < 0:
            raise NoTimeLimitSet(f"time limit must be non-negative, got {cfg.horizon}")
        if self._kernels_by_type is None and self._heading_kernels is None:
            raise NoKernelSet("a kernel must be set")
        if self._kernels_by_type is not None and self._heading_kernels is not None:
            raise DynamicProgramBuilderError(
                "set either field-type kernels or heading kernels, not both"
            )

        bounds = cfg.bounds if cfg.bounds is not None else GridBounds.centered(cfg.horizon)
        target = (int(cfg.target[0]), int(cfg.target[1]))
        if not bounds.contains(*target):
            raise TargetOutOfRange(f"target {target} lies outside {bounds}")
        if cfg.start is not None and not bounds.contains(*cfg.start):
            raise TargetOutOfRange(f"start {cfg.start} lies outside {bounds}")

        field_probs = self._field_probabilities(bounds)
        if field_probs[bounds.index(*target)] <= 0.0:
            raise DynamicProgramBuilderError(f"target {target} is blocked")

        start_time = time.time()
        if multi:
            result = self._build_pool(bounds, target, field_probs)
            programs = [p for _, p in result.items()]
        else:
            result = self._build_single(bounds, target, field_probs)
            programs = [result]
        elapsed = time.time() - start_time
        logger.info(
            "Computed dynamic program: grid %dx%d, horizon %d, %s in %.3fs",
            bounds.width,
            bounds.height,
            cfg.horizon,
            "pool" if multi else "single",
            elapsed,
        )

        if cfg.start is not None:
            if walker is not None:
                mass = walker._start_mass(result, cfg.start, 0)
            elif multi and Direction.STAY in result:
                # the heading a correlated walk starts from by default
                mass = result[Direction.STAY].at(*cfg.start, 0)
            else:
                mass = max(p.at(*cfg.start, 0) for p in programs)
            if mass <= 0.0:
                raise NoPathExists(
                    f"target {target} is unreachable from {cfg.start} in {cfg.horizon} steps"
                )
        return result

    # ------------------------------------------------------------------ helpers
    def _field_probabilities(self, bounds: GridBounds) -> np.ndarray:
        cfg = self.config
        if cfg.field_probabilities is None:
            probs = np.ones(bounds.shape, dtype=np.float64)
        else:
            probs = np.array(cfg.field_probabilities, dtype=np.float64)
            if probs.shape != bounds.shape:
                raise WrongSizeOfFieldProbabilities(
                    f"field probabilities must have shape {bounds.shape}, got {probs.shape}"
                )
            if not np.all(np.isfinite(probs)) or np.any(probs < 0.0) or np.any(probs > 1.0):
                raise DynamicProgramBuilderError("field probabilities must lie in [0, 1]")
        for x, y in cfg.barriers:
            if not bounds.contains(x, y):
                raise BarrierOutOfRange(f"barrier {(x, y)} lies outside {bounds}")
            probs[bounds.index(x, y)] = 0.0
        return probs

    def _terminal_table(self, bounds: GridBounds, target: Cell, *lead: int) -> np.ndarray:
        table = np.zeros((*lead, self.config.horizon + 1, bounds.width, bounds.height))
        ix, iy = bounds.index(*target)
        table[..., self.config.horizon, ix, iy] = 1.0
        return table

    def _build_single(
        self, bounds: GridBounds, target: Cell, field_probs: np.ndarray
    ) -> DynamicProgram:
        cfg = self.config
        kernels = self._kernels_by_type
        if cfg.field_types is None:
            field_types = np.full(bounds.shape, min(kernels), dtype=np.int64)
        else:
            field_types = np.asarray(cfg.field_types, dtype=np.int64)
            if field_types.shape != bounds.shape:
                raise DynamicProgramBuilderError(
                    f"field types must have shape {bounds.shape}, got {field_types.shape}"
                )
        used = sorted(set(np.unique(field_types).tolist()))
        missing = [t for t in used if t not in kernels]
        if missing:
            raise MissingFieldTypeKernel(f"no kernel for field types {missing}")

        ordered = sorted(kernels)
        stack = _stack_kernels([kernels[t] for t in ordered])
        lookup = {t: i for i, t in enumerate(ordered)}
        type_index = np.vectorize(lookup.__getitem__, otypes=[np.int64])(field_types)

        table = self._terminal_table(bounds, target)
        _backward_pass(
            table,
            stack,
            np.ascontiguousarray(type_index),
            field_probs,
            cfg.boundary is BoundaryPolicy.REFLECT,
            cfg.renormalize,
        )
        return DynamicProgram(
            table,
            bounds,
            target,
            kernels,
            field_types,
            field_probs,
            boundary=cfg.boundary,
            renormalize=cfg.renormalize,
            start=cfg.start,
        )

    def _build_pool(
        self, bounds: GridBounds, target: Cell, field_probs: np.ndarray
    ) -> DynamicProgramPool:
        cfg = self.config
        if cfg.field_types is not None and np.unique(cfg.field_types).size > 1:
            raise DynamicProgramBuilderError("heading kernels cannot be combined with field types")
        headings = list(self._heading_kernels)
        kernels = [self._heading_kernels[h] for h in headings]
        stack = _stack_kernels(kernels)
        ks = stack.shape[1]
        r = ks // 2

        position = {h: i for i, h in enumerate(headings)}
        heading_of = np.zeros((ks, ks), dtype=np.int64)
        needed = np.any(stack > 0.0, axis=0)
        for a in range(ks):
            for b in range(ks):
                heading = Direction.from_displacement(a - r, b - r)
                if heading in position:
                    heading_of[a, b] = position[heading]
                elif needed[a, b]:
                    raise MissingHeadingKernel(f"no kernel for heading {heading.name}")

        table = self._terminal_table(bounds, target, len(headings))
        _backward_pass_coupled(
            table,
            stack,
            heading_of,
            field_probs,
            cfg.boundary is BoundaryPolicy.REFLECT,
            cfg.renormalize,
        )
        pool = DynamicProgramPool()
        for h, kernel in zip(headings, kernels):
            pool.insert(
                h,
                DynamicProgram(
                    table[position[h]],
                    bounds,
                    target,
                    {0: kernel},
                    None,
                    field_probs,
                    boundary=cfg.boundary,
                    renormalize=cfg.renormalize,
                    start=cfg.start,
                    key=h,
                ),
            )
        return pool


def _stack_kernels(kernels: Sequence[Kernel]) -> np.ndarray:
    size = max(k.size for k in kernels)
    return np.ascontiguousarray(np.stack([k.pad(size).probabilities for k in kernels]))


def build_dynamic_program(
    bounds: GridBounds,
    target: Cell,
    horizon: int,
    kernels_by_type: Union[Kernel, Mapping[int, Kernel]],
    obstacles: Iterable[Cell] = (),
    *,
    field_types: Optional[np.ndarray] = None,
    field_probabilities: Optional[np.ndarray] = None,
    boundary: Union[BoundaryPolicy, str] = BoundaryPolicy.DISCARD,
    renormalize: bool = True,
    start: Optional[Cell] = None,
) -> DynamicProgram:
    """Functional shortcut around ``DynamicProgramBuilder`` for single programs."""
    if isinstance(kernels_by_type, Kernel):
        kernels_by_type = {0: kernels_by_type}
    config = DynamicProgramConfig(
        horizon=horizon,
        target=target,
        bounds=bounds,
        start=start,
        boundary=BoundaryPolicy(boundary),
        renormalize=renormalize,
        field_types=field_types,
        field_probabilities=field_probabilities,
        barriers=[(int(x), int(y)) for x, y in obstacles],
    )
    return DynamicProgramBuilder(config).kernels_by_type(kernels_by_type).build()


__all__ = [
    "DynamicProgramBuilder",
    "DynamicProgramConfig",
    "build_dynamic_program",
]
