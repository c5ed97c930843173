"""
Step kernels for lattice random walks.

A ``Kernel`` is an immutable probability mass function over integer
displacements ``(dx, dy)``. It is stored as an odd ``size x size`` matrix
``probabilities[x + r, y + r]`` with ``r = size // 2`` so the centre entry is
the probability of staying in place. The y axis points south, i.e.
``Direction.NORTH`` is ``(0, -1)``.

Kernels are produced by generators (simple, biased, correlated,
biased-correlated and normal-distribution random walks). Generators that
describe heading-dependent movement produce one kernel per ``Direction``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
from scipy.stats import multivariate_normal

from .errors import KernelError, RandomDistributionError

logger = logging.getLogger(__name__)

NORMALIZATION_TOL = 1e-9


###############################################################################
# Directions
###############################################################################


class Direction(Enum):
    """Unit headings on the lattice (y axis pointing south)."""

    NORTH = (0, -1)
    EAST = (1, 0)
    SOUTH = (0, 1)
    WEST = (-1, 0)
    STAY = (0, 0)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @classmethod
    def from_displacement(cls, dx: int, dy: int) -> "Direction":
        """
        Heading class of an arbitrary displacement: the sign of its dominant
        axis. The x axis wins ties, ``(0, 0)`` is ``STAY``.
        """
        if dx == 0 and dy == 0:
            return cls.STAY
        if abs(dx) >= abs(dy):
            return cls.EAST if dx > 0 else cls.WEST
        return cls.SOUTH if dy > 0 else cls.NORTH

    @classmethod
    def parse(cls, value: Union["Direction", str]) -> "Direction":
        if isinstance(value, Direction):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise KernelError(f"Unknown direction: {value!r}") from None


DIRECTIONS: Tuple[Direction, ...] = tuple(Direction)


###############################################################################
# Kernel
###############################################################################


class Kernel:
    """Immutable step distribution over displacements."""

    __slots__ = ("_probabilities", "_name")

    def __init__(
        self,
        probabilities: np.ndarray,
        name: Tuple[str, str] = ("ck", "Custom Kernel"),
    ) -> None:
        probs = np.array(probabilities, dtype=np.float64)
        if probs.ndim != 2 or probs.shape[0] != probs.shape[1]:
            raise KernelError(f"Kernel matrix must be square, got shape {probs.shape}")
        if probs.shape[0] % 2 == 0:
            raise KernelError("Kernel size must be odd")
        probs.flags.writeable = False
        self._probabilities = probs
        self._name = (str(name[0]), str(name[1]))

    # ------------------------------------------------------------------ constructors
    @classmethod
    def from_rows(cls, rows, name: Tuple[str, str] = ("ck", "Custom Kernel")) -> "Kernel":
        """
        Creates a kernel from a matrix written the way it is drawn on screen,
        i.e. ``rows[y][x]`` with north at the top.
        """
        return cls(np.asarray(rows, dtype=np.float64).T, name=name)

    @classmethod
    def from_generator(cls, generator: "KernelGenerator") -> "Kernel":
        kernels = cls.multiple_from_generator(generator)
        if len(kernels) != 1:
            raise KernelError(
                f"{type(generator).__name__} generates {len(kernels)} kernels, use "
                "multiple_from_generator()"
            )
        return kernels[0]

    @classmethod
    def multiple_from_generator(cls, generator: "KernelGenerator") -> List["Kernel"]:
        matrices = generator.generate()
        return [cls(_normalize(m, generator.name()[1]), name=generator.name()) for m in matrices]

    @classmethod
    def stay(cls) -> "Kernel":
        """The kernel that never moves."""
        return cls(np.ones((1, 1)), name=("stay", "Stay"))

    # ------------------------------------------------------------------ properties
    @property
    def probabilities(self) -> np.ndarray:
        return self._probabilities

    @property
    def size(self) -> int:
        return self._probabilities.shape[0]

    @property
    def radius(self) -> int:
        return self.size // 2

    def name(self, short: bool = False) -> str:
        return self._name[0] if short else self._name[1]

    def total(self) -> float:
        return float(self._probabilities.sum())

    # ------------------------------------------------------------------ lookup
    def weight(self, dx: int, dy: int) -> float:
        """Mass of displacement ``(dx, dy)``; 0 outside the kernel window."""
        r = self.radius
        if abs(dx) > r or abs(dy) > r:
            return 0.0
        return float(self._probabilities[dx + r, dy + r])

    def support(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Returns ``(offsets, weights)`` of all displacements with positive mass.
        ``offsets`` has shape ``(n, 2)``.
        """
        xs, ys = np.nonzero(self._probabilities > 0.0)
        offsets = np.column_stack((xs - self.radius, ys - self.radius)).astype(np.int64)
        return offsets, self._probabilities[xs, ys].copy()

    def sample(self, rng: np.random.Generator) -> Tuple[int, int]:
        """Draws one displacement proportional to its mass."""
        offsets, weights = self.support()
        total = weights.sum()
        if offsets.shape[0] == 0 or not np.isfinite(total) or total <= 0.0:
            raise RandomDistributionError(f"{self.name()} has no mass to sample from")
        idx = rng.choice(offsets.shape[0], p=weights / total)
        return int(offsets[idx, 0]), int(offsets[idx, 1])

    def angular_marginal(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Mass per primitive direction of the kernel support, ignoring the stay
        entry. Returns ``(directions, weights)`` with ``directions`` of shape
        ``(m, 2)`` holding primitive integer vectors and ``weights`` summing
        to 1 (empty arrays if the kernel only stays in place).
        """
        offsets, weights = self.support()
        marginal: Dict[Tuple[int, int], float] = {}
        for (dx, dy), w in zip(offsets, weights):
            if dx == 0 and dy == 0:
                continue
            g = math.gcd(int(dx), int(dy))
            key = (int(dx) // g, int(dy) // g)
            marginal[key] = marginal.get(key, 0.0) + float(w)
        if not marginal:
            return np.zeros((0, 2), dtype=np.int64), np.zeros(0)
        keys = sorted(marginal)
        w = np.array([marginal[k] for k in keys])
        return np.array(keys, dtype=np.int64), w / w.sum()

    # ------------------------------------------------------------------ transforms
    def rotate(self, degrees: int) -> "Kernel":
        """Rotates the kernel clockwise by a multiple of 90 degrees."""
        if degrees % 90 != 0:
            raise KernelError("degrees must be a multiple of 90.")
        return Kernel(np.rot90(self._probabilities, k=(degrees // 90) % 4), name=self._name)

    def pad(self, size: int) -> "Kernel":
        """Embeds the kernel in a larger odd window."""
        if size < self.size or size % 2 == 0:
            raise KernelError(f"Cannot pad a kernel of size {self.size} to {size}")
        off = (size - self.size) // 2
        out = np.zeros((size, size))
        out[off : off + self.size, off : off + self.size] = self._probabilities
        return Kernel(out, name=self._name)

    def restrict(self, max_step: int) -> "Kernel":
        """
        Keeps only displacements with ``max(|dx|, |dy|) <= max_step`` and
        renormalises. ``max_step == 0`` gives the stay-only kernel.
        """
        if max_step < 0:
            raise KernelError("max_step must be non-negative")
        if max_step == 0:
            return Kernel.stay()
        if max_step >= self.radius:
            return self
        r = self.radius
        window = self._probabilities[r - max_step : r + max_step + 1, r - max_step : r + max_step + 1]
        return Kernel(_normalize(window, self.name()), name=self._name)

    def normalized(self) -> "Kernel":
        return Kernel(_normalize(self._probabilities, self.name()), name=self._name)

    def __mul__(self, other: "Kernel") -> "Kernel":
        if not isinstance(other, Kernel):
            return NotImplemented
        if self.size != other.size:
            raise KernelError("both kernels must have the same size for multiplication")
        return Kernel(self._probabilities * other._probabilities, name=self._name)

    # ------------------------------------------------------------------ dunder
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Kernel):
            return NotImplemented
        return self.size == other.size and np.allclose(self._probabilities, other._probabilities)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        rows = ["| " + " ".join(f"{v:.4g}" for v in row) + " |" for row in self._probabilities.T]
        return f"{self.name()}\n" + "\n".join(rows)


def _normalize(matrix: np.ndarray, label: str) -> np.ndarray:
    probs = np.asarray(matrix, dtype=np.float64)
    if probs.size == 0:
        raise RandomDistributionError(f"{label}: kernel is empty")
    if not np.all(np.isfinite(probs)) or np.any(probs < 0.0):
        raise RandomDistributionError(f"{label}: kernel has negative or non-finite mass")
    total = probs.sum()
    if total <= 0.0:
        raise RandomDistributionError(f"{label}: kernel mass sums to zero")
    if abs(total - 1.0) > NORMALIZATION_TOL:
        logger.debug("Renormalising %s kernel (sum=%g)", label, total)
    return probs / total


###############################################################################
# Generators
###############################################################################


class KernelGenerator:
    """Produces one or more kernel matrices."""

    short_name = "ck"
    long_name = "Custom Kernel"

    def generate(self) -> List[np.ndarray]:
        raise NotImplementedError

    def generates_qty(self) -> int:
        return 1

    def name(self) -> Tuple[str, str]:
        return self.short_name, self.long_name


def _set(matrix: np.ndarray, dx: int, dy: int, value: float) -> None:
    r = matrix.shape[0] // 2
    matrix[dx + r, dy + r] = value


@dataclass
class SimpleRwGenerator(KernelGenerator):
    """Stay or move to one of the four neighbours, each with probability 0.2."""

    short_name = "srw"
    long_name = "Simple RW"

    def generate(self) -> List[np.ndarray]:
        m = np.zeros((3, 3))
        for d in DIRECTIONS:
            _set(m, d.dx, d.dy, 0.2)
        return [m]


@dataclass
class BiasedRwGenerator(KernelGenerator):
    """Moves towards ``direction`` with ``probability``, the rest is shared evenly."""

    probability: float = 0.5
    direction: Direction = Direction.NORTH

    short_name = "brw"
    long_name = "Biased RW"

    def generate(self) -> List[np.ndarray]:
        if not 0.0 <= self.probability <= 1.0:
            raise KernelError("probability must lie in [0, 1]")
        direction = Direction.parse(self.direction)
        other = (1.0 - self.probability) / 4.0
        m = np.zeros((3, 3))
        for d in DIRECTIONS:
            _set(m, d.dx, d.dy, self.probability if d is direction else other)
        return [m]


@dataclass
class CorrelatedRwGenerator(KernelGenerator):
    """One biased kernel per heading; the walker keeps its heading with ``persistence``."""

    persistence: float = 0.5

    short_name = "crw"
    long_name = "Correlated RW"

    def generate(self) -> List[np.ndarray]:
        return [
            BiasedRwGenerator(probability=self.persistence, direction=d).generate()[0]
            for d in DIRECTIONS
        ]

    def generates_qty(self) -> int:
        return len(DIRECTIONS)


@dataclass
class BiasedCorrelatedRwGenerator(KernelGenerator):
    """Correlated kernels multiplied by a global bias towards ``direction``."""

    probability: float = 0.5
    direction: Direction = Direction.NORTH
    persistence: float = 0.5

    short_name = "bcrw"
    long_name = "Biased and correlated RW"

    def generate(self) -> List[np.ndarray]:
        biased = BiasedRwGenerator(self.probability, self.direction).generate()[0]
        correlated = CorrelatedRwGenerator(self.persistence).generate()
        return [m * biased for m in correlated]

    def generates_qty(self) -> int:
        return len(DIRECTIONS)


@dataclass
class NormalDistGenerator(KernelGenerator):
    """Isotropic bivariate normal with variance ``diffusion`` on a ``size x size`` window."""

    diffusion: float = 1.0
    size: int = 21

    short_name = "nd"
    long_name = "Normal Distribution"

    def generate(self) -> List[np.ndarray]:
        if self.size <= 0 or self.size % 2 == 0:
            raise KernelError("size must be a positive odd number")
        if not self.diffusion > 0.0:
            raise RandomDistributionError("diffusion must be positive")
        r = self.size // 2
        xs, ys = np.meshgrid(np.arange(-r, r + 1), np.arange(-r, r + 1), indexing="ij")
        pts = np.stack((xs, ys), axis=-1).astype(np.float64)
        dist = multivariate_normal(mean=[0.0, 0.0], cov=self.diffusion * np.eye(2))
        return [np.asarray(dist.pdf(pts), dtype=np.float64).reshape(self.size, self.size)]


GENERATORS: Dict[str, type] = {
    "srw": SimpleRwGenerator,
    "brw": BiasedRwGenerator,
    "crw": CorrelatedRwGenerator,
    "bcrw": BiasedCorrelatedRwGenerator,
    "nd": NormalDistGenerator,
}


def build_kernel(
    generator: Union[str, KernelGenerator, type],
    parameters: Optional[Mapping[str, Any]] = None,
) -> Union[Kernel, List[Kernel]]:
    """
    Builds a kernel from a generator name (``"srw"``, ``"brw"``, ``"crw"``,
    ``"bcrw"``, ``"nd"``), a generator class, or a generator instance.

    Generators producing one kernel per heading return a list ordered like
    ``Direction``.
    """
    params = dict(parameters or {})
    if "direction" in params:
        params["direction"] = Direction.parse(params["direction"])
    if isinstance(generator, KernelGenerator):
        gen = generator
    else:
        cls = GENERATORS.get(generator) if isinstance(generator, str) else generator
        if cls is None:
            raise KernelError(f"Unknown kernel generator: {generator!r}")
        try:
            gen = cls(**params)
        except TypeError as exc:
            raise KernelError(f"Invalid parameters for {generator!r}: {exc}") from exc
    if gen.generates_qty() == 1:
        return Kernel.from_generator(gen)
    return Kernel.multiple_from_generator(gen)


def kernels_by_direction(kernels: List[Kernel]) -> Dict[Direction, Kernel]:
    """Keys a list produced by a heading generator by ``Direction``."""
    if len(kernels) != len(DIRECTIONS):
        raise KernelError(f"Expected {len(DIRECTIONS)} kernels, got {len(kernels)}")
    return dict(zip(DIRECTIONS, kernels))


__all__ = [
    "Direction",
    "DIRECTIONS",
    "Kernel",
    "KernelGenerator",
    "SimpleRwGenerator",
    "BiasedRwGenerator",
    "CorrelatedRwGenerator",
    "BiasedCorrelatedRwGenerator",
    "NormalDistGenerator",
    "GENERATORS",
    "build_kernel",
    "kernels_by_direction",
]
