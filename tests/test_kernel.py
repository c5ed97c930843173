"""
Unit tests for kernels, directions and kernel generators.
"""

import numpy as np
import pytest

from rwalk_sim import (
    BiasedCorrelatedRwGenerator,
    BiasedRwGenerator,
    CorrelatedRwGenerator,
    Direction,
    Kernel,
    KernelError,
    NormalDistGenerator,
    RandomDistributionError,
    SimpleRwGenerator,
    build_kernel,
)
from rwalk_sim.kernel import kernels_by_direction


def test_simple_rw_kernel():
    """Five-point kernel with 0.2 on stay and each neighbour."""
    k = Kernel.from_generator(SimpleRwGenerator())
    assert k.size == 3
    assert k.radius == 1
    for dx, dy in [(0, 0), (1, 0), (-1, 0), (0, 1), (0, -1)]:
        assert k.weight(dx, dy) == pytest.approx(0.2)
    assert k.weight(1, 1) == 0.0
    assert k.weight(5, 0) == 0.0
    assert k.total() == pytest.approx(1.0)
    assert k.name(short=True) == "srw"
    assert k.name() == "Simple RW"


def test_kernel_is_read_only():
    k = Kernel.from_generator(SimpleRwGenerator())
    with pytest.raises(ValueError):
        k.probabilities[0, 0] = 1.0


def test_biased_rw_kernel():
    k = Kernel.from_generator(BiasedRwGenerator(probability=0.6, direction=Direction.EAST))
    assert k.weight(1, 0) == pytest.approx(0.6)
    assert k.weight(-1, 0) == pytest.approx(0.1)
    assert k.weight(0, -1) == pytest.approx(0.1)
    assert k.weight(0, 0) == pytest.approx(0.1)


@pytest.mark.parametrize("shape", [(2, 2), (3, 5), (4, 4)])
def test_kernel_rejects_bad_shapes(shape):
    with pytest.raises(KernelError):
        Kernel(np.ones(shape))


def test_from_rows_uses_screen_layout():
    """Row 0 is the northern row, so its centre entry is the step north."""
    k = Kernel.from_rows([[0, 1, 0], [0, 0, 0], [0, 0, 0]])
    assert k.weight(0, -1) == 1.0
    assert k.weight(0, 1) == 0.0


def test_rotate_clockwise():
    north = Kernel.from_generator(BiasedRwGenerator(probability=0.6, direction=Direction.NORTH))
    east = Kernel.from_generator(BiasedRwGenerator(probability=0.6, direction=Direction.EAST))
    south = Kernel.from_generator(BiasedRwGenerator(probability=0.6, direction=Direction.SOUTH))
    assert north.rotate(90) == east
    assert north.rotate(180) == south
    assert north.rotate(360) == north
    with pytest.raises(KernelError):
        north.rotate(45)


def test_correlated_generator_yields_one_kernel_per_heading():
    kernels = Kernel.multiple_from_generator(CorrelatedRwGenerator(persistence=0.7))
    assert len(kernels) == 5
    by_heading = kernels_by_direction(kernels)
    assert by_heading[Direction.EAST].weight(1, 0) == pytest.approx(0.7)
    assert by_heading[Direction.STAY].weight(0, 0) == pytest.approx(0.7)
    with pytest.raises(KernelError):
        Kernel.from_generator(CorrelatedRwGenerator())


def test_biased_correlated_generator_is_normalised():
    kernels = Kernel.multiple_from_generator(BiasedCorrelatedRwGenerator())
    assert len(kernels) == 5
    for k in kernels:
        assert k.total() == pytest.approx(1.0)
    # north-heading kernel with a northern bias favours north even more
    north = kernels_by_direction(kernels)[Direction.NORTH]
    assert north.weight(0, -1) > 0.5


def test_normal_distribution_kernel():
    k = Kernel.from_generator(NormalDistGenerator(diffusion=1.0, size=5))
    p = k.probabilities
    assert k.size == 5
    assert k.total() == pytest.approx(1.0)
    assert np.argmax(p) == 12  # centre of a 5x5 window
    assert np.allclose(p, p.T)
    assert np.allclose(p, p[::-1, :])


def test_normal_distribution_rejects_bad_parameters():
    with pytest.raises(KernelError):
        Kernel.from_generator(NormalDistGenerator(size=4))
    with pytest.raises(RandomDistributionError):
        Kernel.from_generator(NormalDistGenerator(diffusion=0.0, size=5))


def test_restrict():
    k = Kernel.from_generator(NormalDistGenerator(diffusion=2.0, size=5))
    small = k.restrict(1)
    assert small.size == 3
    assert small.total() == pytest.approx(1.0)
    assert k.restrict(2) is k
    assert k.restrict(0) == Kernel.stay()


def test_pad_keeps_mass():
    k = Kernel.from_generator(SimpleRwGenerator())
    padded = k.pad(7)
    assert padded.size == 7
    assert padded.weight(1, 0) == pytest.approx(0.2)
    assert padded.total() == pytest.approx(1.0)
    with pytest.raises(KernelError):
        k.pad(4)


def test_multiplication_is_elementwise():
    k = Kernel.from_generator(SimpleRwGenerator())
    product = k * k
    assert product.weight(0, 0) == pytest.approx(0.04)
    assert product.total() == pytest.approx(0.2)
    assert product.normalized() == k
    with pytest.raises(KernelError):
        k * k.pad(5)


def test_support_and_sample():
    k = Kernel.from_generator(BiasedRwGenerator(probability=1.0, direction=Direction.WEST))
    offsets, weights = k.support()
    assert offsets.tolist() == [[-1, 0]]
    assert weights.tolist() == [1.0]
    assert k.sample(np.random.default_rng(0)) == (-1, 0)


def test_angular_marginal():
    k = Kernel.from_generator(SimpleRwGenerator())
    directions, weights = k.angular_marginal()
    assert directions.tolist() == [[-1, 0], [0, -1], [0, 1], [1, 0]]
    assert np.allclose(weights, 0.25)

    # (2, 0) and (1, 0) share a primitive direction
    m = np.zeros((5, 5))
    m[2 + 1, 2] = 0.25
    m[2 + 2, 2] = 0.25
    m[2, 2 - 1] = 0.5
    directions, weights = Kernel(m).angular_marginal()
    assert directions.tolist() == [[0, -1], [1, 0]]
    assert np.allclose(weights, [0.5, 0.5])

    directions, weights = Kernel.stay().angular_marginal()
    assert directions.shape == (0, 2)


@pytest.mark.parametrize(
    "displacement, expected",
    [
        ((0, 0), Direction.STAY),
        ((2, 1), Direction.EAST),
        ((1, -2), Direction.NORTH),
        ((-1, 1), Direction.WEST),
        ((0, 3), Direction.SOUTH),
    ],
)
def test_direction_from_displacement(displacement, expected):
    assert Direction.from_displacement(*displacement) is expected


def test_build_kernel_from_parameters():
    k = build_kernel("brw", {"probability": 0.7, "direction": "south"})
    assert k.weight(0, 1) == pytest.approx(0.7)
    assert len(build_kernel("crw", {"persistence": 0.4})) == 5
    with pytest.raises(KernelError):
        build_kernel("levy")
    with pytest.raises(KernelError):
        build_kernel("srw", {"bogus": 1})
