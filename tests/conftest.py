"""Shared fixtures: the 5x5 grid used throughout the walker tests."""

import pytest

from rwalk_sim import (
    CorrelatedRwGenerator,
    DynamicProgramBuilder,
    GridBounds,
    Kernel,
    SimpleRwGenerator,
)

START = (0, 0)
TARGET = (4, 4)
HORIZON = 8


@pytest.fixture
def srw_kernel():
    return Kernel.from_generator(SimpleRwGenerator())


@pytest.fixture
def grid5():
    return GridBounds.from_shape(5, 5)


@pytest.fixture
def scenario_dp(srw_kernel, grid5):
    """5x5 grid, start (0, 0), target (4, 4), horizon 8, simple RW kernel."""
    return (
        DynamicProgramBuilder()
        .bounds(grid5)
        .target(TARGET)
        .start(START)
        .time_limit(HORIZON)
        .kernel(srw_kernel)
        .build()
    )


@pytest.fixture
def scenario_pool(grid5):
    """Same grid with one correlated RW kernel per heading."""
    kernels = Kernel.multiple_from_generator(CorrelatedRwGenerator(persistence=0.5))
    return (
        DynamicProgramBuilder()
        .bounds(grid5)
        .target(TARGET)
        .start(START)
        .time_limit(HORIZON)
        .heading_kernels(kernels)
        .build()
    )
