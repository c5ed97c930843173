"""
Unit tests for DynamicProgramPool and the heading-coupled recurrence.
"""

import logging

import pytest

from rwalk_sim import (
    CorrelatedRwGenerator,
    CorrelatedWalker,
    Direction,
    DynamicProgramBuilder,
    DynamicProgramPool,
    GridBounds,
    Kernel,
    MissingHeadingKernel,
    NoPathExists,
    PoolInconsistencyError,
    build_dynamic_program,
)
from rwalk_sim.kernel import kernels_by_direction


def test_pool_is_keyed_by_direction(scenario_pool):
    assert isinstance(scenario_pool, DynamicProgramPool)
    assert len(scenario_pool) == 5
    assert set(scenario_pool.keys()) == set(Direction)
    assert scenario_pool.horizon == 8
    assert scenario_pool.target == (4, 4)
    assert scenario_pool.start == (0, 0)
    assert scenario_pool.bounds == GridBounds.from_shape(5, 5)
    for heading, program in scenario_pool.items():
        assert program.key is heading
        assert program.kernel.weight(heading.dx, heading.dy) == pytest.approx(0.5)
        program.check_invariants()


def test_coupled_recurrence_last_step(scenario_pool):
    """
    From (4, 3) the only way to the target is the step south; the east
    neighbour is off the grid, so each heading keeps 0.875 of its mass.
    """
    south = scenario_pool[Direction.SOUTH]
    north = scenario_pool[Direction.NORTH]
    assert south.at(4, 3, 7) == pytest.approx(0.5 / 0.875)
    assert north.at(4, 3, 7) == pytest.approx(0.125 / 0.875)


def test_coupled_recurrence_two_steps(scenario_pool):
    """f_h[6] at (4, 2) sums over the heading reached after the first step."""
    f7_south = scenario_pool[Direction.SOUTH].at(4, 3, 7)
    f7_stay = scenario_pool[Direction.STAY].at(4, 2, 7)
    assert f7_stay == 0.0
    # heading SOUTH from (4, 2): stay (0.125) or south (0.5); east is off the grid
    expected = (0.5 * f7_south + 0.125 * f7_stay) / 0.875
    assert scenario_pool[Direction.SOUTH].at(4, 2, 6) == pytest.approx(expected)


def test_insert_checks_consistency(srw_kernel, grid5):
    a = build_dynamic_program(grid5, (4, 4), 8, srw_kernel)
    b = build_dynamic_program(grid5, (4, 4), 9, srw_kernel)
    c = build_dynamic_program(grid5, (3, 3), 8, srw_kernel)
    pool = DynamicProgramPool({"a": a})
    assert pool.get("a") is a
    assert pool.get("missing") is None
    assert "a" in pool
    with pytest.raises(PoolInconsistencyError):
        pool.insert("b", b)
    with pytest.raises(PoolInconsistencyError):
        pool.insert("c", c)
    assert len(pool) == 1


def test_replacing_a_key_warns(srw_kernel, grid5, caplog):
    a = build_dynamic_program(grid5, (4, 4), 8, srw_kernel)
    pool = DynamicProgramPool({"a": a})
    with caplog.at_level(logging.WARNING, logger="rwalk_sim.dp.pool"):
        pool.insert("a", a)
    assert "Replacing dynamic program" in caplog.text


def test_empty_pool_has_no_shape():
    pool = DynamicProgramPool()
    with pytest.raises(PoolInconsistencyError):
        pool.horizon


def test_missing_heading_kernel(srw_kernel, grid5):
    builder = (
        DynamicProgramBuilder()
        .bounds(grid5)
        .target((4, 4))
        .time_limit(4)
        .heading_kernels({Direction.STAY: srw_kernel, Direction.NORTH: srw_kernel})
    )
    with pytest.raises(MissingHeadingKernel):
        builder.build()


def test_heading_kernels_by_name(grid5):
    stay = Kernel.stay()
    pool = (
        DynamicProgramBuilder()
        .bounds(grid5)
        .target((4, 4))
        .time_limit(2)
        .heading_kernels({"stay": stay})
        .build()
    )
    assert list(pool.keys()) == [Direction.STAY]
    assert pool[Direction.STAY].at(4, 4, 0) == 1.0
    assert pool[Direction.STAY].at(3, 4, 0) == 0.0


def _pool_builder_with_stuck_stay(grid5):
    kernels = kernels_by_direction(
        Kernel.multiple_from_generator(CorrelatedRwGenerator(persistence=0.5))
    )
    kernels[Direction.STAY] = Kernel.stay()
    return (
        DynamicProgramBuilder()
        .bounds(grid5)
        .target((4, 4))
        .start((0, 0))
        .time_limit(8)
        .heading_kernels(kernels)
    )


def test_pool_start_check_uses_the_starting_heading(grid5):
    # a walker starting with heading STAY can never leave (0, 0)
    with pytest.raises(NoPathExists):
        _pool_builder_with_stuck_stay(grid5).build()
    with pytest.raises(NoPathExists):
        _pool_builder_with_stuck_stay(grid5).build(CorrelatedWalker())

    walker = CorrelatedWalker(initial_heading=Direction.EAST)
    pool = _pool_builder_with_stuck_stay(grid5).build(walker)
    assert pool[Direction.STAY].at(0, 0, 0) == 0.0
    assert pool[Direction.EAST].at(0, 0, 0) > 0.0
    walk = walker.generate_path(pool, (4, 4), 8, 0)
    assert walk.start == (0, 0)
    assert walk.end == (4, 4)
