"""
Unit tests for the dynamic program builder and the reachability field.
"""

import numpy as np
import pytest

from rwalk_sim import (
    BarrierOutOfRange,
    BoundaryPolicy,
    CorrelatedWalker,
    DynamicProgram,
    DynamicProgramBuilder,
    DynamicProgramBuilderError,
    DynamicProgramConfig,
    GridBounds,
    Kernel,
    MissingFieldTypeKernel,
    NoKernelSet,
    NoPathExists,
    NoTimeLimitSet,
    RequiresMultipleDynamicPrograms,
    RequiresSingleDynamicProgram,
    StandardWalker,
    TargetOutOfRange,
    WrongSizeOfFieldProbabilities,
    build_dynamic_program,
)
from rwalk_sim.kernel import CorrelatedRwGenerator


def _builder(srw_kernel, grid5, horizon=8):
    return DynamicProgramBuilder().bounds(grid5).target((4, 4)).time_limit(horizon).kernel(srw_kernel)


def test_table_layout(scenario_dp):
    """(horizon + 1, W, H), C-contiguous, read-only, terminal slice is the target indicator."""
    table = scenario_dp.table
    assert table.shape == (9, 5, 5)
    assert table.flags.c_contiguous
    assert not table.flags.writeable
    with pytest.raises(ValueError):
        table[0, 0, 0] = 1.0

    terminal = np.zeros((5, 5))
    terminal[4, 4] = 1.0
    assert np.array_equal(scenario_dp.slice(8), terminal)
    assert np.all(table >= 0.0)
    assert np.all(table <= 1.0 + 1e-12)
    scenario_dp.check_invariants()


def test_reachability_matches_distance(scenario_dp):
    """A cell has mass at time t iff its distance to the target fits into the steps left."""
    bounds = scenario_dp.bounds
    for t in range(9):
        for x in range(5):
            for y in range(5):
                distance = abs(4 - x) + abs(4 - y)
                reachable = distance <= 8 - t
                assert (scenario_dp.at(x, y, t) > 0.0) == reachable, (x, y, t)
    assert scenario_dp.at(-1, 0, 0) == 0.0
    assert scenario_dp.at(0, 0, 9) == 0.0
    assert bounds.shape == (5, 5)


def test_last_step_values(srw_kernel, grid5):
    """One step before the horizon the field is the (renormalised) kernel mass towards the target."""
    dp = _builder(srw_kernel, grid5).build()
    # (4, 3) has one neighbour off the grid: in-bounds mass is 0.8
    assert dp.at(4, 3, 7) == pytest.approx(0.2 / 0.8)
    assert dp.at(4, 4, 7) == pytest.approx(0.2 / 0.6)

    raw = _builder(srw_kernel, grid5).renormalize(False).build()
    assert raw.at(4, 3, 7) == pytest.approx(0.2)
    assert raw.at(4, 4, 7) == pytest.approx(0.2)


def test_reflect_policy(srw_kernel, grid5):
    dp = _builder(srw_kernel, grid5).boundary(BoundaryPolicy.REFLECT).build()
    assert dp.boundary is BoundaryPolicy.REFLECT
    # (4, 3): the step east is mirrored onto (3, 3), no mass is lost
    assert dp.at(4, 3, 7) == pytest.approx(0.2)
    # (4, 4): both steps off the grid are mirrored back, east onto (3, 4), south onto (4, 3)
    assert dp.at(4, 4, 7) == pytest.approx(0.2)
    assert dp.landing(5, 3) == (3, 3)
    assert dp.landing(-1, 0) == (1, 0)

    discard = _builder(srw_kernel, grid5).build()
    assert discard.landing(5, 3) is None


def test_grid_bounds():
    bounds = GridBounds.centered(3)
    assert bounds.as_tuple() == (-3, -3, 3, 3)
    assert bounds.shape == (7, 7)
    assert bounds.index(-3, 0) == (0, 3)
    assert bounds.cell(0, 3) == (-3, 0)
    assert bounds.reflect(-5, 4) == (-1, 2)
    # mirrored past the far edge, then clamped
    assert bounds.reflect(-20, 0) == (3, 0)
    with pytest.raises(ValueError):
        GridBounds(0, 0, -1, 0)


def test_default_bounds_are_centered(srw_kernel):
    dp = DynamicProgramBuilder().time_limit(4).kernel(srw_kernel).build()
    assert dp.bounds == GridBounds.centered(4)
    assert dp.table.shape == (5, 9, 9)
    assert dp.at(0, 0, 4) == 1.0
    assert dp.at(4, 0, 0) > 0.0
    assert dp.at(4, 1, 0) == 0.0


def test_builder_validation(srw_kernel, grid5):
    with pytest.raises(NoTimeLimitSet):
        DynamicProgramBuilder().bounds(grid5).kernel(srw_kernel).build()
    with pytest.raises(NoKernelSet):
        DynamicProgramBuilder().bounds(grid5).time_limit(3).build()
    with pytest.raises(TargetOutOfRange):
        _builder(srw_kernel, grid5).target((5, 0)).build()
    with pytest.raises(TargetOutOfRange):
        _builder(srw_kernel, grid5).start((0, -1)).build()
    with pytest.raises(BarrierOutOfRange):
        _builder(srw_kernel, grid5).add_single_barrier((7, 7)).build()
    with pytest.raises(WrongSizeOfFieldProbabilities):
        _builder(srw_kernel, grid5).field_probabilities(np.ones((4, 5))).build()
    with pytest.raises(DynamicProgramBuilderError):
        _builder(srw_kernel, grid5).add_single_barrier((4, 4)).build()


def test_unreachable_start_is_rejected(srw_kernel, grid5):
    """Manhattan distance 8 cannot be covered in 3 steps."""
    with pytest.raises(NoPathExists):
        _builder(srw_kernel, grid5, horizon=3).start((0, 0)).build()


def test_builder_checks_walker_arity(srw_kernel, grid5):
    with pytest.raises(RequiresMultipleDynamicPrograms):
        _builder(srw_kernel, grid5).build(CorrelatedWalker())

    kernels = Kernel.multiple_from_generator(CorrelatedRwGenerator())
    builder = DynamicProgramBuilder().bounds(grid5).target((4, 4)).time_limit(8)
    with pytest.raises(RequiresSingleDynamicProgram):
        builder.heading_kernels(kernels).build(StandardWalker())


def test_barriers(srw_kernel, grid5):
    dp = _builder(srw_kernel, grid5, horizon=12).add_single_barrier((2, 2)).build()
    assert not dp.is_passable(2, 2)
    assert all(dp.at(2, 2, t) == 0.0 for t in range(13))
    assert dp.landing(2, 2) is None

    # a wall across the whole grid separates start and target
    with pytest.raises(NoPathExists):
        _builder(srw_kernel, grid5, horizon=12).start((0, 0)).add_rect_barrier((4, 2), (0, 2)).build()


def test_field_probabilities_scale_the_field(srw_kernel, grid5):
    dp = _builder(srw_kernel, grid5).field_probabilities(np.full((5, 5), 0.5)).build()
    assert dp.at(4, 3, 7) == pytest.approx(0.5 * 0.2 / 0.8)
    assert dp.at(4, 4, 8) == 1.0


def test_field_types(srw_kernel, grid5):
    types = np.zeros((5, 5), dtype=int)
    types[0, :] = 1
    dp = (
        _builder(srw_kernel, grid5)
        .kernels_by_type({0: srw_kernel, 1: Kernel.stay()})
        .field_types(types)
        .build()
    )
    # cells in column x = 0 can never leave it
    assert all(dp.at(0, y, 0) == 0.0 for y in range(5))
    assert dp.at(1, 4, 0) > 0.0
    assert dp.kernel_at(0, 2) == Kernel.stay()
    assert dp.kernel_at(3, 2) == srw_kernel

    with pytest.raises(MissingFieldTypeKernel):
        _builder(srw_kernel, grid5).field_types(types).build()


def test_build_dynamic_program_matches_builder(srw_kernel, grid5, scenario_dp):
    dp = build_dynamic_program(grid5, (4, 4), 8, srw_kernel, start=(0, 0))
    assert isinstance(dp, DynamicProgram)
    assert dp == scenario_dp

    blocked = build_dynamic_program(grid5, (4, 4), 8, srw_kernel, obstacles=[(2, 2)])
    assert blocked.at(2, 2, 0) == 0.0
    assert blocked != scenario_dp


def test_config_object(srw_kernel, grid5):
    config = DynamicProgramConfig(horizon=8, target=(4, 4), bounds=grid5, boundary="reflect")
    assert config.boundary is BoundaryPolicy.REFLECT
    dp = DynamicProgramBuilder(config).kernel(srw_kernel).build()
    assert dp.boundary is BoundaryPolicy.REFLECT
    assert dp.metadata()["boundary"] == "reflect"
