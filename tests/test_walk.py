"""
Unit tests for the Walk container.
"""

import numpy as np
import pytest

from rwalk_sim import Walk


def test_walk_translate():
    walk1 = Walk([(0, 0), (2, 3), (7, 5)]).translate((5, 1))
    walk2 = Walk([(5, 1), (7, 4), (12, 6)])
    assert walk1 == walk2


def test_walk_scale():
    walk1 = Walk([(0, 0), (2, 3), (7, 5)]).scale((2, 1))
    walk2 = Walk([(0, 0), (4, 3), (14, 5)])
    assert walk1 == walk2


def test_walk_rotate():
    walk1 = Walk([(0, 0), (2, 3), (7, 5)]).rotate(90.0)
    walk2 = Walk([(0, 0), (-3, 2), (-5, 7)])
    assert walk1 == walk2
    assert Walk([(1, 2)]).rotate(360.0) == Walk([(1, 2)])


def test_walk_access():
    walk = Walk([(0, 0), (1, 0), (1, 1)])
    assert len(walk) == 3
    assert walk.start == (0, 0)
    assert walk.end == (1, 1)
    assert walk[1] == (1, 0)
    assert list(walk) == [(0, 0), (1, 0), (1, 1)]
    assert list(walk.entries()) == [((0, 0), 0), ((1, 0), 1), ((1, 1), 2)]
    assert walk.steps().tolist() == [[1, 0], [0, 1]]
    with pytest.raises(ValueError):
        walk.cells[0, 0] = 5


def test_walk_times_must_increase():
    Walk([(0, 0), (1, 0)], times=[3, 7])
    with pytest.raises(ValueError):
        Walk([(0, 0), (1, 0)], times=[3, 3])
    with pytest.raises(ValueError):
        Walk([(0, 0), (1, 0)], times=[0])


def test_frechet_distance():
    a = Walk([(0, 0), (1, 0), (2, 0)])
    b = Walk([(0, 1), (1, 1), (2, 1)])
    assert a.frechet_distance(b) == pytest.approx(1.0)
    assert a.frechet_distance(a) == 0.0
    assert b.frechet_distance(a) == pytest.approx(a.frechet_distance(b))


def test_directness_deviation():
    assert Walk([(0, 0), (3, 4)]).directness_deviation() == 0.0
    straight = Walk([(0, 0), (1, 0), (2, 0), (3, 0), (4, 0)])
    detour = Walk([(0, 0), (0, 1), (0, 2), (0, 3), (1, 3), (2, 3), (3, 3), (4, 3), (4, 2), (4, 1), (4, 0)])
    assert detour.directness_deviation() > straight.directness_deviation()
    assert np.isfinite(detour.directness_deviation())
