import math
from dataclasses import replace

import pytest

from lensing_core import InvalidViewport, RayStatus, schwarzschild_radius
from lensing_core.constants import DEFAULT_MASS
from lensing_core.population import RayPopulation, Viewport, spawn_points

RS = schwarzschild_radius(DEFAULT_MASS)


@pytest.fixture
def viewport():
    return Viewport.fit(800, 600, RS)


def test_scale_puts_default_horizon_at_fixed_fraction(viewport):
    assert viewport.center == (400.0, 300.0)
    assert RS / viewport.metres_per_pixel == pytest.approx(45.0)
    assert viewport.to_screen(*viewport.to_physical(123.0, 456.0)) == pytest.approx((123.0, 456.0))


@pytest.mark.parametrize("size", [(0, 600), (800, -1), (math.nan, 600), (800, math.inf), ("800", 600), (True, 600),
                                  (5e-324, 5e-324)])
def test_invalid_viewport(size):
    with pytest.raises(InvalidViewport):
        Viewport.fit(*size, RS)


def test_spawn_points_span_left_edge(viewport):
    spawns = spawn_points(4, viewport)
    assert [s.index for s in spawns] == [0, 1, 2, 3]
    assert [s.y for s in spawns] == [75.0, 225.0, 375.0, 525.0]
    assert all(s.x == 0.0 and (s.vx, s.vy) == (1.0, 0.0) for s in spawns)


def test_impact_parameter_is_vertical_offset(viewport):
    pop = RayPopulation(viewport, 4, RS)
    offsets = [abs(s.y - 300.0) * viewport.metres_per_pixel for s in pop.spawns]
    assert [ray.impact_parameter for ray in pop] == pytest.approx(offsets)


def test_initial_positions_match_spawn_points(viewport):
    pop = RayPopulation(viewport, 5, RS)
    assert len(pop) == 5
    flat = pop.initial_positions()
    assert len(flat) == 10
    expected = [v for s in pop.spawns for v in (s.x, s.y)]
    assert flat == pytest.approx(expected, abs=1e-9)
    assert pop.positions() == flat


def test_store_writes_only_given_slots(viewport):
    pop = RayPopulation(viewport, 3, RS)
    before = list(pop)
    captured = replace(pop[1], status=RayStatus.CAPTURED)
    pop.store([1], [captured])
    assert pop[0] is before[0] and pop[2] is before[2]
    assert pop.active_indices() == [0, 2]
    assert pop.counts() == {RayStatus.ACTIVE: 2, RayStatus.CAPTURED: 1, RayStatus.ESCAPED: 0}
    assert pop.statuses() == ["active", "captured", "active"]


def test_resize_keeps_survivors_and_regenerates_snapshot(viewport):
    pop = RayPopulation(viewport, 4, RS)
    moved = [replace(pop[i], r=pop[i].r * 0.5) for i in range(4)]
    pop.store(range(4), moved)

    pop.resize(6, RS)
    assert len(pop) == 6
    assert list(pop)[:4] == moved
    assert [s.y for s in pop.spawns] == [50.0, 150.0, 250.0, 350.0, 450.0, 550.0]
    assert pop[5] == pop.initial[5]

    pop.resize(2, RS)
    assert list(pop) == moved[:2]
    assert len(pop.initial_positions()) == 4


def test_reset_relaunches_against_current_radius(viewport):
    pop = RayPopulation(viewport, 3, RS)
    pop.reset(RS * 100)
    assert all(ray.status is RayStatus.CAPTURED for ray in pop)
    assert pop.positions() == pop.initial_positions()

def test_trails_are_bounded_and_follow_store(viewport):
    pop = RayPopulation(viewport, 2, RS, trail_length=3)
    assert pop.trail_data() == [[], []]
    ray = pop[0]
    for k in range(5):
        ray = replace(ray, r=ray.r * 0.9)
        pop.store([0], [ray])
    trails = pop.trail_data()
    assert len(trails[0]) == 3
    assert trails[0][-1] == pytest.approx(tuple(pop.positions()[:2]))
    assert trails[1] == []


def test_reset_clears_trails(viewport):
    pop = RayPopulation(viewport, 3, RS, trail_length=4)
    pop.store(range(3), list(pop))
    assert all(len(t) == 1 for t in pop.trail_data())
    pop.reset(RS)
    assert pop.trail_data() == [[], [], []]


def test_resize_keeps_trails_in_step(viewport):
    pop = RayPopulation(viewport, 4, RS, trail_length=4)
    pop.store(range(4), list(pop))
    pop.resize(6, RS)
    assert [len(t) for t in pop.trail_data()] == [1, 1, 1, 1, 0, 0]
    pop.resize(2, RS)
    assert [len(t) for t in pop.trail_data()] == [1, 1]
