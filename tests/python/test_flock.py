from __future__ import annotations

from dataclasses import asdict

from pygame.math import Vector3
from pytest import approx

from boidsim.sim.core.config import FlockParameters, SimulationConfig, SpawnConfig
from boidsim.sim.core.flock import Flock
from boidsim.sim.systems import steering


def _xyz(vector: Vector3) -> tuple[float, float, float]:
    return (vector.x, vector.y, vector.z)


def _params(**values: float) -> FlockParameters:
    base = dict(
        separation_fov=0.0,
        separation_mag=0.0,
        alignment_fov=0.0,
        alignment_mag=0.0,
        cohesion_fov=0.0,
        cohesion_mag=0.0,
    )
    base.update(values)
    return FlockParameters(**base)


def _expected_accelerations(flock: Flock) -> list[Vector3]:
    params = flock.parameters
    positions = flock.positions()
    velocities = flock.velocities()
    accelerations = [Vector3() for _ in positions]
    steering.separate(positions, accelerations, params.separation_fov, params.separation_mag)
    steering.align(positions, velocities, accelerations, params.alignment_fov, params.alignment_mag)
    steering.cohere(positions, accelerations, params.cohesion_fov, params.cohesion_mag)
    return accelerations


def test_construction_starts_with_zero_velocities():
    flock = Flock([(0, 0, 0), (1, 2, 3), Vector3(-1, 0, 4)])

    assert len(flock) == 3
    assert [_xyz(p) for p in flock.positions()] == [(0, 0, 0), (1, 2, 3), (-1, 0, 4)]
    assert all(_xyz(v) == (0.0, 0.0, 0.0) for v in flock.velocities())
    assert flock.tick == 0
    assert flock.metrics is None


def test_update_follows_integration_law():
    config = SimulationConfig(
        seed=5,
        parameters=FlockParameters(
            separation_fov=1.5,
            separation_mag=1.0,
            alignment_fov=3.0,
            alignment_mag=0.4,
            cohesion_fov=4.0,
            cohesion_mag=0.1,
        ),
        spawn=SpawnConfig(count=30, radius=4.0),
    )
    flock = Flock.from_config(config)
    flock.update()

    for _ in range(3):
        before = flock.positions()
        expected = _expected_accelerations(flock)
        flock.update()
        after = flock.positions()
        velocities = flock.velocities()
        for old, new, velocity, acceleration in zip(before, after, velocities, expected):
            assert _xyz(velocity) == approx(_xyz(acceleration))
            assert _xyz(new) == approx(_xyz(old + acceleration))


def test_two_close_boids_separate_symmetrically():
    flock = Flock([(0, 0, 0), (1, 0, 0)], parameters=_params(separation_fov=2.0, separation_mag=1.0))

    flock.update()

    first, second = flock.positions()
    assert _xyz(first) == approx((-0.5, 0.0, 0.0))
    assert _xyz(second) == approx((1.5, 0.0, 0.0))
    v0, v1 = flock.velocities()
    assert _xyz(v0 + v1) == approx((0.0, 0.0, 0.0))


def test_two_distant_boids_do_not_separate():
    flock = Flock([(0, 0, 0), (5, 0, 0)], parameters=_params(separation_fov=2.0, separation_mag=1.0))

    flock.update()

    assert [_xyz(p) for p in flock.positions()] == [(0, 0, 0), (5, 0, 0)]


def test_cohesion_line_moves_middle_boid_toward_higher_neighbor_only():
    flock = Flock(
        [(0, 0, 0), (1, 0, 0), (2, 0, 0)],
        parameters=_params(cohesion_fov=10.0, cohesion_mag=1.0),
    )

    flock.update()

    positions = flock.positions()
    assert _xyz(positions[0]) == approx((1.5, 0.0, 0.0))
    assert _xyz(positions[1]) == approx((2.0, 0.0, 0.0))
    assert _xyz(positions[2]) == approx((2.0, 0.0, 0.0))


def test_symmetric_neighbors_change_cohesion_result():
    flock = Flock(
        [(0, 0, 0), (1, 0, 0), (2, 0, 0)],
        parameters=_params(cohesion_fov=10.0, cohesion_mag=1.0),
        symmetric_neighbors=True,
    )

    flock.update()

    assert [p.x for p in flock.positions()] == approx([1.5, 1.0, 0.5])


def test_velocity_is_last_acceleration_not_a_running_sum():
    flock = Flock([(0, 0, 0), (1, 0, 0)], parameters=_params(separation_fov=2.0, separation_mag=1.0))

    flock.update()
    flock.update()

    # After one step the pair sits exactly on the field-of-view edge, where the push is zero.
    assert all(_xyz(v) == (0.0, 0.0, 0.0) for v in flock.velocities())
    assert [p.x for p in flock.positions()] == approx([-0.5, 1.5])


def test_alignment_uses_previous_step_velocities():
    flock = Flock(
        [(0, 0, 0), (1, 0, 0)],
        parameters=_params(separation_fov=2.0, separation_mag=1.0, alignment_fov=10.0, alignment_mag=1.0),
    )
    flock.update()
    velocities_after_first = flock.velocities()

    flock.update()

    # Separation is zero on the edge; boid 0 copies boid 1's velocity.
    assert _xyz(flock.velocities()[0]) == approx(_xyz(velocities_after_first[1]))
    assert _xyz(flock.velocities()[1]) == (0.0, 0.0, 0.0)


def test_empty_flock_update_is_a_no_op():
    flock = Flock([], parameters=_params(separation_fov=5.0, separation_mag=1.0, cohesion_fov=5.0, cohesion_mag=1.0))

    for _ in range(3):
        metrics = flock.update()

    assert len(flock) == 0
    assert flock.positions() == []
    assert metrics.population == 0
    assert metrics.neighbor_checks == 0
    assert metrics.average_speed == 0.0
    assert metrics.spread == 0.0


def test_reset_restores_zero_velocities_and_new_positions():
    flock = Flock([(0, 0, 0), (1, 0, 0)], parameters=_params(separation_fov=2.0, separation_mag=1.0))
    flock.update()
    assert any(v.length() > 0 for v in flock.velocities())

    flock.reset([(5, 5, 5), (6, 5, 5), (7, 5, 5)])

    assert [_xyz(p) for p in flock.positions()] == [(5, 5, 5), (6, 5, 5), (7, 5, 5)]
    assert all(_xyz(v) == (0.0, 0.0, 0.0) for v in flock.velocities())
    assert flock.tick == 0
    assert flock.metrics is None


def test_reset_without_positions_reuses_last_starting_list():
    start = [(0, 0, 0), (1, 0, 0)]
    flock = Flock(start, parameters=_params(separation_fov=2.0, separation_mag=1.0))
    flock.update()

    flock.reset()

    assert [_xyz(p) for p in flock.positions()] == [(0, 0, 0), (1, 0, 0)]


def test_positions_returns_independent_copies():
    source = [Vector3(1, 1, 1)]
    flock = Flock(source)

    snapshot = flock.positions()
    snapshot[0].x = 99.0
    source[0].y = 42.0

    assert _xyz(flock.positions()[0]) == (1.0, 1.0, 1.0)


def test_set_parameters_keeps_agent_state():
    flock = Flock([(0, 0, 0), (1, 0, 0)], parameters=_params(separation_fov=2.0, separation_mag=1.0))
    flock.update()
    positions = flock.positions()
    velocities = flock.velocities()

    flock.set_parameters(cohesion_fov=3.0, cohesion_mag=0.25)

    assert flock.parameters.cohesion_fov == 3.0
    assert flock.parameters.separation_fov == 2.0
    assert [_xyz(p) for p in flock.positions()] == [_xyz(p) for p in positions]
    assert [_xyz(v) for v in flock.velocities()] == [_xyz(v) for v in velocities]

    replacement = _params(alignment_fov=1.0)
    flock.set_parameters(replacement)
    assert flock.parameters == replacement
    assert flock.parameters is not replacement


def test_constructor_copies_parameters():
    params = _params(separation_fov=2.0, separation_mag=1.0)
    flock = Flock([(0, 0, 0)], parameters=params)

    params.separation_fov = 100.0

    assert flock.parameters.separation_fov == 2.0


def test_update_reports_metrics():
    flock = Flock(
        [(0, 0, 0), (1, 0, 0), (0, 1, 0)],
        parameters=_params(separation_fov=2.0, separation_mag=1.0, alignment_fov=2.0, cohesion_fov=2.0),
    )

    metrics = flock.update()

    assert metrics.tick == 0
    assert metrics.population == 3
    assert metrics.separation_pairs == 3
    assert metrics.alignment_links == 3
    assert metrics.cohesion_links == 3
    assert metrics.neighbor_checks == 9
    assert metrics.max_speed >= metrics.average_speed > 0.0
    assert flock.metrics is metrics
    assert flock.tick == 1


def test_snapshot_lists_boids_and_parameters():
    params = _params(separation_fov=2.0, separation_mag=1.0)
    flock = Flock([(0, 0, 0), (1, 0, 0)], parameters=params, seed=9)
    flock.update()

    snapshot = flock.snapshot()

    assert snapshot.tick == 1
    assert snapshot.metadata.population == 2
    assert snapshot.metadata.seed == 9
    assert snapshot.metadata.parameters == asdict(params)
    payload = snapshot.boids[1]
    for key in ["id", "x", "y", "z", "vx", "vy", "vz", "speed"]:
        assert key in payload
    assert payload["x"] == approx(1.5)
    assert payload["speed"] == approx(0.5)


def test_from_config_is_deterministic_per_seed():
    config = SimulationConfig(seed=1234, spawn=SpawnConfig(count=20, radius=3.0))

    flock_a = Flock.from_config(config)
    flock_b = Flock.from_config(SimulationConfig(seed=1234, spawn=SpawnConfig(count=20, radius=3.0)))
    for _ in range(10):
        flock_a.update()
        flock_b.update()

    assert [_xyz(p) for p in flock_a.positions()] == [_xyz(p) for p in flock_b.positions()]


def test_from_config_prefers_explicit_starting_positions():
    config = SimulationConfig(starting_positions=[(1.0, 2.0, 3.0)], spawn=SpawnConfig(count=50))

    flock = Flock.from_config(config)

    assert len(flock) == 1
    assert _xyz(flock.positions()[0]) == (1.0, 2.0, 3.0)


def test_update_with_coordinates_far_beyond_the_field_of_view():
    flock = Flock([(1e300, 0, 0), (0, 0, 0)], FlockParameters(separation_fov=1e-10))

    flock.update()

    assert [_xyz(p) for p in flock.positions()] == [(1e300, 0.0, 0.0), (0.0, 0.0, 0.0)]


def test_non_finite_boid_is_isolated_and_does_not_stop_the_step():
    flock = Flock(
        [(float("inf"), 0, 0), (0, 0, 0), (1, 0, 0)],
        _params(separation_fov=2.0, separation_mag=1.0, cohesion_fov=6.0, cohesion_mag=0.05),
    )

    metrics = flock.update()

    positions = flock.positions()
    assert positions[0].x == float("inf")
    assert _xyz(positions[1]) == approx((-0.45, 0.0, 0.0))
    assert _xyz(positions[2]) == approx((0.5, 0.0, 0.0))
    assert metrics.separation_pairs == 1
    assert metrics.cohesion_links == 1
