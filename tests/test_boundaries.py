import numpy as np
import pytest


@pytest.fixture
def sim(small_cfg, make_sim):
    # Particle 0 rests in the middle of the first chamber, particle 1 level with
    # the hole, particle 2 below it.  All are at least Rm from every wall proxy.
    sim = make_sim(small_cfg.replace(particle_count=3), [(5.0, 5.0), (6.0, 5.0), (5.0, 1.0)])
    sim.start()
    return sim


def test_particle_above_box_is_put_back_below_the_top(sim, small_cfg):
    last = sim.legal_positions[:, 0]
    sim.grid.set_state(0, (5.3, small_cfg.box_height + 1.0), (0.0, 4.0))
    sim.update_position_by_bouncing()
    x, y = sim.grid.r[:, 0]
    assert small_cfg.box_height - 0.7 < y <= small_cfg.box_height - 0.2
    assert x == pytest.approx(last[0])


def test_particle_below_box_is_put_back_above_the_floor(sim):
    sim.grid.set_state(0, (5.0, -0.4), (0.0, -4.0))
    sim.update_position_by_bouncing()
    assert 0.2 <= sim.grid.r[1, 0] < 0.7


def test_particle_left_of_box(sim):
    last = sim.legal_positions[:, 0]
    sim.grid.set_state(0, (-0.3, 5.2), (-4.0, 0.0))
    sim.update_position_by_bouncing()
    x, y = sim.grid.r[:, 0]
    assert 0.2 <= x < 0.7
    assert y == pytest.approx(last[1])


def test_particle_right_of_box(sim, small_cfg):
    sim.grid.set_state(0, (small_cfg.box_width + 2.0, 5.0), (4.0, 0.0))
    sim.update_position_by_bouncing()
    assert small_cfg.box_width - 0.7 < sim.grid.r[0, 0] <= small_cfg.box_width - 0.2


def test_particle_out_at_a_corner_is_fixed_on_both_axes(sim, small_cfg):
    sim.grid.set_state(0, (-1.0, small_cfg.box_height + 1.0), (-1.0, 1.0))
    sim.update_position_by_bouncing()
    x, y = sim.grid.r[:, 0]
    assert 0.2 <= x < 0.7
    assert small_cfg.box_height - 0.7 < y <= small_cfg.box_height - 0.2


def test_crossing_outside_the_hole_bounces_back(sim, small_cfg):
    last = sim.legal_positions[:, 2]
    sim.grid.set_state(2, (small_cfg.box_split + 0.5, 1.0), (5.0, 0.0))
    bounced = sim.update_position_by_bouncing()
    assert bounced == 1
    x = sim.grid.r[0, 2]
    assert last[0] - 0.7 < x <= last[0] - 0.2
    # the illegal position is not remembered
    np.testing.assert_array_equal(sim.legal_positions[:, 2], last)


def test_crossing_back_from_second_chamber(small_cfg, make_sim):
    sim = make_sim(small_cfg, [(15.0, 9.0)])
    sim.start()
    last = sim.legal_positions[:, 0]
    sim.grid.set_state(0, (small_cfg.box_split - 0.5, 9.0), (-5.0, 0.0))
    sim.update_position_by_bouncing()
    assert last[0] + 0.2 <= sim.grid.r[0, 0] < last[0] + 0.7


def test_crossing_through_the_hole_is_legal(sim, small_cfg):
    sim.grid.set_state(1, (small_cfg.box_split + 0.5, 5.0), (5.0, 0.0))
    bounced = sim.update_position_by_bouncing()
    assert bounced == 0
    np.testing.assert_array_equal(sim.grid.r[:, 1], [small_cfg.box_split + 0.5, 5.0])
    np.testing.assert_array_equal(sim.legal_positions[:, 1], [small_cfg.box_split + 0.5, 5.0])


def test_legal_positions_follow_particles_inside_the_box(sim):
    sim.grid.set_state(0, (5.5, 5.5), (1.0, 1.0))
    sim.update_position_by_bouncing()
    np.testing.assert_array_equal(sim.grid.r[:, 0], [5.5, 5.5])
    np.testing.assert_array_equal(sim.legal_positions[:, 0], [5.5, 5.5])


def test_position_memory_starts_from_previous_state(sim):
    np.testing.assert_array_equal(sim.legal_positions, sim.previous_positions)
