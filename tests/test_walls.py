import pytest

from simulation import WALL_PROXY_ID


def _positions(proxies):
    return sorted((round(p.x, 9), round(p.y, 9)) for p in proxies)


def test_proxies_near_left_wall(small_cfg, make_sim):
    sim = make_sim(small_cfg, [(2.0, 5.0)])
    proxies = sim.wall_proxies((2.0, 5.0))
    # bottom and top feet sit exactly at the cutoff and are kept
    assert _positions(proxies) == [(0.0, 5.0), (2.0, 0.0), (2.0, 10.0)]


def test_proxies_level_with_hole_use_both_corners(small_cfg, make_sim):
    sim = make_sim(small_cfg, [(9.0, 5.0)])
    proxies = sim.wall_proxies((9.0, 5.0))
    assert _positions(proxies) == [(9.0, 0.0), (9.0, 10.0), (10.0, 3.0), (10.0, 7.0)]


def test_proxy_below_hole_is_lower_partition_segment(small_cfg, make_sim):
    sim = make_sim(small_cfg, [(9.0, 1.0)])
    proxies = sim.wall_proxies((9.0, 1.0))
    assert _positions(proxies) == [(9.0, 0.0), (10.0, 1.0)]


def test_proxy_above_hole_is_upper_partition_segment(small_cfg, make_sim):
    sim = make_sim(small_cfg, [(11.0, 9.0)])
    proxies = sim.wall_proxies((11.0, 9.0))
    assert _positions(proxies) == [(10.0, 9.0), (11.0, 10.0)]


def test_proxies_beyond_cutoff_are_dropped(big_cfg, make_sim):
    sim = make_sim(big_cfg, [(20.0, 80.0)])
    assert sim.wall_proxies((20.0, 80.0)) == []


def test_proxies_carry_particle_radius(small_cfg, make_sim):
    sim = make_sim(small_cfg, [(9.0, 5.0)])
    for proxy in sim.wall_proxies((9.0, 5.0)):
        assert proxy.radius == pytest.approx(small_cfg.particle_radius)
        assert proxy.id == WALL_PROXY_ID
