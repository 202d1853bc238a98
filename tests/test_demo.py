from types import SimpleNamespace

import numpy as np
import pygame
import pytest

from demo import Demo


@pytest.fixture
def demo(small_cfg, make_sim):
    sim = make_sim(small_cfg, [(8.5, 5.0), (3.0, 5.0)], [(10.0, 0.0), (0.0, 0.0)])
    app = SimpleNamespace(screen=pygame.Surface((440, 240)))
    return Demo(
        app,
        (20, 20),
        (400, 200),
        bg_color=(250, 250, 255),
        border_color=(214, 220, 235),
        bg_screen_color=(234, 236, 246),
        simulation=sim,
        steps_per_frame=5,
    )


def test_box_keeps_its_aspect_ratio(demo):
    # a 20×10 box in a 400×200 area: 20 pixels per unit
    assert demo.scale == pytest.approx(20.0)
    assert (demo.width, demo.height) == (400, 200)


def test_to_screen_flips_the_y_axis(demo):
    pts = demo.to_screen(np.array([[0.0, 20.0], [0.0, 10.0]]))
    np.testing.assert_array_equal(pts[:, 0], [20, 220])
    np.testing.assert_array_equal(pts[:, 1], [420, 20])


def test_draw_check_advances_the_simulation(demo, small_cfg):
    demo.draw_check()
    assert demo.simulation.elapsed_time == pytest.approx(5 * small_cfg.time_step)


def test_paused_demo_does_not_advance(demo):
    demo.paused = True
    demo.draw_check()
    assert demo.simulation.elapsed_time == 0.0


def test_speed_colours_span_blue_to_red(demo):
    colors = demo.speed_colors(np.array([[0.0, 10.0], [0.0, 0.0]]))
    assert colors == [(0, 0, 255), (255, 0, 0)]


def test_viewer_records_balance(demo):
    demo.steps_per_frame = 200
    demo.draw_check()
    assert demo.simulation.balance_time > 0


def test_vertical_gradient_runs_top_to_bottom():
    from ui_base import build_vertical_gradient

    surface = build_vertical_gradient((4, 3), (0, 0, 0), (200, 100, 50))
    assert surface.get_size() == (4, 3)
    assert tuple(surface.get_at((0, 0)))[:3] == (0, 0, 0)
    assert tuple(surface.get_at((3, 2)))[:3] == (200, 100, 50)
