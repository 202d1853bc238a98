from types import SimpleNamespace

import pygame
import pytest

import viewer


@pytest.fixture
def window(small_cfg, make_sim, monkeypatch):
    monkeypatch.setattr(viewer.screeninfo, 'get_monitors', lambda: [SimpleNamespace(width=2000, height=1000)])
    sim = make_sim(small_cfg, [(8.5, 5.0), (3.0, 5.0)], [(10.0, 0.0), (0.0, 0.0)])
    app = viewer.App(sim, fps=1000, steps_per_frame=2)
    yield app
    pygame.quit()


def test_window_is_sized_from_the_monitor(window):
    assert window.window_size == (1600, 800)
    assert window.demo.simulation.previous_positions is not None


def test_resize_keeps_the_minimum_window(window):
    window.handle_resize((300, 200))
    assert window.window_size == viewer.App.MIN_WINDOW
    assert window.background.get_size() == viewer.App.MIN_WINDOW


def test_space_pauses_and_quit_stops(window):
    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE))
    window._check_events()
    assert window.demo.paused

    pygame.event.post(pygame.event.Event(pygame.QUIT))
    window.run()
    assert not window.running
