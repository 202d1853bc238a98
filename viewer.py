"""Pygame window that runs the two-chamber gas live."""

import pygame
import screeninfo

from demo import Demo
from simulation import Simulation
from ui_base import build_vertical_gradient, get_font

BACKGROUND_TOP = (230, 236, 255)
BACKGROUND_BOTTOM = (246, 248, 254)


class App:
    MIN_WINDOW = (1024, 600)
    WINDOW_SCALE = 0.8

    def __init__(self, simulation: Simulation, fps: int = 60, steps_per_frame: int = 20):
        pygame.init()
        self.window_size = self._get_initial_window_size()
        self.screen = pygame.display.set_mode(self.window_size, pygame.RESIZABLE)
        pygame.display.set_caption("Two-chamber Lennard-Jones gas")
        self.clock = pygame.time.Clock()
        self.fps = fps
        self.background = build_vertical_gradient(self.window_size, BACKGROUND_TOP, BACKGROUND_BOTTOM)
        self.font = get_font(20)
        self.demo = Demo(
            self,
            *self._demo_rect(self.window_size),
            bg_color=(250, 250, 255),
            border_color=(214, 220, 235),
            bg_screen_color=(234, 236, 246),
            simulation=simulation,
            steps_per_frame=steps_per_frame,
        )
        self.running = True

    def _get_initial_window_size(self) -> tuple[int, int]:
        min_w, min_h = self.MIN_WINDOW
        try:
            monitor = screeninfo.get_monitors()[0]
        except (screeninfo.ScreenInfoError, IndexError):
            return min_w, min_h
        width = int(monitor.width * self.WINDOW_SCALE)
        height = int(monitor.height * self.WINDOW_SCALE)
        return max(min_w, width), max(min_h, height)

    @staticmethod
    def _demo_rect(size: tuple[int, int]) -> tuple[tuple[int, int], tuple[int, int]]:
        margin = 40
        return (margin, margin), (size[0] - 2 * margin, size[1] - 2 * margin - 40)

    def handle_resize(self, size: tuple[int, int]) -> None:
        min_w, min_h = self.MIN_WINDOW
        resized = max(min_w, size[0]), max(min_h, size[1])
        if resized == self.window_size:
            return
        self.window_size = resized
        self.screen = pygame.display.set_mode(self.window_size, pygame.RESIZABLE)
        self.background = build_vertical_gradient(self.window_size, BACKGROUND_TOP, BACKGROUND_BOTTOM)
        self.demo.resize_viewport(*self._demo_rect(self.window_size))

    def _check_events(self) -> None:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.VIDEORESIZE:
                self.handle_resize(event.size)
            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_ESCAPE, pygame.K_q):
                    self.running = False
                elif event.key == pygame.K_SPACE:
                    self.demo.paused = not self.demo.paused

    def run(self) -> None:
        while self.running:
            self._check_events()
            self.screen.blit(self.background, (0, 0))
            self.demo.draw_check()
            self.demo.draw_counters(self.font)
            pygame.display.flip()
            self.clock.tick(self.fps)
        pygame.quit()
