"""
Live rendering of the two-chamber gas.

``Demo`` draws the box, the partition with its hole and the particles of a
running ``Simulation`` onto the application's pygame surface.  Particles are
coloured by speed on a blue-to-red scale.  Each call to ``draw_check``
advances the simulation by a few steps before drawing.
"""

import math
from typing import Optional

import numpy as np
import pygame

from simulation import Simulation
from ui_base import get_font


class Demo:
    def __init__(
        self,
        app,
        position,
        demo_size,
        bg_color,
        border_color,
        bg_screen_color,
        simulation: Simulation,
        steps_per_frame: int = 1,
    ):
        """
        Initialize the view of a running simulation.

        Parameters
        ----------
        app : App
            Object exposing the pygame surface to draw on as ``screen``.
        position : tuple
            (x, y) coordinates of the top-left corner of the drawing area.
        demo_size : tuple
            (width, height) of the drawing area in pixels.  The box keeps its
            aspect ratio inside it.
        bg_color, border_color, bg_screen_color : tuple
            RGB colours of the box background, its border and the masked
            region around it.
        simulation : Simulation
            Engine to advance and draw.  ``start`` is called if it has not
            been bootstrapped yet.
        steps_per_frame : int
            Simulation steps per rendered frame.
        """
        self.app = app
        self.screen = app.screen
        self.bg_color = bg_color
        self.bd_color = border_color
        self.bg_screen_color = bg_screen_color
        self.simulation = simulation
        self.steps_per_frame = max(1, int(steps_per_frame))
        self.partition_color = (182, 186, 198)
        self.text_color = (40, 44, 60)
        self.balanced_color = (40, 160, 90)
        self.paused = False
        if simulation.previous_positions is None:
            simulation.start()
        self.resize_viewport(position, demo_size)

    def resize_viewport(self, position: tuple[int, int], demo_size: tuple[int, int]) -> None:
        """Fit the box into a new rectangle, centred, keeping its aspect ratio."""
        cfg = self.simulation.cfg
        avail_w, avail_h = demo_size
        self.scale = max(1e-6, min(avail_w / cfg.box_width, avail_h / cfg.box_height))
        self.width = int(round(cfg.box_width * self.scale))
        self.height = int(round(cfg.box_height * self.scale))
        self.position = (
            position[0] + (avail_w - self.width) // 2,
            position[1] + (avail_h - self.height) // 2,
        )
        self.main = pygame.Rect(*self.position, self.width, self.height)
        # Pixel coordinates of the bottom-left corner (the box origin)
        self.pos_start = self.position[0], self.position[1] + self.height
        self.screen = self.app.screen

    def to_screen(self, r: np.ndarray) -> np.ndarray:
        """Map box coordinates (2×N) to integer pixel coordinates."""
        r = np.array(r, dtype=float, copy=True).reshape(2, -1)
        r[0] = self.pos_start[0] + r[0] * self.scale
        r[1] = self.pos_start[1] - r[1] * self.scale
        return np.round(r).astype(int)

    def speed_colors(self, v: np.ndarray) -> list[tuple[int, int, int]]:
        speeds = np.linalg.norm(v, axis=0)
        if speeds.size == 0:
            return []
        v_min = float(np.min(speeds))
        v_max = float(np.max(speeds))
        denom = v_max - v_min if v_max > v_min else 1.0
        normalized = (speeds - v_min) / denom
        return [(int(255 * c), 0, int(255 * (1.0 - c))) for c in normalized]

    def _draw_partition(self) -> None:
        """Draw the partition as two solid segments around the hole."""
        cfg = self.simulation.cfg
        wall_width = max(2, int(round(self.scale * 0.8)))
        segments = (
            ((cfg.box_split, 0.0), (cfg.box_split, cfg.hole_position)),
            ((cfg.box_split, cfg.hole_top), (cfg.box_split, cfg.box_height)),
        )
        for start, end in segments:
            if math.isclose(start[1], end[1]):
                continue
            pts = self.to_screen(np.array([[start[0], end[0]], [start[1], end[1]]]))
            pygame.draw.line(
                self.screen,
                self.partition_color,
                (int(pts[0, 0]), int(pts[1, 0])),
                (int(pts[0, 1]), int(pts[1, 1])),
                wall_width,
            )

    def advance(self) -> None:
        if self.paused:
            return
        for _ in range(self.steps_per_frame):
            self.simulation.step()
            self.simulation.check_balance()

    def draw_check(self) -> None:
        """Advance the simulation and render the current state."""
        self.advance()
        pygame.draw.rect(self.screen, self.bg_color, self.main)

        grid = self.simulation.grid
        points = self.to_screen(grid.r)
        radius_px = max(1, int(round(float(np.mean(grid.radius)) * self.scale))) if len(grid) else 1
        for idx, color in enumerate(self.speed_colors(grid.v)):
            pygame.draw.circle(self.screen, color, (int(points[0, idx]), int(points[1, idx])), radius_px)

        self._draw_partition()

        # Mask particles drawn past the walls, then draw the border
        inner_border = 3
        mask_border = 50
        pygame.draw.rect(
            self.screen,
            self.bg_screen_color,
            (
                self.position[0] - mask_border,
                self.position[1] - mask_border,
                self.width + mask_border * 2,
                self.height + mask_border * 2,
            ),
            mask_border,
        )
        pygame.draw.rect(
            self.screen,
            self.bd_color,
            (
                self.position[0] - inner_border,
                self.position[1] - inner_border,
                self.width + inner_border * 2,
                self.height + inner_border * 2,
            ),
            inner_border,
        )

    def draw_counters(self, font: Optional[pygame.font.Font] = None) -> None:
        """Write elapsed time and chamber populations under the box."""
        sim = self.simulation
        font = font or get_font(20)
        first = sim.first_chamber_count()
        second = len(sim.grid) - first
        balanced = sim.is_balanced()
        text = f"t = {sim.elapsed_time:.3f}    left: {first}    right: {second}"
        if sim.balance_time > 0:
            text += f"    balance time: {sim.balance_time:.3f}"
        color = self.balanced_color if balanced else self.text_color
        label = font.render(text, True, color)
        self.screen.blit(label, (self.position[0], self.position[1] + self.height + 12))
