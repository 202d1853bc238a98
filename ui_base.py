"""Small pygame helpers shared by the viewer screens."""

import numpy as np
import pygame


def get_font(size: int, *, bold: bool = False) -> pygame.font.Font:
    """Return a system sans-serif font, initialising the font module if needed."""
    if not pygame.font.get_init():
        pygame.font.init()
    families = ["Segoe UI", "Helvetica Neue", "DejaVu Sans", "Arial", "sans-serif"]
    return pygame.font.SysFont(families, size, bold=bold)


def build_vertical_gradient(
    size: tuple[int, int], top_color: tuple[int, int, int], bottom_color: tuple[int, int, int]
) -> pygame.Surface:
    """Create a surface fading from ``top_color`` to ``bottom_color``."""
    width, height = max(size[0], 1), max(size[1], 1)
    ratio = np.linspace(0.0, 1.0, height)[:, None]
    column = np.asarray(top_color, dtype=float) + (np.asarray(bottom_color, dtype=float)
                                                   - np.asarray(top_color, dtype=float)) * ratio
    # surfarray expects (width, height, 3)
    pixels = np.broadcast_to(column.astype(np.uint8)[None, :, :], (width, height, 3))
    return pygame.surfarray.make_surface(np.ascontiguousarray(pixels))
