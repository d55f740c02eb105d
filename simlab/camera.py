#!/usr/bin/env python3
"""
Fixed-scale world-to-screen transforms.

Every view draws physical meters at a constant pixels-per-meter factor from a fixed
anchor pixel; there is no zoom or pan. World y points up, screen y points down.
"""
from typing import Tuple, Union

from .constants import SAFE_COORD_LIMIT, VIEW_HEIGHT, VIEW_WIDTH

Scale = Union[float, Tuple[float, float]]


class ViewTransform:
    """
    Maps world coordinates (meters, y up) to screen pixels.

    Attributes:
        anchor: screen pixel of the world origin.
        scale: (x, y) pixels per meter; a single number applies to both axes.
        viewport_size: (width, height) in pixels.
    """

    def __init__(self, anchor: Tuple[float, float], scale: Scale,
                 viewport_size: Tuple[int, int] = (VIEW_WIDTH, VIEW_HEIGHT)):
        if isinstance(scale, (int, float)):
            scale = (float(scale), float(scale))
        if scale[0] <= 0 or scale[1] <= 0:
            raise ValueError("scale must be positive")
        self.anchor = (float(anchor[0]), float(anchor[1]))
        self.scale = (float(scale[0]), float(scale[1]))
        self.viewport_size = viewport_size

    def set_viewport_size(self, w: int, h: int) -> None:
        self.viewport_size = (w, h)

    def world_to_screen(self, pos: Tuple[float, float]) -> Tuple[int, int]:
        px = self.anchor[0] + pos[0] * self.scale[0]
        py = self.anchor[1] - pos[1] * self.scale[1]
        return (int(round(px)), int(round(py)))

    def screen_to_world(self, screen: Tuple[int, int]) -> Tuple[float, float]:
        wx = (screen[0] - self.anchor[0]) / self.scale[0]
        wy = (self.anchor[1] - screen[1]) / self.scale[1]
        return (wx, wy)

    def visible(self, screen: Tuple[int, int]) -> bool:
        w, h = self.viewport_size
        return 0 <= screen[0] < w and 0 <= screen[1] < h


def safe_point(pt):
    """Integer pixel tuple, or None when it is too far off-screen to hand to the rasteriser."""
    try:
        x, y = int(pt[0]), int(pt[1])
    except (TypeError, ValueError, OverflowError):
        return None
    if -SAFE_COORD_LIMIT <= x <= SAFE_COORD_LIMIT and -SAFE_COORD_LIMIT <= y <= SAFE_COORD_LIMIT:
        return (x, y)
    return None
