"""Rasterized feasibility map of a floor plan.

Each cell holds FREE (0), RESTRICTED (-1) or OCCUPIED (1). Cell ``(col, row)``
samples the world point ``(min_x + col * resolution, min_y + row * resolution)``.
Restricted cells are permanent: writing FREE or OCCUPIED never touches them.
"""

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from ilot_designer.core.geometry_utils import GeometryUtils, distances_to_polygon, points_in_polygon
from ilot_designer.core.models import Bounds, FloorPlan, Ilot, Point, Wall

logger = logging.getLogger(__name__)

FREE = 0
RESTRICTED = -1
OCCUPIED = 1


class OccupancyGrid:
    def __init__(self, bounds: Bounds, resolution: float = 0.2):
        self.bounds = bounds
        self.resolution = resolution
        self.cols = max(0, int(math.ceil(bounds.width / resolution)))
        self.rows = max(0, int(math.ceil(bounds.height / resolution)))
        self.cells = np.zeros((self.rows, self.cols), dtype=np.int8)

    @classmethod
    def from_floor_plan(cls, floor_plan: FloorPlan, resolution: float = 0.2,
                        wall_buffer: float = 0.3, entrance_clearance: float = 2.5,
                        restricted_clearance: float = 0.0) -> "OccupancyGrid":
        grid = cls(floor_plan.bounds, resolution)

        for area in floor_plan.restricted_areas:
            grid.mark_polygon(area.boundaries, RESTRICTED, clearance=restricted_clearance)
        for wall in floor_plan.walls:
            grid.mark_wall_buffer(wall, wall_buffer)
        if entrance_clearance > 0:
            for entrance in floor_plan.entrances:
                grid.mark_circle(entrance.position, entrance_clearance, RESTRICTED)

        logger.debug("Occupancy grid %dx%d, %d restricted cells",
                     grid.cols, grid.rows, grid.count(RESTRICTED))
        return grid

    # ------------------------------------------------------------------
    # Coordinate mapping
    # ------------------------------------------------------------------

    def world_to_grid(self, x: float, y: float) -> Tuple[int, int]:
        return (int(math.floor((x - self.bounds.min_x) / self.resolution)),
                int(math.floor((y - self.bounds.min_y) / self.resolution)))

    def grid_to_world(self, col: int, row: int) -> Point:
        return Point(self.bounds.min_x + col * self.resolution,
                     self.bounds.min_y + row * self.resolution)

    def in_grid(self, col: int, row: int) -> bool:
        return 0 <= col < self.cols and 0 <= row < self.rows

    def _window(self, min_x: float, min_y: float, max_x: float, max_y: float
                ) -> Optional[Tuple[slice, slice, np.ndarray, np.ndarray]]:
        """Cells whose sample point can fall in the world rectangle, clipped to the grid."""
        c0, r0 = self.world_to_grid(min_x, min_y)
        c1, r1 = self.world_to_grid(max_x, max_y)
        c0, r0 = max(0, c0), max(0, r0)
        c1, r1 = min(self.cols - 1, c1), min(self.rows - 1, r1)
        if c0 > c1 or r0 > r1:
            return None

        cols = np.arange(c0, c1 + 1)
        rows = np.arange(r0, r1 + 1)
        xs, ys = np.meshgrid(self.bounds.min_x + cols * self.resolution,
                             self.bounds.min_y + rows * self.resolution)
        return slice(r0, r1 + 1), slice(c0, c1 + 1), xs, ys

    def _apply(self, rows: slice, cols: slice, mask: np.ndarray, value: int) -> None:
        view = self.cells[rows, cols]
        if value != RESTRICTED:
            mask = mask & (view != RESTRICTED)
        view[mask] = value

    # ------------------------------------------------------------------
    # Marking
    # ------------------------------------------------------------------

    def mark_polygon(self, polygon: Sequence[Tuple[float, float]], value: int, clearance: float = 0.0) -> None:
        if len(polygon) < 3:
            return
        box = GeometryUtils.bounds_of(polygon).expanded(clearance)
        window = self._window(box.min_x, box.min_y, box.max_x, box.max_y)
        if window is None:
            return

        rows, cols, xs, ys = window
        mask = points_in_polygon(xs, ys, polygon)
        if clearance > 0:
            mask |= distances_to_polygon(xs, ys, polygon) <= clearance
        self._apply(rows, cols, mask, value)

    def mark_rectangle(self, center: Tuple[float, float], width: float, height: float, value: int) -> None:
        cx, cy = center
        hw, hh = width / 2, height / 2
        window = self._window(cx - hw, cy - hh, cx + hw, cy + hh)
        if window is None:
            return

        rows, cols, xs, ys = window
        mask = (np.abs(xs - cx) <= hw) & (np.abs(ys - cy) <= hh)
        self._apply(rows, cols, mask, value)

    def mark_circle(self, center: Tuple[float, float], radius: float, value: int) -> None:
        cx, cy = center
        window = self._window(cx - radius, cy - radius, cx + radius, cy + radius)
        if window is None:
            return

        rows, cols, xs, ys = window
        self._apply(rows, cols, np.hypot(xs - cx, ys - cy) <= radius, value)

    def mark_wall_buffer(self, wall: Wall, offset: float) -> None:
        """Restrict the band of half-width ``offset`` on both sides of a wall."""
        dx = wall.end.x - wall.start.x
        dy = wall.end.y - wall.start.y
        length = math.hypot(dx, dy)
        if length == 0:
            return

        nx, ny = -dy / length * offset, dx / length * offset
        band = [
            (wall.start.x + nx, wall.start.y + ny),
            (wall.end.x + nx, wall.end.y + ny),
            (wall.end.x - nx, wall.end.y - ny),
            (wall.start.x - nx, wall.start.y - ny),
        ]
        self.mark_polygon(band, RESTRICTED)

    def occupy(self, ilot: Ilot) -> None:
        self.mark_rectangle(ilot.center, ilot.width, ilot.height, OCCUPIED)

    def clear_occupancy(self) -> None:
        self.cells[self.cells == OCCUPIED] = FREE

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def value_at(self, x: float, y: float) -> int:
        col, row = self.world_to_grid(x, y)
        if not self.in_grid(col, row):
            return RESTRICTED
        return int(self.cells[row, col])

    def is_available(self, point: Tuple[float, float]) -> bool:
        return self.value_at(point[0], point[1]) == FREE

    def _region(self, min_x: float, min_y: float, max_x: float, max_y: float) -> Optional[np.ndarray]:
        c0, r0 = self.world_to_grid(min_x, min_y)
        c1, r1 = self.world_to_grid(max_x, max_y)
        if not (self.in_grid(c0, r0) and self.in_grid(c1, r1)):
            return None
        return self.cells[r0:r1 + 1, c0:c1 + 1]

    def is_region_free(self, min_x: float, min_y: float, max_x: float, max_y: float) -> bool:
        region = self._region(min_x, min_y, max_x, max_y)
        return region is not None and not region.any()

    def is_region_unrestricted(self, min_x: float, min_y: float, max_x: float, max_y: float) -> bool:
        region = self._region(min_x, min_y, max_x, max_y)
        return region is not None and not (region == RESTRICTED).any()

    def count(self, value: int) -> int:
        return int((self.cells == value).sum())
