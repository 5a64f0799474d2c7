"""
Corridor network synthesis over finalized ilots.

Ilots are grouped into rows, facing rows are joined by straight row
corridors, a horizontal spine serves the whole layout and access spurs tie
single ilots to the spine. Corridors never cover an ilot; a corridor may end
on the edge of the ilots it serves (its anchors).
"""

import logging
import math
from dataclasses import replace
from typing import Callable, List, Optional, Sequence, Tuple

from ilot_designer.core.config import SpurPolicy
from ilot_designer.core.geometry_utils import GeometryUtils
from ilot_designer.core.identifiers import SequentialIdFactory
from ilot_designer.core.models import Corridor, Ilot, Point
from ilot_designer.optimization.constraint_validator import (
    ConstraintValidator,
    ValidationReport,
    corridor_conflicts,
)

logger = logging.getLogger(__name__)

ROW_TOLERANCE = 2.0
MIN_ROW_DISTANCE = 3.0
MAX_ROW_DISTANCE = 8.0
SPINE_MIN_WIDTH = 2.0
SPINE_OVERHANG = 1.0
SPINE_SCAN_STEP = 0.1
DUPLICATE_TOLERANCE = 0.5

WaypointHook = Callable[[Point, Point], Sequence[Point]]


class CorridorRouter:
    def __init__(self, corridor_width: float = 1.2, spur_policy: SpurPolicy = SpurPolicy.ALWAYS,
                 waypoint_hook: Optional[WaypointHook] = None, id_factory=None):
        self.corridor_width = corridor_width
        self.spur_policy = SpurPolicy(spur_policy)
        self.waypoint_hook = waypoint_hook
        self.id_factory = id_factory or SequentialIdFactory("corridor")
        self.validator = ConstraintValidator()

    def generate_corridors(self, ilots: Sequence[Ilot]) -> List[Corridor]:
        """
        Build the corridor network for a finished layout.

        Args:
            ilots: finalized ilots; the sequence is read, never modified

        Returns:
            Row corridors first, then the spine, then access spurs, with ids
            assigned in that order after duplicates are dropped
        """
        if not ilots:
            return []

        rows = self.group_rows(ilots)
        logger.info("Generating corridors for %d ilots in %d rows", len(ilots), len(rows))

        corridors = self.connect_rows(rows, ilots)
        spine = self.build_spine(ilots)
        corridors.append(spine)
        corridors.extend(self.build_spurs(ilots, spine))

        corridors = self.cleanup(corridors)
        corridors = [replace(c, id=self.id_factory()) for c in corridors]
        logger.info("Generated %d corridors, total length %.2f",
                    len(corridors), sum(c.length for c in corridors))
        return corridors

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    @staticmethod
    def group_rows(ilots: Sequence[Ilot], tolerance: float = ROW_TOLERANCE) -> List[List[Ilot]]:
        """Greedy grouping: each unvisited ilot seeds a row and takes every
        unvisited ilot aligned with the seed on either axis."""
        rows = []
        visited = set()
        for seed in ilots:
            if seed.id in visited:
                continue
            visited.add(seed.id)
            row = [seed]
            for other in ilots:
                if other.id in visited:
                    continue
                if (abs(other.center.y - seed.center.y) < tolerance
                        or abs(other.center.x - seed.center.x) < tolerance):
                    visited.add(other.id)
                    row.append(other)
            rows.append(row)
        return rows

    @staticmethod
    def _average_center(row: Sequence[Ilot]) -> Point:
        return Point(sum(i.center.x for i in row) / len(row),
                     sum(i.center.y for i in row) / len(row))

    @staticmethod
    def _nearest_edge_point(row: Sequence[Ilot], target: Point) -> Tuple[Point, Ilot]:
        best, owner, best_distance = None, None, math.inf
        for ilot in row:
            for point in ilot.edge_points:
                d = GeometryUtils.distance(point, target)
                if d < best_distance:
                    best, owner, best_distance = point, ilot, d
        return best, owner

    def connect_rows(self, rows: List[List[Ilot]], ilots: Sequence[Ilot]) -> List[Corridor]:
        corridors = []
        for i, row_a in enumerate(rows):
            center_a = self._average_center(row_a)
            for row_b in rows[i + 1:]:
                center_b = self._average_center(row_b)
                gap = GeometryUtils.distance(center_a, center_b)
                if not MIN_ROW_DISTANCE <= gap <= MAX_ROW_DISTANCE:
                    continue

                start, anchor_a = self._nearest_edge_point(row_a, center_b)
                end, anchor_b = self._nearest_edge_point(row_b, center_a)
                path = self._route(start, end)
                anchors = tuple(dict.fromkeys((anchor_a.id, anchor_b.id)))
                if corridor_conflicts(path, self.corridor_width, ilots, anchors):
                    logger.debug("Row corridor %s -> %s blocked", anchor_a.id, anchor_b.id)
                    continue

                connected = tuple(ilot.id for ilot in row_a + row_b)
                corridors.append(self._corridor(path, self.corridor_width, connected, "row", anchors))
        return corridors

    def _route(self, start: Point, end: Point) -> Tuple[Point, ...]:
        if self.waypoint_hook is None:
            return (start, end)
        return (start, *self.waypoint_hook(start, end), end)

    # ------------------------------------------------------------------
    # Spine and spurs
    # ------------------------------------------------------------------

    @property
    def spine_width(self) -> float:
        return max(self.corridor_width, SPINE_MIN_WIDTH)

    def _band_is_free(self, y: float, ilots: Sequence[Ilot]) -> bool:
        half = self.spine_width / 2
        for ilot in ilots:
            b = ilot.bounds
            if y - half < b.max_y and y + half > b.min_y:
                return False
        return True

    def spine_height(self, ilots: Sequence[Ilot]) -> float:
        """Mid-height of the ilot centers, or the nearest height whose band clears every ilot."""
        ys = [i.center.y for i in ilots]
        mid = (min(ys) + max(ys)) / 2
        lowest = min(i.bounds.min_y for i in ilots)
        highest = max(i.bounds.max_y for i in ilots)
        reach = max(mid - lowest, highest - mid) + self.spine_width
        for k in range(int(math.ceil(reach / SPINE_SCAN_STEP)) + 1):
            for y in (mid - k * SPINE_SCAN_STEP, mid + k * SPINE_SCAN_STEP):
                if self._band_is_free(y, ilots):
                    return y
        return lowest - self.spine_width / 2

    def build_spine(self, ilots: Sequence[Ilot]) -> Corridor:
        y = self.spine_height(ilots)
        xs = [i.center.x for i in ilots]
        path = (Point(min(xs) - SPINE_OVERHANG, y), Point(max(xs) + SPINE_OVERHANG, y))
        return self._corridor(path, self.spine_width, tuple(i.id for i in ilots), "spine")

    def _needs_spur(self, ilot: Ilot, spine_y: float) -> bool:
        if self.spur_policy == SpurPolicy.NEVER:
            return False
        if self.spur_policy == SpurPolicy.ALWAYS:
            return True
        b = ilot.bounds
        half = self.spine_width / 2
        gap = max(0.0, b.min_y - (spine_y + half), (spine_y - half) - b.max_y)
        return gap > self.corridor_width / 2

    def build_spurs(self, ilots: Sequence[Ilot], spine: Corridor) -> List[Corridor]:
        spine_y = spine.path[0].y
        spurs = []
        for ilot in ilots:
            if not self._needs_spur(ilot, spine_y):
                continue
            cx, cy = ilot.center
            edge_y = cy - ilot.height / 2 if cy > spine_y else cy + ilot.height / 2
            path = (Point(cx, edge_y), Point(cx, spine_y))
            if corridor_conflicts(path, self.corridor_width, ilots, (ilot.id,)):
                logger.debug("Access spur for %s blocked", ilot.id)
                continue
            spurs.append(self._corridor(path, self.corridor_width, (ilot.id,), "access", (ilot.id,)))
        return spurs

    # ------------------------------------------------------------------
    # Cleanup and validation
    # ------------------------------------------------------------------

    @staticmethod
    def _corridor(path, width, connected, kind, anchors=()) -> Corridor:
        return Corridor(
            id="",
            path=tuple(path),
            width=width,
            connected_ilot_ids=tuple(connected),
            length=GeometryUtils.path_length(path),
            type=kind,
            anchor_ids=tuple(anchors),
        )

    @staticmethod
    def _is_duplicate(a: Corridor, b: Corridor) -> bool:
        if len(a.path) != len(b.path):
            return False
        return all(GeometryUtils.distance(p, q) <= DUPLICATE_TOLERANCE for p, q in zip(a.path, b.path))

    def cleanup(self, corridors: List[Corridor]) -> List[Corridor]:
        kept = []
        for corridor in corridors:
            if len(corridor.path) < 2 or corridor.width <= 0 or corridor.length <= 0:
                continue
            if any(self._is_duplicate(corridor, k) for k in kept):
                continue
            kept.append(corridor)
        return kept

    def validate_network(self, corridors: Sequence[Corridor], ilots: Sequence[Ilot]) -> ValidationReport:
        report = self.validator.validate_circulation(corridors, ilots)
        for violation in report.violations:
            logger.warning("Circulation: %s", violation)
        return report
