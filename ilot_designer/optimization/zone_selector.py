import logging
from typing import List, Sequence

from ilot_designer.core.errors import InputError
from ilot_designer.core.geometry_utils import GeometryUtils
from ilot_designer.core.models import Entrance, FloorPlan, Zone

logger = logging.getLogger(__name__)


class ZoneSelector:
    """Pick the rooms that can receive ilots, best packing candidates first."""

    def __init__(self, min_zone_area: float = 10.0, entrance_clearance: float = 2.5):
        self.min_zone_area = min_zone_area
        self.entrance_clearance = entrance_clearance

    def select(self, floor_plan: FloorPlan) -> List[Zone]:
        """Return available zones ranked by efficiency.

        Raises InputError when no room qualifies; individual unusable rooms
        are skipped with a warning.
        """
        candidates = []
        for zone in floor_plan.rooms:
            if zone.category != "available":
                continue
            try:
                self.check_zone(zone)
            except InputError as e:
                logger.warning("Skipping zone %s: %s", zone.id, e)
                continue
            if self._blocked_by_entrance(zone, floor_plan.entrances):
                logger.info("Skipping zone %s: centroid inside entrance clearance", zone.id)
                continue
            candidates.append(zone)

        if not candidates:
            raise InputError("No available zones to place ilots in")

        # sorted() is stable, ties keep input order
        return sorted(candidates, key=self.efficiency, reverse=True)

    def check_zone(self, zone: Zone) -> None:
        if len(zone.boundaries) < 3:
            raise InputError(f"degenerate boundary ({len(zone.boundaries)} points)")
        if zone.area < self.min_zone_area:
            raise InputError(f"area {zone.area:.2f} below minimum {self.min_zone_area:.2f}")
        box = GeometryUtils.bounds_of(zone.boundaries)
        if box.width <= 0 or box.height <= 0:
            raise InputError("zero-size bounding box")

    def _blocked_by_entrance(self, zone: Zone, entrances: Sequence[Entrance]) -> bool:
        if self.entrance_clearance <= 0:
            return False
        centroid = GeometryUtils.centroid(zone.boundaries)
        return any(GeometryUtils.distance(centroid, e.position) <= self.entrance_clearance
                   for e in entrances)

    @staticmethod
    def efficiency(zone: Zone) -> float:
        """compactness / max(1, aspect_ratio - 1): large, square, well-filled zones first."""
        box = GeometryUtils.bounds_of(zone.boundaries)
        if box.width <= 0 or box.height <= 0:
            return 0.0
        aspect_ratio = max(box.width, box.height) / min(box.width, box.height)
        compactness = zone.area / box.area
        return compactness / max(1.0, aspect_ratio - 1)
