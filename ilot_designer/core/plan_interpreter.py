import logging
from typing import Any, Dict, List, Optional

from ilot_designer.core.errors import InputError
from ilot_designer.core.geometry_utils import GeometryUtils
from ilot_designer.core.models import Bounds, Entrance, FloorPlan, Point, RestrictedArea, Wall, Zone

logger = logging.getLogger(__name__)

MIN_WALL_LENGTH = 0.1
DUPLICATE_WALL_TOLERANCE = 0.1


def to_point(value: Any) -> Point:
    """Accept ``{"x": .., "y": ..}`` or an ``(x, y)`` pair."""
    if isinstance(value, dict):
        return Point(float(value.get('x', 0.0)), float(value.get('y', 0.0)))
    try:
        x, y = value
    except (TypeError, ValueError):
        raise InputError(f"not a point: {value!r}")
    return Point(float(x), float(y))


class PlanInterpreter:
    """Build a FloorPlan from the dict handed over by the CAD collaborator.

    Keys follow that collaborator: ``bounds`` (minX/maxX/minY/maxY), ``walls``,
    ``rooms``, ``restrictedAreas`` and ``entrances``. Walls shorter than 0.1
    or repeated within 0.1 are dropped, missing areas are recomputed from the
    boundaries and missing bounds are derived from the geometry.
    """

    def interpret(self, data: Dict[str, Any]) -> FloorPlan:
        if not isinstance(data, dict):
            raise InputError("floor plan must be a mapping")

        walls = self._clean_walls([self._wall(w, i) for i, w in enumerate(data.get('walls', []))])
        rooms = [self._zone(r, i) for i, r in enumerate(data.get('rooms', []))]
        restricted = [self._restricted(a, i)
                      for i, a in enumerate(data.get('restrictedAreas', data.get('restricted_areas', [])))]
        entrances = [self._entrance(e, i) for i, e in enumerate(data.get('entrances', []))]

        bounds = self._bounds(data.get('bounds'), walls, rooms, restricted, entrances)
        plan = FloorPlan(
            id=str(data.get('id', 'plan')),
            name=data.get('name', 'Untitled Plan'),
            bounds=bounds,
            walls=tuple(walls),
            rooms=tuple(rooms),
            restricted_areas=tuple(restricted),
            entrances=tuple(entrances),
        )
        logger.info("Interpreted plan %s: %d walls, %d rooms, %d restricted areas, %d entrances",
                    plan.id, len(walls), len(rooms), len(restricted), len(entrances))
        return plan

    @staticmethod
    def _wall(data: Dict[str, Any], index: int) -> Wall:
        return Wall(
            id=str(data.get('id', f"wall_{index + 1}")),
            start=to_point(data.get('start')),
            end=to_point(data.get('end')),
            thickness=float(data.get('thickness', 0.2)),
            category=data.get('type', 'interior'),
        )

    @staticmethod
    def _boundaries(data: Dict[str, Any]):
        return tuple(to_point(p) for p in data.get('boundaries', data.get('polygon', [])))

    def _zone(self, data: Dict[str, Any], index: int) -> Zone:
        boundaries = self._boundaries(data)
        area = float(data.get('area') or 0.0)
        if area <= 0:
            area = GeometryUtils.polygon_area(boundaries)
        return Zone(
            id=str(data.get('id', f"room_{index + 1}")),
            boundaries=boundaries,
            area=area,
            category=data.get('type', 'available'),
            name=data.get('name'),
        )

    def _restricted(self, data: Dict[str, Any], index: int) -> RestrictedArea:
        boundaries = self._boundaries(data)
        area = float(data.get('area') or 0.0)
        if area <= 0:
            area = GeometryUtils.polygon_area(boundaries)
        return RestrictedArea(
            id=str(data.get('id', f"restricted_{index + 1}")),
            boundaries=boundaries,
            category=data.get('type', 'utility'),
            area=area,
        )

    @staticmethod
    def _entrance(data: Dict[str, Any], index: int) -> Entrance:
        return Entrance(
            id=str(data.get('id', f"entrance_{index + 1}")),
            position=to_point(data.get('position')),
            width=float(data.get('width', 1.0)),
            category=data.get('type', 'main'),
            angle=float(data.get('angle', 0.0)),
        )

    @staticmethod
    def _clean_walls(walls: List[Wall]) -> List[Wall]:
        kept = []
        for wall in walls:
            if GeometryUtils.distance(wall.start, wall.end) < MIN_WALL_LENGTH:
                continue
            duplicate = any(
                (GeometryUtils.distance(wall.start, k.start) < DUPLICATE_WALL_TOLERANCE
                 and GeometryUtils.distance(wall.end, k.end) < DUPLICATE_WALL_TOLERANCE)
                or (GeometryUtils.distance(wall.start, k.end) < DUPLICATE_WALL_TOLERANCE
                    and GeometryUtils.distance(wall.end, k.start) < DUPLICATE_WALL_TOLERANCE)
                for k in kept
            )
            if not duplicate:
                kept.append(wall)
        if len(kept) != len(walls):
            logger.debug("Dropped %d degenerate or duplicate walls", len(walls) - len(kept))
        return kept

    @staticmethod
    def _bounds(data: Optional[Dict[str, Any]], walls, rooms, restricted, entrances) -> Bounds:
        if data:
            return Bounds(float(data.get('minX', 0.0)), float(data.get('maxX', 0.0)),
                          float(data.get('minY', 0.0)), float(data.get('maxY', 0.0)))
        points = [p for w in walls for p in (w.start, w.end)]
        points += [p for r in rooms for p in r.boundaries]
        points += [p for a in restricted for p in a.boundaries]
        points += [e.position for e in entrances]
        return GeometryUtils.bounds_of(points)
