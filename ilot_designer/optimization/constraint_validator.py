import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from shapely.geometry import LineString, box

from ilot_designer.core.config import EngineSettings, PlacementConfig
from ilot_designer.core.geometry_utils import Coordinate, GeometryUtils
from ilot_designer.core.models import Corridor, FloorPlan, Ilot

OVERLAP_TOLERANCE = 1e-9
SPACING_TOLERANCE = 1e-6


@dataclass
class ValidationReport:
    violations: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def add(self, message: str) -> None:
        self.violations.append(message)


def corridor_conflicts(path: Sequence[Coordinate], width: float, ilots: Iterable[Ilot],
                       anchor_ids: Sequence[str] = ()) -> List[str]:
    """Ids of the ilots a corridor runs into.

    The buffered path may not cover any positive area of an ilot. Anchors
    (the ilots the path ends on) only require that the centerline stays out
    of their interior.
    """
    line = LineString(path)
    footprint = line.buffer(width / 2, cap_style="flat")
    hits = []
    for ilot in ilots:
        b = ilot.bounds
        rect = box(b.min_x, b.min_y, b.max_x, b.max_y)
        if not footprint.intersects(rect):
            continue
        if ilot.id in anchor_ids:
            if line.intersection(rect).length > OVERLAP_TOLERANCE:
                hits.append(ilot.id)
        elif footprint.intersection(rect).area > OVERLAP_TOLERANCE:
            hits.append(ilot.id)
    return hits


class ConstraintValidator:
    """Checks a finished layout; reports violations instead of raising."""

    def validate_ilot_placement(self, ilots: Sequence[Ilot], floor_plan: FloorPlan,
                                config: PlacementConfig,
                                settings: Optional[EngineSettings] = None) -> ValidationReport:
        settings = settings or EngineSettings()
        report = ValidationReport()
        zones = [z for z in floor_plan.rooms if z.category == "available"]

        for ilot in ilots:
            center = ilot.center
            if not any(GeometryUtils.point_in_polygon(center, z.boundaries) for z in zones):
                report.add(f"{ilot.id}: center outside every available zone")

            for area in floor_plan.restricted_areas:
                if GeometryUtils.point_in_polygon(center, area.boundaries):
                    report.add(f"{ilot.id}: center inside restricted area {area.id}")
                elif GeometryUtils.distance_to_polygon(center, area.boundaries) < settings.restricted_clearance:
                    report.add(f"{ilot.id}: within clearance of restricted area {area.id}")

            if config.respect_entrance_clearance:
                for entrance in floor_plan.entrances:
                    if GeometryUtils.distance(center, entrance.position) < settings.entrance_clearance:
                        report.add(f"{ilot.id}: within clearance of entrance {entrance.id}")

        spacing = config.min_ilot_spacing - SPACING_TOLERANCE
        for i, a in enumerate(ilots):
            for b in ilots[i + 1:]:
                center_gap = GeometryUtils.distance(a.center, b.center) - a.half_extent - b.half_extent
                if center_gap < spacing or GeometryUtils.rect_gap(a.bounds, b.bounds) < spacing:
                    report.add(f"{a.id}/{b.id}: closer than {config.min_ilot_spacing}")

        available = floor_plan.available_area
        if available > 0:
            utilization = sum(i.area for i in ilots) / available * 100
            if utilization > 100:
                report.add(f"utilization {utilization:.1f}% exceeds the available area")

        return report

    def validate_circulation(self, corridors: Sequence[Corridor], ilots: Sequence[Ilot]) -> ValidationReport:
        report = ValidationReport()
        connected = set()

        for corridor in corridors:
            if len(corridor.path) < 2:
                report.add(f"{corridor.id}: fewer than two path points")
                continue
            if corridor.width <= 0:
                report.add(f"{corridor.id}: non-positive width")
            length = GeometryUtils.path_length(corridor.path)
            if length <= 0 or not math.isclose(length, corridor.length, abs_tol=1e-6):
                report.add(f"{corridor.id}: invalid length {corridor.length}")
            if corridor.width > 0 and length > 0:
                for ilot_id in corridor_conflicts(corridor.path, corridor.width, ilots, corridor.anchor_ids):
                    report.add(f"{corridor.id}: overlaps ilot {ilot_id}")
            connected.update(corridor.connected_ilot_ids)

        for ilot in ilots:
            if ilot.id not in connected:
                report.add(f"{ilot.id}: not served by any corridor")

        return report
