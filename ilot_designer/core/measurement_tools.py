from collections import Counter
from typing import Any, Dict, Sequence

from ilot_designer.core.geometry_utils import GeometryUtils
from ilot_designer.core.models import Corridor, FloorPlan, Ilot


class MeasurementTools:
    @staticmethod
    def utilized_area(ilots: Sequence[Ilot]) -> float:
        return sum(i.area for i in ilots)

    @staticmethod
    def utilization_rate(ilots: Sequence[Ilot], available_area: float) -> float:
        """Fraction (0..1) of the available area covered by ilots."""
        if available_area <= 0:
            return 0.0
        return MeasurementTools.utilized_area(ilots) / available_area

    @staticmethod
    def corridor_length(corridors: Sequence[Corridor]) -> float:
        return sum(GeometryUtils.path_length(c.path) for c in corridors)

    @staticmethod
    def corridor_area(corridors: Sequence[Corridor]) -> float:
        return sum(c.length * c.width for c in corridors)

    @staticmethod
    def layout_statistics(floor_plan: FloorPlan, ilots: Sequence[Ilot],
                          corridors: Sequence[Corridor]) -> Dict[str, Any]:
        utilized = MeasurementTools.utilized_area(ilots)
        available = floor_plan.available_area
        return {
            'total_area': floor_plan.total_area,
            'available_area': available,
            'utilized_area': utilized,
            'utilization_rate': MeasurementTools.utilization_rate(ilots, available),
            'ilot_count': len(ilots),
            'corridor_count': len(corridors),
            'total_corridor_length': MeasurementTools.corridor_length(corridors),
            'corridor_area': MeasurementTools.corridor_area(corridors),
            'average_ilot_size': utilized / len(ilots) if ilots else 0.0,
            'restricted_area_count': len(floor_plan.restricted_areas),
            'entrance_count': len(floor_plan.entrances),
            'ilots_by_tier': dict(Counter(i.tier for i in ilots)),
        }
