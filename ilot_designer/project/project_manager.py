import json
from datetime import datetime
from typing import Any, Dict, Optional

from ilot_designer.core.config import PlacementConfig
from ilot_designer.core.models import Corridor, FloorPlan, Ilot, Point

PROJECT_VERSION = '1.0'


def point_to_dict(point: Point) -> Dict[str, float]:
    return {'x': point.x, 'y': point.y}


def ilot_to_dict(ilot: Ilot) -> Dict[str, Any]:
    return {
        'id': ilot.id,
        'position': point_to_dict(ilot.center),
        'width': ilot.width,
        'height': ilot.height,
        'area': ilot.area,
        'rotation': ilot.rotation,
        'type': ilot.tier,
        'isPlaced': ilot.placed,
        'zoneId': ilot.zone_id,
    }


def corridor_to_dict(corridor: Corridor) -> Dict[str, Any]:
    return {
        'id': corridor.id,
        'path': [point_to_dict(p) for p in corridor.path],
        'width': corridor.width,
        'connectsIlots': list(corridor.connected_ilot_ids),
        'length': corridor.length,
        'type': corridor.type,
    }


def plan_to_dict(plan: FloorPlan) -> Dict[str, Any]:
    return {
        'id': plan.id,
        'name': plan.name,
        'bounds': plan.bounds.as_dict(),
        'walls': [{'id': w.id, 'start': point_to_dict(w.start), 'end': point_to_dict(w.end),
                   'thickness': w.thickness, 'type': w.category} for w in plan.walls],
        'rooms': [{'id': r.id, 'boundaries': [point_to_dict(p) for p in r.boundaries],
                   'area': r.area, 'type': r.category, 'name': r.name} for r in plan.rooms],
        'restrictedAreas': [{'id': a.id, 'boundaries': [point_to_dict(p) for p in a.boundaries],
                             'area': a.area, 'type': a.category} for a in plan.restricted_areas],
        'entrances': [{'id': e.id, 'position': point_to_dict(e.position), 'width': e.width,
                       'type': e.category, 'angle': e.angle} for e in plan.entrances],
        'totalArea': plan.total_area,
        'availableArea': plan.available_area,
    }


class ProjectManager:
    def serialize_result(self, result, config: PlacementConfig, created: Optional[str] = None) -> Dict[str, Any]:
        """Single-document project: metadata, plan, layout, config and statistics."""
        placement = result.placement
        return {
            'metadata': {
                'version': PROJECT_VERSION,
                'created': created or datetime.now().isoformat(),
                'planName': result.floor_plan.name,
                'score': placement.score if placement else 0.0,
                'targetArea': placement.target_area if placement else 0.0,
            },
            'floorPlan': plan_to_dict(result.floor_plan),
            'ilots': [ilot_to_dict(i) for i in result.ilots],
            'corridors': [corridor_to_dict(c) for c in result.corridors],
            'config': config.as_dict(),
            'statistics': result.statistics,
            'suggestions': result.suggestions,
            'warnings': list(result.warnings),
        }

    def save_project(self, filepath, result, config: PlacementConfig) -> Dict[str, Any]:
        project = self.serialize_result(result, config)
        with open(filepath, 'w') as f:
            json.dump(project, f, indent=2)
        return project
