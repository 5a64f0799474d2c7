"""Three-stage layout workflow: analyze the plan, place ilots, generate corridors."""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ilot_designer.core.config import EngineSettings, PlacementConfig
from ilot_designer.core.identifiers import SequentialIdFactory
from ilot_designer.core.measurement_tools import MeasurementTools
from ilot_designer.core.models import Corridor, FloorPlan, Ilot, PlacementResult, ProgressEvent
from ilot_designer.optimization.corridor_router import CorridorRouter
from ilot_designer.optimization.placement_engine import IlotPlacementEngine
from ilot_designer.optimization.scoring import LayoutScorer

logger = logging.getLogger(__name__)

LOW_UTILIZATION = 0.15
HIGH_UTILIZATION = 0.40
CROWDED_UTILIZATION = 0.35
AREA_PER_PERSON = 4.0


@dataclass
class LayoutResult:
    floor_plan: FloorPlan
    ilots: List[Ilot] = field(default_factory=list)
    corridors: List[Corridor] = field(default_factory=list)
    placement: Optional[PlacementResult] = None
    statistics: Dict[str, Any] = field(default_factory=dict)
    suggestions: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


class LayoutProcessor:
    def __init__(self, config: Optional[PlacementConfig] = None, settings: Optional[EngineSettings] = None,
                 seed: int = 0, on_progress: Optional[Callable[[ProgressEvent], None]] = None):
        self.config = (config or PlacementConfig()).validate()
        self.settings = (settings or EngineSettings()).validate()
        self.seed = seed
        self.on_progress = on_progress

    def _progress(self, stage: str, progress: int, message: str) -> None:
        logger.info("[%s %d%%] %s", stage, progress, message)
        if self.on_progress:
            self.on_progress(ProgressEvent(stage, progress, message))

    def process(self, floor_plan: FloorPlan) -> LayoutResult:
        self._progress("analyzing", 25, "Analyzing floor plan")
        result = LayoutResult(floor_plan=floor_plan)

        self._progress("placing", 60, "Placing ilots")
        engine = IlotPlacementEngine(
            floor_plan,
            self.config,
            random.Random(self.seed),
            settings=self.settings,
            id_factory=SequentialIdFactory("ilot"),
        )
        placement = engine.place_ilots()
        result.placement = placement
        result.ilots = placement.ilots
        result.warnings.extend(placement.warnings)

        self._progress("corridors", 80, "Generating corridors")
        router = CorridorRouter(
            corridor_width=self.config.corridor_width,
            spur_policy=self.settings.spur_policy,
            id_factory=SequentialIdFactory("corridor"),
        )
        result.corridors = router.generate_corridors(result.ilots)
        report = router.validate_network(result.corridors, result.ilots)
        result.warnings.extend(report.violations)

        result.statistics = MeasurementTools.layout_statistics(floor_plan, result.ilots, result.corridors)
        result.suggestions = self.suggestions(result)
        result.warnings.extend(result.suggestions['warnings'])

        self._progress("complete", 100,
                       f"Placed {len(result.ilots)} ilots and {len(result.corridors)} corridors")
        return result

    def suggestions(self, result: LayoutResult) -> Dict[str, Any]:
        stats = result.statistics
        ratio = stats['utilization_rate']

        warnings = []
        if ratio < LOW_UTILIZATION:
            warnings.append("Space utilization is low - consider adding more ilots")
        if ratio > HIGH_UTILIZATION:
            warnings.append("Space may be overcrowded - consider reducing ilot density")
        if not result.corridors:
            warnings.append("No corridors generated - ilots may be inaccessible")

        return {
            'optimal_layout': self.optimal_layout(ratio).as_dict(),
            'estimated_capacity': int(stats['utilized_area'] // AREA_PER_PERSON),
            'efficiency_score': self.efficiency_score(result),
            'warnings': warnings,
        }

    def efficiency_score(self, result: LayoutResult) -> float:
        score = 100.0
        ratio = result.statistics['utilization_rate']
        score -= abs(ratio - self.config.layout_profile / 100) * 200
        if not result.corridors:
            score -= 30
        if result.ilots:
            scorer = LayoutScorer(result.floor_plan, self.config.layout_profile,
                                  result.floor_plan.available_area, self.settings)
            score += scorer.distribution_score(result.ilots) * 0.2
        return max(0.0, min(100.0, score))

    @staticmethod
    def optimal_layout(ratio: float) -> PlacementConfig:
        profile = 25
        if ratio < LOW_UTILIZATION:
            profile = 30
        elif ratio > CROWDED_UTILIZATION:
            profile = 10
        return PlacementConfig(layout_profile=profile, min_ilot_spacing=1.5)
