"""
Aggregate score of an ilot layout.

    score = 100 - 2 * |achieved% - target%|
          + 0.3 * distribution   (mean pairwise center distance)
          + 0.2 * accessibility  (% of ilots with a clear line to an entrance)
          + 0.5 * constraint     (100 minus clearance encroachment penalties)

Distribution and constraint are computed with numpy over the whole layout.
Accessibility walks one ilot at a time and only tests the ilots whose boxes
meet each sight line, so memory stays linear in the layout size.
"""

from typing import Optional, Sequence

import numpy as np
from scipy.spatial.distance import pdist

from ilot_designer.core.config import EngineSettings
from ilot_designer.core.geometry_utils import distances_to_polygon
from ilot_designer.core.models import FloorPlan, Ilot

UTILIZATION_WEIGHT = 2.0
DISTRIBUTION_WEIGHT = 0.3
ACCESSIBILITY_WEIGHT = 0.2
CONSTRAINT_WEIGHT = 0.5

RESTRICTED_PENALTY = 10.0
ENTRANCE_PENALTY = 15.0


class LayoutScorer:
    def __init__(self, floor_plan: FloorPlan, layout_profile: float, available_area: float,
                 settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.target = float(layout_profile)
        self.available_area = available_area
        self.restricted = [a.boundaries for a in floor_plan.restricted_areas if len(a.boundaries) >= 2]
        self.entrances = np.array([[e.position.x, e.position.y] for e in floor_plan.entrances],
                                  dtype=float).reshape(-1, 2)
        steps = self.settings.accessibility_samples
        self._t = np.arange(1, steps) / steps

    def score(self, ilots: Sequence[Ilot]) -> float:
        if not ilots:
            return 100 - UTILIZATION_WEIGHT * self.target
        centers = _centers(ilots)
        return (100 - UTILIZATION_WEIGHT * abs(self.utilization(ilots) - self.target)
                + DISTRIBUTION_WEIGHT * self._distribution(centers)
                + ACCESSIBILITY_WEIGHT * self._accessibility(ilots, centers)
                + CONSTRAINT_WEIGHT * self._constraint(centers))

    def utilization(self, ilots: Sequence[Ilot]) -> float:
        if self.available_area <= 0:
            return 0.0
        return sum(i.area for i in ilots) / self.available_area * 100

    def distribution_score(self, ilots: Sequence[Ilot]) -> float:
        return self._distribution(_centers(ilots))

    def accessibility_score(self, ilots: Sequence[Ilot]) -> float:
        return self._accessibility(ilots, _centers(ilots))

    def constraint_score(self, ilots: Sequence[Ilot]) -> float:
        return self._constraint(_centers(ilots))

    @staticmethod
    def _distribution(centers: np.ndarray) -> float:
        if len(centers) < 2:
            return 0.0
        return float(pdist(centers).mean())

    def _accessibility(self, ilots: Sequence[Ilot], centers: np.ndarray) -> float:
        n = len(centers)
        if n == 0 or len(self.entrances) == 0:
            return 0.0

        half = np.array([[i.width / 2, i.height / 2] for i in ilots], dtype=float)
        reachable = sum(
            1 for source in range(n)
            if any(self._clear_line(source, entrance, centers, half) for entrance in self.entrances)
        )
        return reachable / n * 100

    def _clear_line(self, source: int, entrance: np.ndarray, centers: np.ndarray, half: np.ndarray) -> bool:
        """True when no sample between ilot ``source`` and ``entrance`` falls in another ilot."""
        start = centers[source]
        low = np.minimum(start, entrance)
        high = np.maximum(start, entrance)
        # Only ilots whose box meets the segment's bounding box can block it
        near = np.all((centers + half >= low - 1e-9) & (centers - half <= high + 1e-9), axis=1)
        near[source] = False
        blockers = np.flatnonzero(near)
        if len(blockers) == 0:
            return True

        samples = start + (entrance - start) * self._t[:, None]
        inside = np.all(np.abs(samples[:, None, :] - centers[blockers]) <= half[blockers], axis=2)
        return not inside.any()

    def _constraint(self, centers: np.ndarray) -> float:
        if len(centers) == 0:
            return 100.0
        xs, ys = centers[:, 0], centers[:, 1]
        score = 100.0

        limit = self.settings.restricted_penalty_distance
        for polygon in self.restricted:
            d = distances_to_polygon(xs, ys, polygon)
            score -= float(((limit - d[d < limit]) * RESTRICTED_PENALTY).sum())

        if len(self.entrances):
            limit = self.settings.entrance_penalty_distance
            d = np.hypot(xs[:, None] - self.entrances[:, 0], ys[:, None] - self.entrances[:, 1])
            score -= float(((limit - d[d < limit]) * ENTRANCE_PENALTY).sum())

        return max(0.0, score)


def _centers(ilots: Sequence[Ilot]) -> np.ndarray:
    return np.array([[i.center.x, i.center.y] for i in ilots], dtype=float).reshape(-1, 2)
