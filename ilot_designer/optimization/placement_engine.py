"""
Ilot placement.

Three stages run over the zones picked by :class:`ZoneSelector`:

1. Primary placement, per zone: hexagonal lattice seeding, random gap
   filling with the small tiers, then opportunistic weighted sampling.
2. Optimization: bounded perturb-and-accept hill climbing on the layout
   score.
3. Densification: fill ilots scanned over each zone, then local refinement.

Every candidate is charged against an area budget of
``available_area * layout_profile / 100`` so utilization never exceeds the
requested profile. All randomness comes from the ``random.Random`` handed to
the engine, ids from the injected id factory.
"""

import logging
import random
from dataclasses import replace
from typing import List, Optional, Sequence

import numpy as np

from ilot_designer.catalog.ilot_catalog import IlotCatalog, IlotTier
from ilot_designer.core.config import EngineSettings, PlacementConfig
from ilot_designer.core.errors import InputError
from ilot_designer.core.geometry_utils import GeometryUtils
from ilot_designer.core.identifiers import SequentialIdFactory
from ilot_designer.core.models import FloorPlan, Ilot, PlacementResult, Point, Zone
from ilot_designer.optimization.occupancy_grid import OccupancyGrid
from ilot_designer.optimization.scoring import LayoutScorer
from ilot_designer.optimization.spatial_index import SpatialIndex
from ilot_designer.optimization.zone_selector import ZoneSelector

logger = logging.getLogger(__name__)

AREA_EPSILON = 1e-9

# Unit offsets tried by local refinement: N, NE, E, SE, S, SW, W, NW
COMPASS = ((0, 1), (1, 1), (1, 0), (1, -1), (0, -1), (-1, -1), (-1, 0), (-1, 1))


def spacing_clear(x: float, y: float, width: float, height: float,
                  centers: np.ndarray, sizes: np.ndarray, spacing: float) -> np.ndarray:
    """Per-neighbour mask: True where a ``width`` x ``height`` rectangle at (x, y) keeps its distance.

    Both rules must hold: center distance minus the two half extents
    (half of the longer side) exceeds ``spacing``, and the gap between the
    rectangles is at least ``spacing``.
    """
    if len(centers) == 0:
        return np.ones(0, dtype=bool)
    dx = np.abs(centers[:, 0] - x)
    dy = np.abs(centers[:, 1] - y)
    half_extents = max(width, height) / 2 + sizes.max(axis=1) / 2
    gap_x = np.maximum(0.0, dx - (width + sizes[:, 0]) / 2)
    gap_y = np.maximum(0.0, dy - (height + sizes[:, 1]) / 2)
    return (np.hypot(dx, dy) - half_extents > spacing) & (np.hypot(gap_x, gap_y) >= spacing)


def _arrays(ilots: Sequence[Ilot]):
    centers = np.array([[i.center.x, i.center.y] for i in ilots], dtype=float).reshape(-1, 2)
    sizes = np.array([[i.width, i.height] for i in ilots], dtype=float).reshape(-1, 2)
    return centers, sizes


class IlotPlacementEngine:
    def __init__(self, floor_plan: FloorPlan, config: PlacementConfig, rng: random.Random,
                 settings: Optional[EngineSettings] = None, id_factory=None):
        self.floor_plan = floor_plan
        self.config = config.validate()
        self.settings = (settings or EngineSettings()).validate()
        self.rng = rng
        self.id_factory = id_factory or SequentialIdFactory("ilot")

        self.catalog = IlotCatalog.for_profile(config.layout_profile, config.max_ilot_size)
        self.available_area = floor_plan.available_area
        self.target_area = self.available_area * config.layout_profile / 100
        self.scorer = LayoutScorer(floor_plan, config.layout_profile, self.available_area, self.settings)

        self.entrance_clearance = self.settings.entrance_clearance if config.respect_entrance_clearance else 0.0
        if config.allow_wall_touching:
            self.wall_buffer = self.settings.wall_buffer
        else:
            self.wall_buffer = max(self.settings.wall_buffer, config.min_ilot_spacing)

        self.zones: List[Zone] = []
        self.grid: Optional[OccupancyGrid] = None
        self.index = SpatialIndex()
        self.ilots: List[Ilot] = []
        self.placed_area = 0.0

    def place_ilots(self) -> PlacementResult:
        result = PlacementResult(available_area=self.available_area, target_area=self.target_area)

        selector = ZoneSelector(self.settings.min_zone_area, self.entrance_clearance)
        try:
            self.zones = selector.select(self.floor_plan)
        except InputError as e:
            logger.warning("No ilots placed: %s", e)
            result.warnings.append(str(e))
            return result

        self.grid = OccupancyGrid.from_floor_plan(
            self.floor_plan,
            resolution=self.settings.grid_resolution,
            wall_buffer=self.wall_buffer,
            entrance_clearance=self.entrance_clearance,
            restricted_clearance=self.settings.restricted_clearance,
        )
        self._reset()

        logger.info("Placing ilots in %d zones, target area %.2f of %.2f",
                    len(self.zones), self.target_area, self.available_area)
        for zone in self.zones:
            before = len(self.ilots)
            self._seed_lattice(zone)
            self._fill_gaps(zone)
            self._sample_opportunistic(zone)
            logger.debug("Zone %s: %d ilots after primary placement", zone.id, len(self.ilots) - before)
        logger.info("Primary placement: %d ilots, %.2f area", len(self.ilots), self.placed_area)

        layout = self._optimize(self.ilots)
        layout = self._densify(layout)

        if not layout:
            result.warnings.append("No feasible ilot position found in the selected zones")
            logger.warning("No feasible ilot position found in the selected zones")

        result.ilots = layout
        result.utilization = self.scorer.utilization(layout)
        result.score = self.scorer.score(layout)
        used = {i.zone_id for i in layout}
        result.zones_used = [z.id for z in self.zones if z.id in used]
        logger.info("Placed %d ilots, utilization %.1f%% (target %d%%), score %.2f",
                    len(layout), result.utilization, self.config.layout_profile, result.score)
        return result

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self.index = SpatialIndex()
        self.ilots = []
        self.placed_area = 0.0

    def _track(self, ilot: Ilot) -> None:
        self.grid.occupy(ilot)
        self.index.insert(ilot)
        self.ilots.append(ilot)
        self.placed_area += ilot.area

    def _budget_left(self) -> float:
        return self.target_area - self.placed_area

    # ------------------------------------------------------------------
    # Feasibility
    # ------------------------------------------------------------------

    @staticmethod
    def _inside(zone: Zone, x: float, y: float, width: float, height: float) -> bool:
        hw, hh = width / 2, height / 2
        points = ((x, y), (x - hw, y - hh), (x + hw, y - hh), (x + hw, y + hh), (x - hw, y + hh))
        return all(GeometryUtils.point_in_polygon(p, zone.boundaries) for p in points)

    def _can_place(self, zone: Zone, x: float, y: float, tier: IlotTier) -> bool:
        if tier.area > self._budget_left() + AREA_EPSILON:
            return False
        width, height = self.catalog.get_ilot_dimensions(tier)
        if not self._inside(zone, x, y, width, height):
            return False
        if not self.grid.is_region_free(x - width / 2, y - height / 2, x + width / 2, y + height / 2):
            return False

        reach = max(width, height) / 2 + self.catalog.max_half_extent + self.config.min_ilot_spacing
        neighbours = self.index.nearby(x, y, reach)
        centers, sizes = _arrays(neighbours)
        return bool(spacing_clear(x, y, width, height, centers, sizes, self.config.min_ilot_spacing).all())

    def _place_largest(self, zone: Zone, x: float, y: float, tiers: Sequence[IlotTier]) -> Optional[Ilot]:
        """Place the first tier (largest first) that fits at (x, y)."""
        for tier in tiers:
            if self._can_place(zone, x, y, tier):
                return self._commit(zone, x, y, tier)
        return None

    def _commit(self, zone: Zone, x: float, y: float, tier: IlotTier) -> Ilot:
        width, height = self.catalog.get_ilot_dimensions(tier)
        ilot = Ilot(
            id=self.id_factory(),
            center=Point(x, y),
            width=width,
            height=height,
            area=tier.area,
            tier=tier.name,
            zone_id=zone.id,
        )
        self._track(ilot)
        return ilot

    def _relocation_zone(self, ilot: Ilot, x: float, y: float,
                         centers: np.ndarray, sizes: np.ndarray, position: int) -> Optional[Zone]:
        """Zone that can hold ``ilot`` moved to (x, y), or None when the move is invalid.

        Occupied cells are ignored since they may belong to the ilot itself;
        overlap with the others is ruled out by the spacing check.
        """
        w, h = ilot.width, ilot.height
        zone = next((z for z in self.zones if self._inside(z, x, y, w, h)), None)
        if zone is None:
            return None
        if not self.grid.is_region_unrestricted(x - w / 2, y - h / 2, x + w / 2, y + h / 2):
            return None
        clear = spacing_clear(x, y, w, h, centers, sizes, self.config.min_ilot_spacing)
        clear[position] = True
        if not clear.all():
            return None
        return zone

    # ------------------------------------------------------------------
    # Stage 1: primary placement
    # ------------------------------------------------------------------

    def _lattice_spacing(self) -> float:
        profile = self.config.layout_profile
        base = 1.0 if profile > 30 else 1.5
        return max(0.5, base - profile / 100)

    def _seed_lattice(self, zone: Zone) -> None:
        box = GeometryUtils.bounds_of(zone.boundaries)
        inset = self.settings.lattice_inset
        spacing = self._lattice_spacing()
        step_y = spacing * 0.866

        row = 0
        y = box.min_y + inset
        while y <= box.max_y - inset:
            if self._budget_left() < self.catalog.smallest_area:
                return
            offset = spacing / 2 if row % 2 else 0.0
            col = 0
            x = box.min_x + inset + offset
            while x <= box.max_x - inset:
                self._place_largest(zone, x, y, self.catalog.tiers)
                col += 1
                x = box.min_x + inset + offset + col * spacing
            row += 1
            y = box.min_y + inset + row * step_y

    def _random_point(self, zone: Zone, box) -> Optional[Point]:
        for _ in range(self.settings.gap_search_tries):
            x = self.rng.uniform(box.min_x, box.max_x)
            y = self.rng.uniform(box.min_y, box.max_y)
            if GeometryUtils.point_in_polygon((x, y), zone.boundaries) and self.grid.is_available((x, y)):
                return Point(x, y)
        return None

    def _fill_gaps(self, zone: Zone) -> None:
        small = self.catalog.small_tiers()
        if not small:
            return
        box = GeometryUtils.bounds_of(zone.boundaries)
        for _ in range(self.settings.gap_fill_attempts):
            point = self._random_point(zone, box)
            if point is not None:
                self._place_largest(zone, point.x, point.y, small)

    def _sample_opportunistic(self, zone: Zone) -> None:
        box = GeometryUtils.bounds_of(zone.boundaries)
        for _ in range(self.settings.opportunistic_samples):
            x = self.rng.uniform(box.min_x, box.max_x)
            y = self.rng.uniform(box.min_y, box.max_y)
            tier = next((t for t in self.catalog.tiers if self._can_place(zone, x, y, t)), None)
            if tier is not None and self.rng.random() < tier.weight:
                self._commit(zone, x, y, tier)

    # ------------------------------------------------------------------
    # Stage 2: optimization
    # ------------------------------------------------------------------

    def _optimize(self, layout: List[Ilot]) -> List[Ilot]:
        best = list(layout)
        if not best:
            return best
        best_score = self.scorer.score(best)
        moves = max(1, int(len(best) * self.settings.mutation_fraction))

        for generation in range(self.settings.generations):
            for _ in range(self.settings.candidates_per_generation):
                candidate = self._perturb(best, moves)
                score = self.scorer.score(candidate)
                if score > best_score:
                    best, best_score = candidate, score
            if generation % 20 == 0:
                logger.debug("Generation %d: best score %.2f", generation, best_score)

        logger.info("Optimization finished, score %.2f", best_score)
        return best

    def _perturb(self, layout: List[Ilot], moves: int) -> List[Ilot]:
        candidate = list(layout)
        centers, sizes = _arrays(candidate)
        radius = self.settings.perturbation_radius

        for position in self.rng.sample(range(len(candidate)), min(moves, len(candidate))):
            ilot = candidate[position]
            x = ilot.center.x + (self.rng.random() - 0.5) * 2 * radius
            y = ilot.center.y + (self.rng.random() - 0.5) * 2 * radius
            zone = self._relocation_zone(ilot, x, y, centers, sizes, position)
            if zone is None:
                continue
            candidate[position] = replace(ilot, center=Point(x, y), zone_id=zone.id)
            centers[position] = (x, y)
        return candidate

    # ------------------------------------------------------------------
    # Stage 3: densification
    # ------------------------------------------------------------------

    def _densify(self, layout: List[Ilot]) -> List[Ilot]:
        self.grid.clear_occupancy()
        self._reset()
        for ilot in layout:
            self._track(ilot)

        before = len(self.ilots)
        fill = self.catalog.fill_tiers
        if fill:
            smallest = min(t.area for t in fill)
            step = 2 * self.settings.grid_resolution
            for zone in self.zones:
                box = GeometryUtils.bounds_of(zone.boundaries)
                for row in range(int(box.height / step) + 1):
                    if self._budget_left() < smallest:
                        break
                    y = box.min_y + row * step
                    for col in range(int(box.width / step) + 1):
                        x = box.min_x + col * step
                        if self.grid.is_available((x, y)):
                            self._place_largest(zone, x, y, fill)
        logger.debug("Densification added %d fill ilots", len(self.ilots) - before)

        refined = self._refine(self.ilots)

        self.grid.clear_occupancy()
        for ilot in refined:
            self.grid.occupy(ilot)
        return refined

    def _refine(self, layout: List[Ilot]) -> List[Ilot]:
        layout = list(layout)
        if not layout:
            return layout
        best_score = self.scorer.score(layout)
        centers, sizes = _arrays(layout)
        step = self.settings.refinement_step

        for refinement in range(self.settings.refinement_passes):
            improved = False
            for position, ilot in enumerate(layout):
                for dx, dy in COMPASS:
                    x, y = ilot.center.x + dx * step, ilot.center.y + dy * step
                    zone = self._relocation_zone(ilot, x, y, centers, sizes, position)
                    if zone is None:
                        continue
                    trial = list(layout)
                    trial[position] = replace(ilot, center=Point(x, y), zone_id=zone.id)
                    score = self.scorer.score(trial)
                    if score > best_score:
                        layout, best_score = trial, score
                        centers[position] = (x, y)
                        improved = True
                        break
            logger.debug("Refinement pass %d: score %.2f", refinement + 1, best_score)
            if not improved:
                break
        return layout
