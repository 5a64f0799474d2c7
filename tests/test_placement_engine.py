"""
Tests for the ilot placement engine.

Budgets are cut down through EngineSettings so each run stays fast; the
invariants checked here hold for any budget. The utilization check runs at
the default budgets.
"""
import random
from dataclasses import replace

import numpy as np
import pytest

from conftest import make_plan, rectangle, square_ilot
from ilot_designer.core.config import EngineSettings, PlacementConfig
from ilot_designer.core.errors import ConfigError
from ilot_designer.core.geometry_utils import GeometryUtils
from ilot_designer.core.identifiers import SequentialIdFactory
from ilot_designer.core.models import Bounds, RestrictedArea, Zone
from ilot_designer.optimization.occupancy_grid import RESTRICTED
from ilot_designer.optimization.placement_engine import IlotPlacementEngine, spacing_clear


def place(plan, settings, seed=42, **config):
    engine = IlotPlacementEngine(plan, PlacementConfig(**config), random.Random(seed), settings=settings)
    return engine.place_ilots()


def assert_contained(engine, ilots):
    """Every ilot sits inside a selected zone on cells that are not restricted."""
    for ilot in ilots:
        zone = next(z for z in engine.zones if z.id == ilot.zone_id)
        for point in (ilot.center,) + tuple(ilot.corners):
            assert GeometryUtils.point_in_polygon(point, zone.boundaries), ilot.id
        b = ilot.bounds
        assert engine.grid.is_region_unrestricted(b.min_x, b.min_y, b.max_x, b.max_y), ilot.id


def assert_spaced(ilots, spacing):
    for i, a in enumerate(ilots):
        for b in ilots[i + 1:]:
            center_gap = GeometryUtils.distance(a.center, b.center) - a.half_extent - b.half_extent
            assert center_gap > spacing - 1e-9, (a.id, b.id)
            assert GeometryUtils.rect_gap(a.bounds, b.bounds) >= spacing - 1e-9, (a.id, b.id)


# ============================================================================
# Reference scenarios
# ============================================================================

class TestScenarios:
    def test_empty_square_zone(self, square_plan, fast_settings):
        """10x10 zone, profile 25, spacing 1.0, max size 4.0."""
        result = place(square_plan, fast_settings, layout_profile=25, min_ilot_spacing=1.0, max_ilot_size=4.0)

        assert len(result.ilots) >= 1
        assert sum(i.area for i in result.ilots) <= 25 + 1e-6
        assert result.target_area == pytest.approx(25.0)
        for ilot in result.ilots:
            assert 0 <= ilot.center.x <= 10
            assert 0 <= ilot.center.y <= 10
            assert ilot.area <= 4.0
            assert ilot.rotation == 0.0
            assert ilot.placed is True

    def test_restricted_circle_keeps_clearance(self, plan_with_obstacles, fast_settings):
        result = place(plan_with_obstacles, fast_settings)

        assert result.ilots
        clearance = 2 + fast_settings.restricted_clearance
        for ilot in result.ilots:
            assert GeometryUtils.distance(ilot.center, (5, 5)) >= clearance

    def test_no_available_zone_yields_empty_result(self, fast_settings):
        plan = make_plan(rooms=[Zone("shaft", rectangle(0, 0, 10, 10), 100.0, category="restricted")])
        result = place(plan, fast_settings)

        assert result.ilots == []
        assert result.warnings
        assert result.utilization == 0.0

    def test_plan_without_rooms(self, fast_settings):
        result = place(make_plan(rooms=[]), fast_settings)
        assert result.ilots == []
        assert result.warnings


# ============================================================================
# Invariants
# ============================================================================

class TestInvariants:
    @pytest.mark.parametrize("profile", [10, 25, 30, 35])
    def test_spacing_and_budget(self, square_plan, fast_settings, profile):
        result = place(square_plan, fast_settings, layout_profile=profile)

        assert_spaced(result.ilots, 1.0)
        assert result.utilization <= profile + 1e-6

    def test_centers_inside_their_zone(self, fast_settings):
        rooms = [
            Zone("left", rectangle(0, 0, 8, 10), 80.0),
            Zone("right", rectangle(12, 0, 20, 10), 80.0),
        ]
        plan = make_plan(rooms=rooms, bounds=Bounds(0, 20, 0, 10))
        result = place(plan, fast_settings, layout_profile=30)

        zones = {z.id: z for z in rooms}
        assert result.ilots
        for ilot in result.ilots:
            assert GeometryUtils.point_in_polygon(ilot.center, zones[ilot.zone_id].boundaries)
            for corner in ilot.corners:
                assert GeometryUtils.point_in_polygon(corner, zones[ilot.zone_id].boundaries)
        assert set(result.zones_used) <= {"left", "right"}

    def test_entrance_clearance(self, plan_with_obstacles, fast_settings):
        result = place(plan_with_obstacles, fast_settings)
        for ilot in result.ilots:
            assert GeometryUtils.distance(ilot.center, (0.5, 5)) >= fast_settings.entrance_clearance

    def test_walls_keep_spacing_when_touching_is_not_allowed(self, walled_plan, fast_settings):
        result = place(walled_plan, fast_settings, allow_wall_touching=False, min_ilot_spacing=1.0)

        assert result.ilots
        for ilot in result.ilots:
            b = ilot.bounds
            assert min(b.min_x, b.min_y, 10 - b.max_x, 10 - b.max_y) >= 1.0 - 1e-6

    def test_ids_are_unique_and_sequential(self, square_plan, fast_settings):
        result = place(square_plan, fast_settings)
        ids = [i.id for i in result.ilots]
        assert len(set(ids)) == len(ids)
        assert all(i.startswith("ilot_") for i in ids)

    def test_injected_id_factory(self, square_plan, fast_settings):
        engine = IlotPlacementEngine(square_plan, PlacementConfig(), random.Random(1),
                                     settings=fast_settings, id_factory=SequentialIdFactory("unit", 100))
        result = engine.place_ilots()
        assert result.ilots[0].id.startswith("unit_1")


# ============================================================================
# Determinism and configuration
# ============================================================================

class TestDeterminism:
    def test_same_seed_same_layout(self, plan_with_obstacles, fast_settings):
        first = place(plan_with_obstacles, fast_settings, seed=7)
        second = place(plan_with_obstacles, fast_settings, seed=7)
        assert first.ilots == second.ilots
        assert first.score == second.score

    def test_invalid_config_fails_before_placement(self, square_plan, fast_settings):
        with pytest.raises(ConfigError):
            IlotPlacementEngine(square_plan, PlacementConfig(layout_profile=20), random.Random(0),
                                settings=fast_settings)


class TestSpacingRule:
    def test_far_neighbour_is_clear(self):
        mask = spacing_clear(0, 0, 2, 2, np.array([[5.0, 0.0]]), np.array([[2.0, 2.0]]), 1.0)
        assert mask.tolist() == [True]

    def test_diagonal_neighbour_violates_rect_gap(self):
        # center rule passes (3.82 - 2 > 1.0) but the rectangles are only 0.99 apart
        mask = spacing_clear(0, 0, 2, 2, np.array([[2.7, 2.7]]), np.array([[2.0, 2.0]]), 1.0)
        assert mask.tolist() == [False]

    def test_no_neighbours(self):
        assert spacing_clear(0, 0, 1, 1, np.zeros((0, 2)), np.zeros((0, 2)), 1.0).all()


# ============================================================================
# Optimization and densification stages
# ============================================================================

@pytest.fixture
def stages(monkeypatch):
    """Records the layouts entering and leaving the optimization stage."""
    seen = {}
    optimize = IlotPlacementEngine._optimize

    def recording_optimize(self, layout):
        seen["engine"] = self
        seen["primary"] = list(layout)
        seen["optimized"] = optimize(self, layout)
        return seen["optimized"]

    monkeypatch.setattr(IlotPlacementEngine, "_optimize", recording_optimize)
    return seen


@pytest.fixture
def placed_engine(fast_settings):
    """Engine that has run once over a 10x10 room with a 2x2 shaft, ready for stage calls."""
    plan = make_plan(restricted=[RestrictedArea("shaft", rectangle(6, 6, 8, 8), category="stairs", area=4.0)])
    engine = IlotPlacementEngine(plan, PlacementConfig(layout_profile=35), random.Random(3), settings=fast_settings)
    engine.place_ilots()
    return engine


class TestOptimization:
    def test_moves_improve_the_score_and_keep_the_layout_valid(self, square_plan, stages):
        settings = EngineSettings(gap_fill_attempts=40, opportunistic_samples=80,
                                  generations=20, candidates_per_generation=10, refinement_passes=1)
        place(square_plan, settings, seed=5, layout_profile=10)

        engine, primary, optimized = stages["engine"], stages["primary"], stages["optimized"]
        assert len(primary) >= 2
        assert engine.scorer.score(optimized) > engine.scorer.score(primary)
        assert [i.id for i in optimized] == [i.id for i in primary]
        assert [i.area for i in optimized] == [i.area for i in primary]
        assert_spaced(optimized, 1.0)
        assert_contained(engine, optimized)

    def test_empty_layout_is_returned_as_is(self, placed_engine):
        assert placed_engine._optimize([]) == []


class TestDensification:
    def test_fill_ilots_only_on_free_cells(self, placed_engine):
        restricted_before = placed_engine.grid.cells == RESTRICTED
        seed = replace(square_ilot("seed", 3, 3, side=1.0), zone_id="room_1")

        layout = placed_engine._densify([seed])

        added = [i for i in layout if i.id != "seed"]
        assert added
        assert all(i.tier == "fill" for i in added)
        assert_spaced(layout, 1.0)
        assert_contained(placed_engine, layout)
        assert np.array_equal(placed_engine.grid.cells == RESTRICTED, restricted_before)
        assert sum(i.area for i in layout) <= placed_engine.target_area + 1e-6

    def test_grid_tracks_the_final_layout(self, placed_engine):
        layout = placed_engine._densify([replace(square_ilot("seed", 3, 3, side=1.0), zone_id="room_1")])
        for ilot in layout:
            assert placed_engine.grid.value_at(ilot.center.x, ilot.center.y) == 1


class TestRefinement:
    def test_improving_move_is_taken(self, placed_engine):
        layout = [square_ilot("a", 3, 3, side=1.0), square_ilot("b", 5.5, 3, side=1.0)]
        refined = placed_engine._refine(layout)

        assert refined != layout
        assert placed_engine.scorer.score(refined) > placed_engine.scorer.score(layout)
        assert_spaced(refined, 1.0)

    def test_equal_scores_are_not_accepted(self, placed_engine, monkeypatch):
        monkeypatch.setattr(placed_engine.scorer, "score", lambda layout: 50.0)
        layout = [square_ilot("a", 3, 3, side=1.0), square_ilot("b", 5.5, 3, side=1.0)]
        assert placed_engine._refine(layout) == layout


# ============================================================================
# Utilization against the requested profile
# ============================================================================

class TestUtilization:
    @pytest.mark.parametrize("profile", [10, 25, 30, 35])
    def test_lands_within_fifteen_points_below_profile(self, square_plan, profile):
        result = place(square_plan, EngineSettings(), seed=42, layout_profile=profile)
        assert profile - 15 <= result.utilization <= profile + 1e-6
