"""
Tests for zone selection, the ilot catalogue and configuration parsing.
"""
import pytest

from conftest import make_plan, rectangle
from ilot_designer.catalog.ilot_catalog import FILL_TIER, IlotCatalog
from ilot_designer.core.config import EngineSettings, PlacementConfig, SpurPolicy
from ilot_designer.core.errors import ConfigError, InputError
from ilot_designer.core.models import Entrance, Point, Zone
from ilot_designer.optimization.zone_selector import ZoneSelector


# ============================================================================
# Zone selection
# ============================================================================

class TestZoneSelector:
    def test_square_zone_ranks_before_elongated(self):
        long_zone = Zone("long", rectangle(0, 0, 20, 5), 100.0)
        square = Zone("square", rectangle(0, 10, 10, 20), 100.0)
        plan = make_plan(rooms=[long_zone, square])
        assert [z.id for z in ZoneSelector().select(plan)] == ["square", "long"]

    def test_ties_keep_input_order(self):
        a = Zone("a", rectangle(0, 0, 10, 10), 100.0)
        b = Zone("b", rectangle(20, 0, 30, 10), 100.0)
        plan = make_plan(rooms=[a, b])
        assert [z.id for z in ZoneSelector().select(plan)] == ["a", "b"]

    def test_efficiency(self):
        assert ZoneSelector.efficiency(Zone("s", rectangle(0, 0, 10, 10), 100.0)) == pytest.approx(1.0)
        assert ZoneSelector.efficiency(Zone("l", rectangle(0, 0, 20, 5), 100.0)) == pytest.approx(1 / 3)

    def test_skips_small_degenerate_and_unavailable_zones(self):
        rooms = [
            Zone("tiny", rectangle(0, 0, 2, 2), 4.0),
            Zone("line", (Point(0, 0), Point(5, 5)), 12.0),
            Zone("stairwell", rectangle(0, 0, 10, 10), 100.0, category="restricted"),
            Zone("ok", rectangle(0, 0, 10, 10), 100.0),
        ]
        assert [z.id for z in ZoneSelector().select(make_plan(rooms=rooms))] == ["ok"]

    def test_no_zone_left_raises_input_error(self):
        rooms = [Zone("tiny", rectangle(0, 0, 2, 2), 4.0)]
        with pytest.raises(InputError):
            ZoneSelector().select(make_plan(rooms=rooms))

    def test_check_zone_rejects_degenerate_zone(self):
        with pytest.raises(InputError):
            ZoneSelector().check_zone(Zone("line", (Point(0, 0), Point(5, 5)), 12.0))

    def test_entrance_at_centroid_excludes_zone(self):
        plan = make_plan(entrances=[Entrance("door", Point(5, 5))])
        with pytest.raises(InputError):
            ZoneSelector(entrance_clearance=2.5).select(plan)
        assert len(ZoneSelector(entrance_clearance=0.0).select(plan)) == 1


# ============================================================================
# Catalogue
# ============================================================================

class TestIlotCatalog:
    def test_dense_profile_weights(self):
        weights = {t.name: t.weight for t in IlotCatalog.for_profile(35, 6.0).tiers}
        assert weights["large"] == 0.4
        assert weights["small-medium"] == 0.15

    def test_sparse_profile_weights(self):
        weights = {t.name: t.weight for t in IlotCatalog.for_profile(25, 6.0).tiers}
        assert weights["large"] == 0.2
        assert weights["small-medium"] == 0.3

    def test_max_size_drops_large_tiers(self):
        catalog = IlotCatalog.for_profile(25, 4.0)
        assert [t.name for t in catalog.tiers] == ["medium", "small-medium", "small", "micro"]
        assert [t.area for t in catalog.small_tiers()] == [2.0, 1.5, 1.0]

    def test_fill_tiers(self):
        catalog = IlotCatalog.for_profile(25, 0.9)
        assert catalog.tiers == []
        assert [t.area for t in catalog.fill_tiers] == [0.8, 0.6, 0.4]
        assert all(t.name == FILL_TIER for t in catalog.fill_tiers)

    def test_square_dimensions(self):
        tier = IlotCatalog.for_profile(25, 6.0).tiers[0]
        width, height = IlotCatalog.get_ilot_dimensions(tier)
        assert width == height == pytest.approx(6.0 ** 0.5)


# ============================================================================
# Configuration
# ============================================================================

class TestPlacementConfig:
    def test_from_camel_case_dict(self):
        config = PlacementConfig.from_dict({
            "layoutProfile": 30,
            "corridorWidth": 1.5,
            "minIlotSpacing": 0.8,
            "allowWallTouching": False,
            "unknown": "ignored",
        })
        assert config.layout_profile == 30
        assert config.corridor_width == 1.5
        assert config.min_ilot_spacing == 0.8
        assert config.allow_wall_touching is False
        assert config.as_dict()["layoutProfile"] == 30

    def test_defaults_are_valid(self):
        assert PlacementConfig().validate() == PlacementConfig()

    @pytest.mark.parametrize("overrides", [
        {"layout_profile": 20},
        {"corridor_width": 0},
        {"min_ilot_spacing": -1},
        {"max_ilot_size": 0.5},
    ])
    def test_invalid_values_raise_config_error(self, overrides):
        with pytest.raises(ConfigError):
            PlacementConfig(**overrides).validate()


class TestEngineSettings:
    def test_spur_policy_from_string(self):
        settings = EngineSettings.from_dict({"spur_policy": "never", "generations": 3})
        assert settings.spur_policy is SpurPolicy.NEVER
        assert settings.generations == 3

    def test_unknown_spur_policy_raises_config_error(self):
        with pytest.raises(ConfigError, match="spur_policy"):
            EngineSettings.from_dict({"spur_policy": "sometimes"})

    def test_invalid_resolution(self):
        with pytest.raises(ConfigError):
            EngineSettings(grid_resolution=0).validate()
