"""Placement configuration and engine tuning knobs.

``PlacementConfig`` is what the caller chooses per run; ``EngineSettings``
holds the fixed budgets and clearances the engines work with.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

from ilot_designer.catalog.ilot_catalog import SMALLEST_TIER_AREA
from ilot_designer.core.errors import ConfigError

LAYOUT_PROFILES = (10, 25, 30, 35)

# camelCase keys used by the CAD/UI collaborators
_CONFIG_ALIASES = {
    'layoutProfile': 'layout_profile',
    'targetDensity': 'layout_profile',
    'corridorWidth': 'corridor_width',
    'minIlotSpacing': 'min_ilot_spacing',
    'maxIlotSize': 'max_ilot_size',
    'allowWallTouching': 'allow_wall_touching',
    'respectEntranceClearance': 'respect_entrance_clearance',
}


class SpurPolicy(str, Enum):
    ALWAYS = "always"
    UNCONNECTED = "unconnected"
    NEVER = "never"


@dataclass(frozen=True)
class PlacementConfig:
    layout_profile: int = 25
    corridor_width: float = 1.2
    min_ilot_spacing: float = 1.0
    max_ilot_size: float = 6.0
    allow_wall_touching: bool = True
    respect_entrance_clearance: bool = True

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]]) -> "PlacementConfig":
        options = options or {}
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in options.items():
            name = _CONFIG_ALIASES.get(key, key)
            if name in known:
                values[name] = value
        return cls(**values)

    def validate(self) -> "PlacementConfig":
        if self.layout_profile not in LAYOUT_PROFILES:
            raise ConfigError(f"layout_profile must be one of {LAYOUT_PROFILES}, got {self.layout_profile}")
        if self.corridor_width <= 0:
            raise ConfigError(f"corridor_width must be positive, got {self.corridor_width}")
        if self.min_ilot_spacing <= 0:
            raise ConfigError(f"min_ilot_spacing must be positive, got {self.min_ilot_spacing}")
        if self.max_ilot_size <= 0:
            raise ConfigError(f"max_ilot_size must be positive, got {self.max_ilot_size}")
        if self.max_ilot_size < SMALLEST_TIER_AREA:
            raise ConfigError(
                f"max_ilot_size {self.max_ilot_size} is smaller than the smallest tier ({SMALLEST_TIER_AREA})"
            )
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {
            'layoutProfile': self.layout_profile,
            'corridorWidth': self.corridor_width,
            'minIlotSpacing': self.min_ilot_spacing,
            'maxIlotSize': self.max_ilot_size,
            'allowWallTouching': self.allow_wall_touching,
            'respectEntranceClearance': self.respect_entrance_clearance,
        }


@dataclass(frozen=True)
class EngineSettings:
    # Occupancy grid
    grid_resolution: float = 0.2
    wall_buffer: float = 0.3
    entrance_clearance: float = 2.5
    restricted_clearance: float = 0.5

    # Zone selection
    min_zone_area: float = 10.0

    # Stage 1
    lattice_inset: float = 1.0
    gap_fill_attempts: int = 200
    gap_search_tries: int = 50
    opportunistic_samples: int = 500

    # Stage 2
    generations: int = 100
    candidates_per_generation: int = 20
    mutation_fraction: float = 0.1
    perturbation_radius: float = 1.0

    # Stage 3
    refinement_passes: int = 3
    refinement_step: float = 0.2

    # Scoring
    accessibility_samples: int = 20
    restricted_penalty_distance: float = 1.5
    entrance_penalty_distance: float = 2.5

    # Corridors
    spur_policy: SpurPolicy = SpurPolicy.ALWAYS

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]]) -> "EngineSettings":
        options = options or {}
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in options.items() if k in known}
        if 'spur_policy' in values:
            try:
                values['spur_policy'] = SpurPolicy(values['spur_policy'])
            except ValueError:
                raise ConfigError(f"unknown spur_policy {values['spur_policy']!r}") from None
        return cls(**values)

    def validate(self) -> "EngineSettings":
        if self.grid_resolution <= 0:
            raise ConfigError(f"grid_resolution must be positive, got {self.grid_resolution}")
        for name in ('gap_fill_attempts', 'gap_search_tries', 'opportunistic_samples', 'generations',
                     'candidates_per_generation', 'refinement_passes'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.accessibility_samples < 2:
            raise ConfigError("accessibility_samples must be at least 2")
        for name in ('wall_buffer', 'entrance_clearance', 'restricted_clearance', 'min_zone_area'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        return self
