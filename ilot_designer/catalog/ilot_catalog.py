import math
from dataclasses import dataclass
from typing import List, Tuple

# (tier, area) from largest to smallest; weights depend on the layout profile
TIER_AREAS = (
    ("large", 6.0),
    ("medium-large", 4.5),
    ("medium", 3.0),
    ("small-medium", 2.0),
    ("small", 1.5),
    ("micro", 1.0),
)
SMALLEST_TIER_AREA = TIER_AREAS[-1][1]

# Densification sizes, tagged with the "fill" tier
FILL_AREAS = (1.0, 0.8, 0.6, 0.4)
FILL_TIER = "fill"

GAP_TIER_LIMIT = 2.0


@dataclass(frozen=True)
class IlotTier:
    name: str
    area: float
    weight: float

    @property
    def side(self) -> float:
        return math.sqrt(self.area)


class IlotCatalog:
    def __init__(self, tiers: List[IlotTier], fill_tiers: List[IlotTier]):
        self.tiers = tiers
        self.fill_tiers = fill_tiers

    @classmethod
    def for_profile(cls, layout_profile: int, max_ilot_size: float) -> "IlotCatalog":
        """Build the weighted catalogue for one run.

        Denser profiles shift weight towards the large tier and away from the
        small-medium one. Tiers above ``max_ilot_size`` are dropped.
        """
        target = layout_profile / 100
        weights = {
            "large": 0.4 if target > 0.3 else 0.2,
            "medium-large": 0.35,
            "medium": 0.25,
            "small-medium": 0.15 if target > 0.25 else 0.3,
            "small": 0.1,
            "micro": 0.05,
        }
        tiers = [IlotTier(name, area, weights[name])
                 for name, area in TIER_AREAS if area <= max_ilot_size]
        fill = [IlotTier(FILL_TIER, area, 1.0) for area in FILL_AREAS if area <= max_ilot_size]
        return cls(tiers, fill)

    def small_tiers(self, limit: float = GAP_TIER_LIMIT) -> List[IlotTier]:
        return [t for t in self.tiers if t.area <= limit]

    @property
    def smallest_area(self) -> float:
        return min((t.area for t in self.tiers), default=math.inf)

    @property
    def max_half_extent(self) -> float:
        sides = [t.side for t in self.tiers + self.fill_tiers]
        return max(sides) / 2 if sides else 0.0

    @staticmethod
    def get_ilot_dimensions(tier: IlotTier) -> Tuple[float, float]:
        """Ilots are square: width, height."""
        return tier.side, tier.side
