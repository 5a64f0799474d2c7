from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class Bounds:
    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def expanded(self, margin: float) -> "Bounds":
        return Bounds(self.min_x - margin, self.max_x + margin,
                      self.min_y - margin, self.max_y + margin)

    def as_dict(self) -> dict:
        return {'minX': self.min_x, 'maxX': self.max_x, 'minY': self.min_y, 'maxY': self.max_y}


@dataclass(frozen=True)
class Wall:
    id: str
    start: Point
    end: Point
    thickness: float = 0.2
    category: str = "interior"  # exterior | interior | load-bearing


@dataclass(frozen=True)
class Zone:
    id: str
    boundaries: Tuple[Point, ...]
    area: float
    category: str = "available"  # available | restricted | entrance
    name: Optional[str] = None


@dataclass(frozen=True)
class RestrictedArea:
    id: str
    boundaries: Tuple[Point, ...]
    category: str = "utility"  # stairs | elevator | utility | mechanical
    area: float = 0.0


@dataclass(frozen=True)
class Entrance:
    id: str
    position: Point
    width: float = 1.0
    category: str = "main"  # main | emergency | service
    angle: float = 0.0


@dataclass(frozen=True)
class FloorPlan:
    id: str
    bounds: Bounds
    walls: Tuple[Wall, ...] = ()
    rooms: Tuple[Zone, ...] = ()
    restricted_areas: Tuple[RestrictedArea, ...] = ()
    entrances: Tuple[Entrance, ...] = ()
    name: str = "Untitled Plan"

    @property
    def total_area(self) -> float:
        return self.bounds.area

    @property
    def available_area(self) -> float:
        room_area = sum(r.area for r in self.rooms if r.category == "available")
        restricted = sum(a.area for a in self.restricted_areas)
        return max(0.0, room_area - restricted)


@dataclass(frozen=True)
class Ilot:
    id: str
    center: Point
    width: float
    height: float
    area: float
    tier: str
    rotation: float = 0.0
    placed: bool = True
    zone_id: Optional[str] = None

    @property
    def half_extent(self) -> float:
        return max(self.width, self.height) / 2

    @property
    def bounds(self) -> Bounds:
        hw, hh = self.width / 2, self.height / 2
        return Bounds(self.center.x - hw, self.center.x + hw,
                      self.center.y - hh, self.center.y + hh)

    @property
    def corners(self) -> List[Point]:
        b = self.bounds
        return [
            Point(b.min_x, b.min_y),
            Point(b.max_x, b.min_y),
            Point(b.max_x, b.max_y),
            Point(b.min_x, b.max_y)
        ]

    @property
    def edge_points(self) -> List[Point]:
        """Edge midpoints: left, right, bottom, top."""
        hw, hh = self.width / 2, self.height / 2
        cx, cy = self.center
        return [Point(cx - hw, cy), Point(cx + hw, cy), Point(cx, cy - hh), Point(cx, cy + hh)]


@dataclass(frozen=True)
class Corridor:
    id: str
    path: Tuple[Point, ...]
    width: float
    connected_ilot_ids: Tuple[str, ...]
    length: float
    type: str = "row"  # row | spine | access
    anchor_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProgressEvent:
    stage: str  # analyzing | placing | corridors | complete
    progress: int
    message: str


@dataclass
class PlacementResult:
    ilots: List[Ilot] = field(default_factory=list)
    utilization: float = 0.0
    score: float = 0.0
    available_area: float = 0.0
    target_area: float = 0.0
    zones_used: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
