import math

import pytest

from ilot_designer.core.config import EngineSettings
from ilot_designer.core.models import Bounds, Entrance, FloorPlan, Ilot, Point, RestrictedArea, Wall, Zone


def rectangle(min_x, min_y, max_x, max_y):
    return (Point(min_x, min_y), Point(max_x, min_y), Point(max_x, max_y), Point(min_x, max_y))


def circle(cx, cy, radius, segments=32):
    return tuple(
        Point(cx + radius * math.cos(2 * math.pi * k / segments),
              cy + radius * math.sin(2 * math.pi * k / segments))
        for k in range(segments)
    )


def square_ilot(ilot_id, x, y, side=2.0, tier="medium"):
    return Ilot(id=ilot_id, center=Point(x, y), width=side, height=side, area=side * side, tier=tier)


def make_plan(rooms=None, restricted=(), entrances=(), walls=(), bounds=Bounds(0, 10, 0, 10)):
    if rooms is None:
        rooms = [Zone("room_1", rectangle(0, 0, 10, 10), 100.0)]
    return FloorPlan(
        id="plan",
        bounds=bounds,
        walls=tuple(walls),
        rooms=tuple(rooms),
        restricted_areas=tuple(restricted),
        entrances=tuple(entrances),
    )


@pytest.fixture
def fast_settings():
    return EngineSettings(
        gap_fill_attempts=40,
        opportunistic_samples=80,
        generations=4,
        candidates_per_generation=4,
        refinement_passes=1,
    )


@pytest.fixture
def square_plan():
    return make_plan()


@pytest.fixture
def walled_plan():
    walls = [
        Wall("w1", Point(0, 0), Point(10, 0), category="exterior"),
        Wall("w2", Point(10, 0), Point(10, 10), category="exterior"),
        Wall("w3", Point(10, 10), Point(0, 10), category="exterior"),
        Wall("w4", Point(0, 10), Point(0, 0), category="exterior"),
    ]
    return make_plan(walls=walls)


@pytest.fixture
def plan_with_obstacles():
    restricted = [RestrictedArea("stairs", circle(5, 5, 2), category="stairs",
                                 area=math.pi * 4)]
    entrances = [Entrance("door", Point(0.5, 5), width=1.0)]
    return make_plan(restricted=restricted, entrances=entrances)
