from typing import Dict, List

import rtree

from ilot_designer.core.models import Ilot


class SpatialIndex:
    """rtree index over ilot bounding boxes."""

    def __init__(self):
        self.idx = rtree.index.Index()
        self._ilots: Dict[int, Ilot] = {}

    def __len__(self):
        return len(self._ilots)

    def insert(self, ilot: Ilot) -> None:
        key = len(self._ilots)
        b = ilot.bounds
        self.idx.insert(key, (b.min_x, b.min_y, b.max_x, b.max_y))
        self._ilots[key] = ilot

    def query(self, min_x: float, min_y: float, max_x: float, max_y: float) -> List[Ilot]:
        # Insertion order keeps results independent of the tree layout
        keys = sorted(self.idx.intersection((min_x, min_y, max_x, max_y)))
        return [self._ilots[k] for k in keys]

    def nearby(self, x: float, y: float, reach: float) -> List[Ilot]:
        return self.query(x - reach, y - reach, x + reach, y + reach)
