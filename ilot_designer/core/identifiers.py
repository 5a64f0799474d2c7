import itertools


class SequentialIdFactory:
    """Monotonic id source, e.g. ``ilot_000``, ``ilot_001``.

    Injected into the engines so ids depend only on creation order.
    """

    def __init__(self, prefix: str, start: int = 0):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}_{next(self._counter):03d}"
