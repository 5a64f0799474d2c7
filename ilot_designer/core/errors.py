class LayoutError(Exception):
    """Base class for layout engine failures."""


class InputError(LayoutError):
    """Plan geometry cannot receive ilots (degenerate zone, no available zones).

    Non-fatal: the placement engine absorbs it, logs a warning and returns an
    empty layout.
    """


class ConfigError(LayoutError):
    """Placement configuration is unusable; raised before placement starts."""
