"""Exceptions raised by the charge planner."""


class PlanningError(Exception):
    """Base class for planning failures."""


class ForecastError(PlanningError):
    """Forecast inputs are unusable (negative values, missing price, wrong length)."""


class UnknownModeError(PlanningError):
    """The simulator was handed something that is not an OutputsMode."""


class NoPathFoundError(PlanningError):
    """The graph optimiser could not reach or reconstruct a final state."""


class BatteryStateError(PlanningError, ValueError):
    """A battery level outside the physically sane range was assigned."""
