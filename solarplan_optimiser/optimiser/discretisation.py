"""Battery-level discretisation shared by the graph and dynamic-programming optimisers."""
from __future__ import annotations

import math

from .units import Kwh

# Absorbs float noise such as 10 / 0.1 == 100.00000000000001.
_NOISE_DIGITS = 9


class BatteryDiscretiser:
    """
    Maps battery charge onto integer level indices of a fixed step size.

    Rounding is half-to-even at `step_kwh`. Level 0 is an empty battery and
    `max_index` is the first level at or above capacity.
    """

    def __init__(self, step_kwh: float, capacity: Kwh):
        if step_kwh <= 0:
            raise ValueError(f"Battery step must be positive, got {step_kwh}")
        self.step_kwh = step_kwh
        self.capacity = capacity
        self.max_index = math.ceil(round(capacity.value / step_kwh, _NOISE_DIGITS))
        # Highest level that does not overshoot capacity.
        self.max_aligned_index = math.floor(round(capacity.value / step_kwh, _NOISE_DIGITS))

    @property
    def level_count(self) -> int:
        return self.max_index + 1

    def round_index(self, charge: Kwh) -> int:
        """Nearest level index, unclamped."""
        return round(round(charge.value / self.step_kwh, _NOISE_DIGITS))

    def clamp_index(self, charge: Kwh) -> int:
        return max(0, min(self.max_index, self.round_index(charge)))

    def round_charge(self, charge: Kwh) -> Kwh:
        return Kwh(self.round_index(charge) * self.step_kwh)

    def level(self, index: int) -> Kwh:
        """Charge represented by a level index, never above capacity."""
        return min(Kwh(index * self.step_kwh), self.capacity)
