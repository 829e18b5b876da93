"""Home battery model: capacity, grid charge rate and the 30-minute charge transfer."""
from __future__ import annotations

from dataclasses import dataclass

from .segments import MAX_SANE_BATTERY_KWH
from .units import Kwh


@dataclass(frozen=True)
class BatteryModel:
    """
    Battery parameters for one planning run.

    capacity: usable storage.
    grid_charge_per_segment: energy the inverter draws from the grid in one
        half-hour when charging from the grid.
    charge_efficiency: fraction of supplied energy that ends up stored.
    """
    capacity: Kwh
    grid_charge_per_segment: Kwh
    charge_efficiency: float = 1.0

    def __post_init__(self):
        if self.capacity.value <= 0:
            raise ValueError(f"Battery capacity must be positive, got {self.capacity}")
        if self.capacity.value > MAX_SANE_BATTERY_KWH:
            raise ValueError(
                f"Battery capacity {self.capacity} exceeds sanity ceiling of {MAX_SANE_BATTERY_KWH} kWh"
            )
        if self.grid_charge_per_segment.value < 0:
            raise ValueError(
                f"Grid charge per segment cannot be negative, got {self.grid_charge_per_segment}"
            )
        if not 0 < self.charge_efficiency <= 1:
            raise ValueError(f"Charge efficiency must be in (0, 1], got {self.charge_efficiency}")

    def predict_new_battery_state(self, start: Kwh, supplied: Kwh) -> tuple[Kwh, Kwh]:
        """
        Charge after 30 minutes of supplying `supplied` energy, and the wastage.

        Returns (new_charge, wastage) where new_charge is clamped to capacity and
        wastage is whatever the unclamped charge would have exceeded it by.
        """
        unclamped = start + supplied * self.charge_efficiency
        if unclamped > self.capacity:
            return self.capacity, unclamped - self.capacity
        return unclamped, Kwh.zero()
