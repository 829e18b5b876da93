"""
House/battery simulator.

Given a segment's forecast, its start charge and its mode, works out the end
charge, the grid energy drawn and the solar that had to be curtailed.
"""
from __future__ import annotations

from .battery import BatteryModel
from .errors import UnknownModeError
from .segments import OutputsMode, TimeSegment
from .units import Kwh


class HouseSimulator:
    """Simulates how the house and battery behave under each OutputsMode."""

    def __init__(self, battery: BatteryModel):
        self.battery = battery

    def run_simulation(self, segments: list[TimeSegment]) -> None:
        """Simulate a whole plan in order, carrying battery charge from one segment to the next."""
        if not segments:
            return
        current_charge = segments[0].start_battery_charge_kwh
        for segment in segments:
            segment.start_battery_charge_kwh = current_charge
            self.simulate_segment(segment)
            current_charge = segment.end_battery_charge_kwh

    def simulate_segment(self, segment: TimeSegment) -> None:
        mode = segment.mode
        if mode is OutputsMode.CHARGE_SOLAR_ONLY:
            self._charge_solar_only(segment)
        elif mode is OutputsMode.CHARGE_FROM_GRID_AND_SOLAR:
            self._charge_from_grid_and_solar(segment)
        elif mode is OutputsMode.DISCHARGE:
            self._discharge(segment)
        else:
            raise UnknownModeError(f"Unexpected mode: {mode!r}")

    def _charge_solar_only(self, segment: TimeSegment) -> None:
        new_charge, wastage = self.battery.predict_new_battery_state(
            segment.start_battery_charge_kwh, segment.expected_solar_generation
        )
        segment.end_battery_charge_kwh = min(new_charge, self.battery.capacity)
        segment.wasted_solar_generation = wastage
        # The battery is not allowed to feed the house in this mode.
        segment.actual_grid_usage = segment.expected_consumption

    def _charge_from_grid_and_solar(self, segment: TimeSegment) -> None:
        solar = segment.expected_solar_generation
        grid_rate = self.battery.grid_charge_per_segment
        load = segment.expected_consumption

        new_charge, wastage = self.battery.predict_new_battery_state(
            segment.start_battery_charge_kwh, solar + grid_rate
        )
        segment.end_battery_charge_kwh = min(new_charge, self.battery.capacity)

        if wastage > Kwh.zero():
            room_left = self.battery.capacity - segment.start_battery_charge_kwh
            charged_from_solar = min(room_left / 2, solar)
            room_left -= charged_from_solar
            charged_from_grid = min(room_left, grid_rate)
            segment.wasted_solar_generation = solar - charged_from_solar
            segment.actual_grid_usage = charged_from_grid + load
            return

        segment.wasted_solar_generation = Kwh.zero()
        segment.actual_grid_usage = grid_rate + load

    def _discharge(self, segment: TimeSegment) -> None:
        start = segment.start_battery_charge_kwh
        surplus = segment.expected_solar_generation - segment.expected_consumption

        if surplus < Kwh.zero():
            deficit = abs(surplus)
            battery_discharge = min(start, deficit)
            segment.end_battery_charge_kwh = start - battery_discharge
            segment.actual_grid_usage = deficit - battery_discharge
            segment.wasted_solar_generation = Kwh.zero()
            return

        new_charge, wastage = self.battery.predict_new_battery_state(start, surplus)
        segment.end_battery_charge_kwh = new_charge
        segment.wasted_solar_generation = wastage
        segment.actual_grid_usage = Kwh.zero()
