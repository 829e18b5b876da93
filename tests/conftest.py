"""Shared fixtures for the charge planner tests."""
from datetime import date

import pytest

from solarplan_optimiser.optimiser.battery import BatteryModel
from solarplan_optimiser.optimiser.segments import (
    SEGMENTS_PER_DAY,
    HalfHourSegment,
    OutputsMode,
    TimeSegment,
)
from solarplan_optimiser.optimiser.simulator import HouseSimulator
from solarplan_optimiser.optimiser.units import ElectricityRate, Kwh

PLAN_DAY = date(2025, 1, 15)

# Midday solar, multiples of 0.5 kWh so every reachable battery level is on a 0.5 grid.
_DAY_SOLAR = [0.0, 0.5, 0.5, 1.0, 1.0, 1.5, 1.5, 1.5, 1.5, 1.5, 1.0, 1.0, 0.5, 0.5, 0.0, 0.0]


@pytest.fixture
def plan_day():
    return PLAN_DAY


@pytest.fixture
def battery():
    return BatteryModel(capacity=Kwh(10.0), grid_charge_per_segment=Kwh(2.0))


@pytest.fixture
def simulator(battery):
    return HouseSimulator(battery)


@pytest.fixture
def make_segment():
    def _make(solar=0.0, load=0.5, price=0.20, start=0.0, mode=OutputsMode.DISCHARGE, index=0):
        return TimeSegment(
            half_hour_segment=HalfHourSegment.by_index(index),
            expected_solar_generation=Kwh(solar),
            grid_price=ElectricityRate.from_pounds(price),
            expected_consumption=Kwh(load),
            start_battery_charge_kwh=Kwh(start),
            mode=mode,
        )
    return _make


@pytest.fixture
def make_day(make_segment):
    def _make(solar, load, prices, start=0.0):
        segments = [
            make_segment(solar=s, load=l, price=p, index=i)
            for i, (s, l, p) in enumerate(zip(solar, load, prices))
        ]
        segments[0].start_battery_charge_kwh = Kwh(start)
        return segments
    return _make


@pytest.fixture
def flat_forecast():
    """Zero solar, 0.5 kWh load and £0.20/kWh all day."""
    return {
        "solar": [0.0] * SEGMENTS_PER_DAY,
        "load": [0.5] * SEGMENTS_PER_DAY,
        "prices": [0.20] * SEGMENTS_PER_DAY,
    }


@pytest.fixture
def varied_forecast():
    """Cheap nights, midday solar and an expensive 16:00-19:30 peak."""
    solar = [0.0] * 16 + _DAY_SOLAR + [0.0] * 16
    load = [0.5] * 14 + [1.0] * 2 + [0.5] * 16 + [1.0] * 11 + [0.5] * 5
    prices = [0.10] * 14 + [0.25] * 18 + [0.35] * 7 + [0.25] * 9
    return {"solar": solar, "load": load, "prices": prices}


@pytest.fixture
def flat_day(make_day, flat_forecast):
    return make_day(flat_forecast["solar"], flat_forecast["load"], flat_forecast["prices"])


@pytest.fixture
def varied_day(make_day, varied_forecast):
    return make_day(varied_forecast["solar"], varied_forecast["load"], varied_forecast["prices"])
