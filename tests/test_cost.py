"""
Tests for the per-segment cost model.

Charging modes bill their grid usage as is. DISCHARGE bills grid usage less the
solar used and the battery's contribution, floored at zero. Curtailed solar is
always charged at the grid rate.
"""
import pytest

from solarplan_optimiser.optimiser.segments import OutputsMode
from solarplan_optimiser.optimiser.units import Kwh


def test_grid_charging_bills_the_full_grid_draw(make_segment, simulator):
    segment = make_segment(load=0.5, price=0.20, mode=OutputsMode.CHARGE_FROM_GRID_AND_SOLAR)
    simulator.simulate_segment(segment)

    assert segment.actual_grid_usage == Kwh(2.5)
    assert segment.cost().pounds == pytest.approx(0.50)


def test_charging_modes_get_no_solar_offset(make_segment):
    segment = make_segment(solar=1.0, price=0.20, mode=OutputsMode.CHARGE_FROM_GRID_AND_SOLAR)
    segment.actual_grid_usage = Kwh(2.0)

    assert segment.billed_grid_usage() == Kwh(2.0)
    assert segment.cost().pounds == pytest.approx(0.40)


def test_wasted_solar_is_charged_at_grid_rate(make_segment, simulator):
    segment = make_segment(solar=2.0, load=0.5, price=0.20, start=9.0, mode=OutputsMode.CHARGE_SOLAR_ONLY)
    simulator.simulate_segment(segment)

    # 0.5 kWh load from the grid plus 1 kWh curtailed.
    assert segment.cost().pounds == pytest.approx(0.30)


def test_discharge_with_solar_surplus_only_pays_for_waste(make_segment, simulator):
    segment = make_segment(solar=2.0, load=0.5, price=0.20, start=9.0)
    simulator.simulate_segment(segment)

    assert segment.actual_grid_usage == Kwh.zero()
    assert segment.wasted_solar_generation == Kwh(0.5)
    assert segment.cost().pounds == pytest.approx(0.10)


def test_discharge_deducts_battery_contribution(make_segment, simulator):
    segment = make_segment(solar=0.0, load=1.0, price=0.20, start=0.3)
    simulator.simulate_segment(segment)

    assert segment.actual_grid_usage.value == pytest.approx(0.7)
    assert segment.billed_grid_usage().value == pytest.approx(0.4)
    assert segment.cost().pounds == pytest.approx(0.08)


def test_discharge_deducts_solar_used(make_segment):
    segment = make_segment(solar=0.5, load=1.0, price=0.20)
    segment.actual_grid_usage = Kwh(0.5)

    assert segment.billed_grid_usage() == Kwh.zero()


def test_billed_usage_never_negative(make_segment):
    segment = make_segment(solar=3.0, load=1.0, start=4.0)
    segment.end_battery_charge_kwh = Kwh(1.0)
    segment.actual_grid_usage = Kwh(0.5)

    assert segment.billed_grid_usage() == Kwh.zero()
    assert segment.cost().pounds == 0.0


def test_empty_battery_discharge_pays_for_load(make_segment, simulator):
    segment = make_segment(solar=0.0, load=0.5, price=0.20)
    simulator.simulate_segment(segment)

    assert segment.cost().pounds == pytest.approx(0.10)
