"""Tests for half-hour slots and the per-segment plan record."""
from datetime import date, datetime

import pytest

from solarplan_optimiser.optimiser.errors import BatteryStateError
from solarplan_optimiser.optimiser.segments import (
    ALL_SEGMENTS,
    SEGMENTS_PER_DAY,
    HalfHourSegment,
    OutputsMode,
    apply_modes,
    calculate_plan_cost,
    clone_segments,
)
from solarplan_optimiser.optimiser.units import Kwh


def test_day_has_48_ordered_segments():
    assert len(ALL_SEGMENTS) == SEGMENTS_PER_DAY
    assert [s.index for s in ALL_SEGMENTS] == list(range(SEGMENTS_PER_DAY))
    assert str(ALL_SEGMENTS[0]) == "00:00 - 00:30"
    assert str(ALL_SEGMENTS[1]) == "00:30 - 01:00"
    assert str(ALL_SEGMENTS[-1]) == "23:30 - 00:00"


def test_lookup_by_index_and_time():
    assert HalfHourSegment.by_index(21) == HalfHourSegment(10, 30)
    assert HalfHourSegment.by_time(10, 30).index == 21
    assert HalfHourSegment.from_datetime(datetime(2025, 6, 1, 17, 0)).index == 34


@pytest.mark.parametrize("index", [-1, 48])
def test_by_index_out_of_range(index):
    with pytest.raises(IndexError):
        HalfHourSegment.by_index(index)


@pytest.mark.parametrize("hour,minute", [(24, 0), (-1, 0), (10, 15)])
def test_by_time_rejects_invalid_times(hour, minute):
    with pytest.raises(ValueError):
        HalfHourSegment.by_time(hour, minute)


def test_from_datetime_rejects_unaligned_times():
    with pytest.raises(ValueError):
        HalfHourSegment.from_datetime(datetime(2025, 6, 1, 17, 10))


def test_last_segment_ends_next_day():
    start, end = HalfHourSegment.by_index(47).to_datetimes(date(2025, 1, 31))
    assert start == datetime(2025, 1, 31, 23, 30)
    assert end == datetime(2025, 2, 1, 0, 0)


def test_short_codes():
    assert [m.short_code for m in OutputsMode] == ["G", "S", "D"]


def test_end_charge_above_sanity_ceiling_is_rejected(make_segment):
    segment = make_segment()
    with pytest.raises(BatteryStateError):
        segment.end_battery_charge_kwh = Kwh(30.5)


def test_negative_end_charge_is_rejected(make_segment):
    segment = make_segment()
    with pytest.raises(BatteryStateError):
        segment.end_battery_charge_kwh = Kwh(-0.1)


def test_battery_state_error_is_a_value_error(make_segment):
    segment = make_segment()
    with pytest.raises(ValueError):
        segment.end_battery_charge_kwh = Kwh(100.0)


def test_clone_is_independent(make_segment):
    original = make_segment(solar=1.0, start=2.0)
    copy = original.clone()
    copy.mode = OutputsMode.CHARGE_SOLAR_ONLY
    copy.start_battery_charge_kwh = Kwh(5.0)

    assert original.mode is OutputsMode.DISCHARGE
    assert original.start_battery_charge_kwh == Kwh(2.0)
    assert copy.expected_solar_generation == original.expected_solar_generation


def test_apply_modes_and_clone_segments(flat_day):
    clones = clone_segments(flat_day)
    apply_modes([OutputsMode.CHARGE_FROM_GRID_AND_SOLAR] * 3, clones)

    assert [s.mode for s in clones[:4]] == [OutputsMode.CHARGE_FROM_GRID_AND_SOLAR] * 3 + [OutputsMode.DISCHARGE]
    assert all(s.mode is OutputsMode.DISCHARGE for s in flat_day)


def test_to_dict_row(make_segment, simulator, plan_day):
    segment = make_segment(solar=0.0, load=0.5, price=0.20, start=1.0, index=20)
    simulator.simulate_segment(segment)

    row = segment.to_dict(plan_day)
    assert row["segment"] == "10:00 - 10:30"
    assert row["mode"] == "discharge"
    assert row["start_battery_kwh"] == 1.0
    assert row["end_battery_kwh"] == 0.5
    assert row["grid_usage_kwh"] == 0.0
    assert row["cost_gbp"] == 0.0
    assert row["start"] == "2025-01-15T10:00:00"
    assert row["end"] == "2025-01-15T10:30:00"
    assert "start" not in segment.to_dict()


def test_calculate_plan_cost(flat_day, simulator):
    simulator.run_simulation(flat_day)
    assert calculate_plan_cost(flat_day).pounds == pytest.approx(4.80)
