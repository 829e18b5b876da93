"""
Half-hour segments of the planning day and the per-segment plan record.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum

from .errors import BatteryStateError
from .units import ElectricityRate, Gbp, Kwh

SEGMENTS_PER_DAY = 48

# Anything above this is a programming error, not a big battery.
MAX_SANE_BATTERY_KWH = 30.0


class OutputsMode(Enum):
    """Inverter control decision for one segment."""
    CHARGE_FROM_GRID_AND_SOLAR = "charge_from_grid_and_solar"
    CHARGE_SOLAR_ONLY = "charge_solar_only"
    DISCHARGE = "discharge"

    @property
    def short_code(self) -> str:
        return _SHORT_CODES[self]


_SHORT_CODES = {
    OutputsMode.CHARGE_FROM_GRID_AND_SOLAR: "G",
    OutputsMode.CHARGE_SOLAR_ONLY: "S",
    OutputsMode.DISCHARGE: "D",
}


@dataclass(frozen=True)
class HalfHourSegment:
    """One of the 48 fixed half-hour slots of a day."""
    hour_start: int
    minute_start: int

    def __post_init__(self):
        if not 0 <= self.hour_start < 24:
            raise ValueError(f"Hour must be between 0 and 23, got {self.hour_start}")
        if self.minute_start not in (0, 30):
            raise ValueError(f"Minute must be 0 or 30, got {self.minute_start}")

    @property
    def index(self) -> int:
        return self.hour_start * 2 + (1 if self.minute_start == 30 else 0)

    @property
    def hour_end(self) -> int:
        return (self.hour_start + 1) % 24 if self.minute_start == 30 else self.hour_start

    @property
    def minute_end(self) -> int:
        return 0 if self.minute_start == 30 else 30

    @classmethod
    def by_index(cls, index: int) -> HalfHourSegment:
        if not 0 <= index < SEGMENTS_PER_DAY:
            raise IndexError(f"Index must be between 0 and {SEGMENTS_PER_DAY - 1}, got {index}")
        return ALL_SEGMENTS[index]

    @classmethod
    def by_time(cls, hour: int, minute: int) -> HalfHourSegment:
        if not 0 <= hour < 24:
            raise ValueError(f"Hour must be between 0 and 23, got {hour}")
        if minute not in (0, 30):
            raise ValueError(f"Minute must be either 0 or 30, got {minute}")
        return ALL_SEGMENTS[hour * 2 + (1 if minute == 30 else 0)]

    @classmethod
    def from_datetime(cls, moment: datetime) -> HalfHourSegment:
        if moment.minute not in (0, 30) or moment.second or moment.microsecond:
            raise ValueError("Datetime must be on the hour or half-hour")
        return cls.by_time(moment.hour, moment.minute)

    def to_datetimes(self, day: date) -> tuple[datetime, datetime]:
        """Start and end of this slot on the given day; the 23:30 slot ends the next day."""
        start = datetime(day.year, day.month, day.day, self.hour_start, self.minute_start)
        return start, start + timedelta(minutes=30)

    def __str__(self) -> str:
        return (f"{self.hour_start:02d}:{self.minute_start:02d} - "
                f"{self.hour_end:02d}:{self.minute_end:02d}")


ALL_SEGMENTS: tuple[HalfHourSegment, ...] = tuple(
    HalfHourSegment(hour, minute) for hour in range(24) for minute in (0, 30)
)


def _check_battery_level(value: Kwh) -> None:
    if value.value > MAX_SANE_BATTERY_KWH:
        raise BatteryStateError(
            f"End battery charge {value} exceeds sanity ceiling of {MAX_SANE_BATTERY_KWH} kWh"
        )
    if value.value < 0:
        raise BatteryStateError(f"End battery charge {value} is negative")


@dataclass
class TimeSegment:
    """Forecast inputs, chosen mode and simulated outputs for one half-hour slot."""
    half_hour_segment: HalfHourSegment
    expected_solar_generation: Kwh
    grid_price: ElectricityRate
    expected_consumption: Kwh
    start_battery_charge_kwh: Kwh = field(default_factory=Kwh.zero)
    end_battery_charge_kwh: Kwh = field(default_factory=Kwh.zero)
    mode: OutputsMode = OutputsMode.DISCHARGE
    wasted_solar_generation: Kwh = field(default_factory=Kwh.zero)
    actual_grid_usage: Kwh = field(default_factory=Kwh.zero)

    def __setattr__(self, name, value):
        if name == "end_battery_charge_kwh":
            _check_battery_level(value)
        super().__setattr__(name, value)

    def clone(self) -> TimeSegment:
        return replace(self)

    def billed_grid_usage(self) -> Kwh:
        """
        Grid energy that is actually paid for.

        In DISCHARGE mode the solar that was used and the energy the battery gave up
        are taken off the recorded grid usage (never below zero). Charging modes
        already account for their solar/grid split, so they bill the grid usage as is.
        """
        if self.mode is not OutputsMode.DISCHARGE:
            return self.actual_grid_usage

        usable_solar = max(self.expected_solar_generation - self.wasted_solar_generation, Kwh.zero())
        solar_used = min(usable_solar, self.actual_grid_usage)
        battery_contribution = max(
            self.start_battery_charge_kwh - self.end_battery_charge_kwh, Kwh.zero()
        )
        return max(self.actual_grid_usage - solar_used - battery_contribution, Kwh.zero())

    def cost(self) -> Gbp:
        # Curtailed solar is charged at the grid rate as a planning penalty.
        return (self.billed_grid_usage() * self.grid_price
                + self.wasted_solar_generation * self.grid_price)

    def to_dict(self, day: date | None = None) -> dict:
        row = {
            "segment": str(self.half_hour_segment),
            "mode": self.mode.value,
            "solar_kwh": round(self.expected_solar_generation.value, 4),
            "consumption_kwh": round(self.expected_consumption.value, 4),
            "price_gbp_per_kwh": round(self.grid_price.price_per_kwh.pounds, 5),
            "start_battery_kwh": round(self.start_battery_charge_kwh.value, 4),
            "end_battery_kwh": round(self.end_battery_charge_kwh.value, 4),
            "grid_usage_kwh": round(self.actual_grid_usage.value, 4),
            "wasted_solar_kwh": round(self.wasted_solar_generation.value, 4),
            "cost_gbp": round(self.cost().pounds, 4),
        }
        if day is not None:
            start, end = self.half_hour_segment.to_datetimes(day)
            row["start"] = start.isoformat()
            row["end"] = end.isoformat()
        return row

    def __str__(self) -> str:
        return (f"{self.half_hour_segment}: Solar {self.expected_solar_generation}, "
                f"Load {self.expected_consumption}, Price {self.grid_price}, "
                f"Mode {self.mode.name}, Battery {self.start_battery_charge_kwh} -> "
                f"{self.end_battery_charge_kwh}")


def calculate_plan_cost(segments: list[TimeSegment]) -> Gbp:
    return Gbp.sum(segments, TimeSegment.cost)


def clone_segments(segments: list[TimeSegment]) -> list[TimeSegment]:
    return [segment.clone() for segment in segments]


def apply_modes(modes, segments: list[TimeSegment]) -> None:
    for segment, mode in zip(segments, modes):
        segment.mode = mode
