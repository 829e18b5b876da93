"""
Forecast collaborators consumed by the charge planner.

The planner only needs three lookups per half-hour segment: solar generation,
household load and grid price. Anything that provides those methods can be
plugged in; the list-backed implementations here serve the HTTP API and tests.
"""
from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Protocol

from .errors import ForecastError
from .segments import SEGMENTS_PER_DAY, HalfHourSegment
from .units import ElectricityRate, Kwh

_LOGGER = logging.getLogger(__name__)


class SolarForecaster(Protocol):
    def predict_solar_energy(self, day_of_year: int, segment: HalfHourSegment) -> Kwh: ...


class LoadForecaster(Protocol):
    def predict_load(self, day_of_year: int, segment: HalfHourSegment) -> Kwh: ...


class PriceSupplier(Protocol):
    def get_price(self, day: date, segment: HalfHourSegment) -> ElectricityRate | None: ...


def _check_length(name: str, values: list) -> None:
    if len(values) != SEGMENTS_PER_DAY:
        raise ForecastError(f"{name} must have {SEGMENTS_PER_DAY} entries, got {len(values)}")


class StaticSolarForecast:
    """Solar generation per segment, in kWh, identical for any day."""

    def __init__(self, values_kwh: list[float]):
        _check_length("solar_forecast", values_kwh)
        self._values = [Kwh(v) for v in values_kwh]

    def predict_solar_energy(self, day_of_year: int, segment: HalfHourSegment) -> Kwh:
        return self._values[segment.index]


class StaticLoadForecast:
    """Household consumption per segment, in kWh, identical for any day."""

    def __init__(self, values_kwh: list[float]):
        _check_length("load_forecast", values_kwh)
        self._values = [Kwh(v) for v in values_kwh]

    def predict_load(self, day_of_year: int, segment: HalfHourSegment) -> Kwh:
        return self._values[segment.index]


class StaticPriceSupplier:
    """Grid price per segment in GBP/kWh; None marks a segment with no known price."""

    def __init__(self, prices_gbp: list[float | None]):
        _check_length("prices", prices_gbp)
        self._rates = [None if p is None else ElectricityRate.from_pounds(p) for p in prices_gbp]

    def get_price(self, day: date, segment: HalfHourSegment) -> ElectricityRate | None:
        return self._rates[segment.index]


class AveragePriceCurve:
    """
    Read-only table of typical prices, keyed by day of month then segment.

    Stored in GBP/kWh. The JSON form matches the supplier's published averages:
    {"<day of month>": [{"start_hour": 0, "start_minute": 0, "cost": 15.2}, ...]}
    with cost in pence.
    """

    def __init__(self, prices_by_day: dict[int, list[float]]):
        for day, prices in prices_by_day.items():
            _check_length(f"average prices for day {day}", prices)
        self._prices = {day: tuple(prices) for day, prices in prices_by_day.items()}

    @classmethod
    def flat(cls, prices_gbp: list[float]) -> AveragePriceCurve:
        """The same curve for every day of the month."""
        return cls({day: list(prices_gbp) for day in range(1, 32)})

    @classmethod
    def from_json(cls, source: str | Path | dict) -> AveragePriceCurve:
        if isinstance(source, dict):
            raw = source
        else:
            raw = json.loads(Path(source).read_text())

        prices_by_day = {}
        for day, rows in raw.items():
            prices = [None] * SEGMENTS_PER_DAY
            for row in rows:
                segment = HalfHourSegment.by_time(int(row["start_hour"]), int(row["start_minute"]))
                prices[segment.index] = float(row["cost"]) / 100
            for index, price in enumerate(prices):
                if price is None:
                    raise ForecastError(
                        f"No average price for day {day} at segment {HalfHourSegment.by_index(index)}"
                    )
            prices_by_day[int(day)] = prices
        return cls(prices_by_day)

    def get_price(self, day: date, segment: HalfHourSegment) -> ElectricityRate:
        prices = self._prices.get(day.day)
        if prices is None:
            raise ForecastError(f"No average prices for day {day.day}")
        return ElectricityRate.from_pounds(prices[segment.index])


class FallbackPriceSupplier:
    """Uses the primary supplier, filling gaps from an injected average curve."""

    def __init__(self, primary: PriceSupplier, curve: AveragePriceCurve):
        self.primary = primary
        self.curve = curve

    def get_price(self, day: date, segment: HalfHourSegment) -> ElectricityRate:
        rate = self.primary.get_price(day, segment)
        if rate is not None:
            return rate
        rate = self.curve.get_price(day, segment)
        _LOGGER.warning(f"No price for {day} {segment}, using average price {rate}")
        return rate
