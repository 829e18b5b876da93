"""Tests for the energy and money value types."""
import pytest

from solarplan_optimiser.optimiser.units import ElectricityRate, Gbp, Kwh


def test_kwh_arithmetic():
    assert Kwh(1.5) + Kwh(2.0) == Kwh(3.5)
    assert Kwh(1.0) - Kwh(2.5) == Kwh(-1.5)
    assert -Kwh(2.0) == Kwh(-2.0)
    assert abs(Kwh(-3.0)) == Kwh(3.0)
    assert Kwh(-3.0).absolute() == Kwh(3.0)
    assert Kwh(2.0) * 3 == Kwh(6.0)
    assert 0.5 * Kwh(4.0) == Kwh(2.0)
    assert Kwh(3.0) / 2 == Kwh(1.5)


def test_kwh_division_by_zero():
    with pytest.raises(ZeroDivisionError):
        Kwh(1.0) / 0


def test_kwh_times_rate_is_money():
    cost = Kwh(2.5) * ElectricityRate.from_pounds(0.20)
    assert isinstance(cost, Gbp)
    assert cost.pounds == pytest.approx(0.5)


def test_kwh_comparison_and_min_max():
    assert Kwh(1.0) < Kwh(2.0)
    assert Kwh(2.0) >= Kwh(2.0)
    assert min(Kwh(3.0), Kwh(1.0)) == Kwh(1.0)
    assert max(Kwh(-1.0), Kwh.zero()) == Kwh.zero()


def test_kwh_cannot_be_added_to_money():
    with pytest.raises((TypeError, AttributeError)):
        Kwh(1.0) + Gbp(1.0)


def test_gbp_sentinels_and_sum():
    assert Gbp.zero() == Gbp(0.0)
    assert Gbp(1e9) < Gbp.max_value()
    total = Gbp.sum([1, 2, 3], lambda n: Gbp(n * 0.5))
    assert total.pounds == pytest.approx(3.0)
    assert (Gbp(2.0) * 1.5).pounds == pytest.approx(3.0)
    assert Gbp(1.0) - Gbp(2.5) == Gbp(-1.5)


def test_string_forms():
    assert str(Kwh(1.234)) == "1.23 kWh"
    assert str(Gbp(4.8)) == "£4.80"
    assert str(ElectricityRate.from_pounds(0.1524)) == "£0.152/kWh"


def test_rates_compare_by_price():
    cheap = ElectricityRate.from_pounds(0.10)
    peak = ElectricityRate.from_pounds(0.35)
    assert cheap < peak
    assert ElectricityRate.from_pounds(0.10) == cheap
    assert len({cheap, ElectricityRate.from_pounds(0.10)}) == 1
