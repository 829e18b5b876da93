"""
Units-of-measure value types used throughout the planner.

Energy (Kwh) and money (Gbp) are kept in separate types so the two can never be
added together by accident. The only bridge between them is multiplying an
energy quantity by an ElectricityRate.
"""
from __future__ import annotations

from typing import Callable, Iterable, TypeVar

_T = TypeVar("_T")


class Kwh:
    """Signed energy quantity in kilowatt-hours."""

    __slots__ = ("value",)

    def __init__(self, value: float = 0.0):
        self.value = float(value)

    @classmethod
    def zero(cls) -> Kwh:
        return cls(0.0)

    def __add__(self, other: Kwh) -> Kwh:
        return Kwh(self.value + other.value)

    def __sub__(self, other: Kwh) -> Kwh:
        return Kwh(self.value - other.value)

    def __mul__(self, other):
        if isinstance(other, ElectricityRate):
            return Gbp(self.value * other.price_per_kwh.pounds)
        if isinstance(other, (int, float)):
            return Kwh(self.value * other)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> Kwh:
        if divisor == 0:
            raise ZeroDivisionError("Cannot divide energy by zero")
        return Kwh(self.value / divisor)

    def __neg__(self) -> Kwh:
        return Kwh(-self.value)

    def __abs__(self) -> Kwh:
        return Kwh(abs(self.value))

    def absolute(self) -> Kwh:
        return abs(self)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Kwh):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(("kwh", self.value))

    def __lt__(self, other: Kwh) -> bool:
        return self.value < other.value

    def __le__(self, other: Kwh) -> bool:
        return self.value <= other.value

    def __gt__(self, other: Kwh) -> bool:
        return self.value > other.value

    def __ge__(self, other: Kwh) -> bool:
        return self.value >= other.value

    def __repr__(self) -> str:
        return f"Kwh({self.value!r})"

    def __str__(self) -> str:
        return f"{self.value:.2f} kWh"


class Gbp:
    """Signed amount of money in pounds sterling."""

    __slots__ = ("pounds",)

    def __init__(self, pounds: float = 0.0):
        self.pounds = float(pounds)

    @classmethod
    def zero(cls) -> Gbp:
        return cls(0.0)

    @classmethod
    def max_value(cls) -> Gbp:
        return cls(float("inf"))

    @classmethod
    def sum(cls, items: Iterable[_T], selector: Callable[[_T], Gbp]) -> Gbp:
        total = cls.zero()
        for item in items:
            total += selector(item)
        return total

    def __add__(self, other: Gbp) -> Gbp:
        return Gbp(self.pounds + other.pounds)

    def __sub__(self, other: Gbp) -> Gbp:
        return Gbp(self.pounds - other.pounds)

    def __mul__(self, factor: float) -> Gbp:
        if isinstance(factor, (int, float)):
            return Gbp(self.pounds * factor)
        return NotImplemented

    __rmul__ = __mul__

    def __neg__(self) -> Gbp:
        return Gbp(-self.pounds)

    def __abs__(self) -> Gbp:
        return Gbp(abs(self.pounds))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Gbp):
            return NotImplemented
        return self.pounds == other.pounds

    def __hash__(self) -> int:
        return hash(("gbp", self.pounds))

    def __lt__(self, other: Gbp) -> bool:
        return self.pounds < other.pounds

    def __le__(self, other: Gbp) -> bool:
        return self.pounds <= other.pounds

    def __gt__(self, other: Gbp) -> bool:
        return self.pounds > other.pounds

    def __ge__(self, other: Gbp) -> bool:
        return self.pounds >= other.pounds

    def __repr__(self) -> str:
        return f"Gbp({self.pounds!r})"

    def __str__(self) -> str:
        return f"£{self.pounds:.2f}"


class ElectricityRate:
    """Grid price for one segment, in pounds per kWh."""

    __slots__ = ("price_per_kwh",)

    def __init__(self, price_per_kwh: Gbp):
        self.price_per_kwh = price_per_kwh

    @classmethod
    def from_pounds(cls, pounds_per_kwh: float) -> ElectricityRate:
        return cls(Gbp(pounds_per_kwh))

    def __eq__(self, other) -> bool:
        if not isinstance(other, ElectricityRate):
            return NotImplemented
        return self.price_per_kwh == other.price_per_kwh

    def __hash__(self) -> int:
        return hash(("rate", self.price_per_kwh.pounds))

    def __lt__(self, other: ElectricityRate) -> bool:
        return self.price_per_kwh < other.price_per_kwh

    def __gt__(self, other: ElectricityRate) -> bool:
        return self.price_per_kwh > other.price_per_kwh

    def __repr__(self) -> str:
        return f"ElectricityRate({self.price_per_kwh!r})"

    def __str__(self) -> str:
        return f"£{self.price_per_kwh.pounds:.3f}/kWh"
