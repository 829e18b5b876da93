"""Optimiser contract and the trivial reference optimisers."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from .segments import OutputsMode, TimeSegment


class PlanOptimiser(ABC):
    """Chooses a mode for every segment of a day so total grid cost is as low as possible."""

    name = "base"

    @abstractmethod
    def create_charge_plan(self, segments: list[TimeSegment], day: date) -> list[TimeSegment]:
        """
        Set `mode` on every segment in place and return the same list.

        `segments[0].start_battery_charge_kwh` is the real starting charge; each later
        segment starts where the previous one ended.
        """


class DoNothingOptimiser(PlanOptimiser):
    """Leaves the inverter in DISCHARGE all day. Used as the cost baseline."""

    name = "do_nothing"

    def create_charge_plan(self, segments: list[TimeSegment], day: date) -> list[TimeSegment]:
        for segment in segments:
            segment.mode = OutputsMode.DISCHARGE
        return segments


class FixedModeOptimiser(PlanOptimiser):
    """Applies a hand-written mode list; segments past its end get DISCHARGE."""

    name = "fixed"

    def __init__(self, modes: list[OutputsMode]):
        self.modes = list(modes)

    def create_charge_plan(self, segments: list[TimeSegment], day: date) -> list[TimeSegment]:
        for i, segment in enumerate(segments):
            segment.mode = self.modes[i] if i < len(self.modes) else OutputsMode.DISCHARGE
        return segments
