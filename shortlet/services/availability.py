# shortlet/services/availability.py
"""
Date-range overlap checks for bookings.

Ranges are half-open ``[start, end)``: a stay checking out on the 5th does
not collide with one checking in on the 5th.
"""
from dataclasses import dataclass
from datetime import date
from typing import Iterable


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def overlaps(self, other: "DateRange") -> bool:
        return self.start < other.end and other.start < self.end


def has_conflict(candidate: DateRange, existing: Iterable[DateRange]) -> bool:
    """
    True if ``candidate`` overlaps any range in ``existing``.

    Callers pass only the ranges of confirmed bookings; pending and cancelled
    bookings never block a request.
    """
    return any(candidate.overlaps(other) for other in existing)
