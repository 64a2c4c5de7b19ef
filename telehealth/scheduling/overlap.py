"""
Overlap detection.

One predicate decides both which slots are shown as available and whether a
booking is accepted.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from telehealth.scheduling.slots import TimeWindow, format_time_of_day


@dataclass(frozen=True)
class BookedInterval:
    start: datetime
    duration_minutes: int

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class Slot:
    time: str
    available: bool


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """Half-open intervals of datetimes or minute offsets; touching end-to-start is not an overlap."""
    return not (end_a <= start_b or start_a >= end_b)


def find_overlapping_interval(
    start: datetime,
    end: datetime,
    booked: Iterable[BookedInterval],
) -> Optional[BookedInterval]:
    for interval in booked:
        if intervals_overlap(start, end, interval.start, interval.end):
            return interval
    return None


def mark_slot_availability(
    target_date: date,
    slot_minutes: Iterable[int],
    duration_minutes: int,
    booked: Iterable[BookedInterval],
    now: datetime,
    blocked_windows: Iterable[TimeWindow] = (),
) -> List[Slot]:
    """
    Annotate every candidate slot with availability. Nothing is dropped.

    A slot is unavailable when it starts before ``now`` or overlaps either a
    booked interval or a blocked window for the day.
    """
    booked = list(booked)
    blocked = [
        BookedInterval(
            start=datetime.combine(target_date, time()) + timedelta(minutes=window.start_minute),
            duration_minutes=window.end_minute - window.start_minute,
        )
        for window in blocked_windows
    ]
    day_start = datetime.combine(target_date, time())

    slots: List[Slot] = []
    for minute in slot_minutes:
        slot_start = day_start + timedelta(minutes=minute)
        slot_end = slot_start + timedelta(minutes=duration_minutes)
        is_past = slot_start < now
        is_taken = find_overlapping_interval(slot_start, slot_end, booked) is not None
        is_blocked = find_overlapping_interval(slot_start, slot_end, blocked) is not None
        slots.append(Slot(time=format_time_of_day(minute), available=not (is_past or is_taken or is_blocked)))

    return slots
