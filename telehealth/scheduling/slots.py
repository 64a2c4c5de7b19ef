"""
Slot generation.

Turns a doctor's availability windows for one day into the ordered grid of
candidate start times for a given consultation duration. Times of day are
handled as minutes after midnight and only formatted as "HH:MM" on the way
out.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List

TIME_OF_DAY_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')
MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class TimeWindow:
    start_minute: int
    end_minute: int


def parse_time_of_day(value: str) -> int:
    match = TIME_OF_DAY_PATTERN.match((value or '').strip())
    if not match:
        raise ValueError(f'Invalid time {value!r}. Use HH:MM.')
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time_of_day(minute_of_day: int) -> str:
    if not 0 <= minute_of_day < MINUTES_PER_DAY:
        raise ValueError(f'Minute of day out of range: {minute_of_day}')
    hours, minutes = divmod(minute_of_day, 60)
    return f'{hours:02d}:{minutes:02d}'


def day_of_week_index(target_date: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return target_date.isoweekday() % 7


def iterate_window_slot_starts(start_minute: int, end_minute: int, duration_minutes: int) -> List[int]:
    """
    Partition one window into back-to-back slots of ``duration_minutes``.

    A step is emitted only when the whole slot fits before ``end_minute``;
    a shorter remainder at the end of the window is dropped.
    """
    if duration_minutes <= 0:
        raise ValueError('Slot duration must be positive.')

    starts: List[int] = []
    current = start_minute
    while current + duration_minutes <= end_minute:
        starts.append(current)
        current += duration_minutes

    return starts


def generate_candidate_slots(windows: Iterable[TimeWindow], duration_minutes: int) -> List[int]:
    """
    Candidate start minutes for all windows of a day, ascending.

    A start time produced by more than one window (a recurring window and a
    date-specific one covering the same hours) is listed once.
    """
    candidates: set[int] = set()
    for window in windows:
        candidates.update(iterate_window_slot_starts(window.start_minute, window.end_minute, duration_minutes))

    return sorted(candidates)
