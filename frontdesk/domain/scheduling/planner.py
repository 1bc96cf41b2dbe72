"""Availability planner - weekly windows + service duration -> bookable start times.

Pure functions only: no database or network access. Existing bookings are
not consulted, so two customers may be offered (and may book) the same slot.
"""

import heapq
from collections.abc import Iterable, Iterator
from datetime import date, time
from typing import Protocol

from ...config import SLOT_STEP_MINUTES

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class ScheduleWindow(Protocol):
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool


def day_of_week(day: date) -> int:
    """Day index with Sunday = 0, matching stored schedules"""
    return day.isoweekday() % 7


def _to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _from_minutes(minutes: int) -> time:
    return time(hour=minutes // 60, minute=minutes % 60)


def format_slot(value: time) -> str:
    return value.strftime("%H:%M")


def _window_slots(window: ScheduleWindow, duration: int, step: int) -> Iterator[time]:
    start = _to_minutes(window.start_time)
    end = _to_minutes(window.end_time)
    candidate = start
    while candidate + duration <= end:
        yield _from_minutes(candidate)
        candidate += step


class SlotPlan:
    """
    Restartable, lazily evaluated sequence of slot start times.

    Every iteration re-derives slots from the captured inputs. Windows on the
    same day are merged in ascending order; overlapping windows produce
    duplicate times.
    """

    def __init__(self, windows: list, duration: int, step: int):
        self._windows = windows
        self._duration = duration
        self._step = step

    def __iter__(self) -> Iterator[time]:
        return heapq.merge(
            *(_window_slots(w, self._duration, self._step) for w in self._windows)
        )

    def __contains__(self, value: object) -> bool:
        return any(slot == value for slot in self)

    def as_strings(self) -> list[str]:
        return [format_slot(slot) for slot in self]


def compute_slots(
    schedules: Iterable[ScheduleWindow],
    day: date,
    service_duration_minutes: int,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> SlotPlan:
    """
    Compute bookable start times for `day`.

    A candidate is accepted only when candidate + duration <= window end.

    Raises:
        ValueError: If the duration or step is not positive
    """
    if service_duration_minutes <= 0:
        raise ValueError("Service duration must be greater than 0")
    if step_minutes <= 0:
        raise ValueError("Slot step must be greater than 0")

    weekday = day_of_week(day)
    windows = sorted(
        (s for s in schedules if s.is_active and s.day_of_week == weekday),
        key=lambda s: (s.start_time, s.end_time),
    )
    return SlotPlan(windows, service_duration_minutes, step_minutes)


def is_slot_available(
    schedules: Iterable[ScheduleWindow],
    day: date,
    start: time,
    service_duration_minutes: int,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> bool:
    return start in compute_slots(schedules, day, service_duration_minutes, step_minutes)
