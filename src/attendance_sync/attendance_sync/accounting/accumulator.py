from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from ..common.datetime_utils import elapsed_millis, format_duration
from ..core.enums import END_TYPES, START_TYPES, ActivityType, Category


@dataclass(frozen=True)
class DurationTotals:
    """Elapsed time split into the four categories, in milliseconds."""

    work_millis: int = 0
    break_millis: int = 0
    overtime_millis: int = 0
    client_visit_millis: int = 0

    @property
    def total_millis(self) -> int:
        return self.work_millis + self.break_millis + self.overtime_millis + self.client_visit_millis

    def as_dict(self) -> dict:
        return {
            "work_millis": self.work_millis,
            "break_millis": self.break_millis,
            "overtime_millis": self.overtime_millis,
            "client_visit_millis": self.client_visit_millis,
        }

    def formatted(self) -> dict:
        return {
            "work": format_duration(self.work_millis),
            "break": format_duration(self.break_millis),
            "overtime": format_duration(self.overtime_millis),
            "client_visit": format_duration(self.client_visit_millis),
        }

    def __add__(self, other: "DurationTotals") -> "DurationTotals":
        return DurationTotals(
            work_millis=self.work_millis + other.work_millis,
            break_millis=self.break_millis + other.break_millis,
            overtime_millis=self.overtime_millis + other.overtime_millis,
            client_visit_millis=self.client_visit_millis + other.client_visit_millis,
        )

    @classmethod
    def from_dict(cls, data: dict | None) -> "DurationTotals":
        data = data or {}
        return cls(
            work_millis=int(data.get("work_millis") or 0),
            break_millis=int(data.get("break_millis") or 0),
            overtime_millis=int(data.get("overtime_millis") or 0),
            client_visit_millis=int(data.get("client_visit_millis") or 0),
        )


ZERO_TOTALS = DurationTotals()


class DurationAccumulator:
    """Walk an ordered activity log and bucket elapsed time per category.

    The cursor starts in ``working`` at ``clock_in``. Each event closes the
    running span into the bucket of the category active before it, then
    moves the cursor to the category the event implies. The trailing span
    up to ``now`` goes to whatever is still active. ``now`` is clamped to
    the ``clock_out`` timestamp once one is logged, so every bucket sums to
    exactly ``now - clock_in``.
    """

    def compute(self, events: Iterable, clock_in: datetime, now: datetime) -> DurationTotals:
        events = list(events)
        clock_out = next((e for e in events if e.type == ActivityType.CLOCK_OUT), None)
        if clock_out is not None and clock_out.timestamp < now:
            now = clock_out.timestamp
        if now < clock_in:
            now = clock_in

        buckets = {category: 0 for category in Category}
        current = Category.WORKING
        cursor = clock_in

        # Offsets from clock_in telescope, so truncation cannot break the partition.
        def offset(instant: datetime) -> int:
            return elapsed_millis(clock_in, instant)

        for event in events:
            if event.type == ActivityType.CLOCK_IN:
                continue
            at = min(max(event.timestamp, cursor), now)
            buckets[current] += offset(at) - offset(cursor)
            cursor = at
            if event.type in START_TYPES:
                current = START_TYPES[event.type]
            elif event.type in END_TYPES:
                current = Category.WORKING
            elif event.type == ActivityType.CLOCK_OUT:
                break

        buckets[current] += offset(now) - offset(cursor)

        return DurationTotals(
            work_millis=buckets[Category.WORKING],
            break_millis=buckets[Category.BREAK],
            overtime_millis=buckets[Category.OVERTIME],
            client_visit_millis=buckets[Category.CLIENT_VISIT],
        )
