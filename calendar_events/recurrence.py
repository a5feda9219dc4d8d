"""Recurrence patterns and their expansion into concrete occurrences.

Notes:
- ``RecurrencePattern`` is an immutable value object. Edits go through
  ``dataclasses.replace`` so a pattern shared by several snapshots is never
  mutated in place.
- The ``rrule`` is built on a naive wall-clock ``dtstart`` in the pattern's time
  zone and occurrences are converted to UTC only when emitted, so "every day at
  09:00" stays at 09:00 local time across daylight-saving transitions.
"""

import dataclasses
import datetime
import zoneinfo
from collections.abc import Iterator

from django.conf import settings

from dateutil import rrule

from calendar_events.constants import (
    LAST_INSTANCE,
    MAX_INSTANCE,
    WEEKDAY_INDEXES,
    RecurrenceType,
    RecurrenceWeekday,
)
from calendar_events.exceptions import InvalidRecurrenceRuleError, RecurrenceRangeTooLargeError


NTH_RECURRENCE_TYPES = (RecurrenceType.MONTH_NTH, RecurrenceType.YEARLY_NTH)

RRULE_FREQUENCIES = {
    RecurrenceType.DAILY: rrule.DAILY,
    RecurrenceType.WEEKLY: rrule.WEEKLY,
    RecurrenceType.MONTHLY: rrule.MONTHLY,
    RecurrenceType.MONTH_NTH: rrule.MONTHLY,
    RecurrenceType.YEARLY: rrule.YEARLY,
    RecurrenceType.YEARLY_NTH: rrule.YEARLY,
}


@dataclasses.dataclass(frozen=True)
class RecurrencePattern:
    recurrence_type: str
    start_time: datetime.datetime
    interval: int = 1
    days_of_week: frozenset[str] = frozenset()
    day_of_month: int | None = None
    month_of_year: int | None = None
    instance: int | None = None
    time_zone: str = "UTC"
    occurrence_count: int | None = None
    end_time: datetime.datetime | None = None
    allow_unbounded: bool | None = dataclasses.field(default=None, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "days_of_week", frozenset(self.days_of_week or ()))
        self.validate()

    @property
    def tzinfo(self) -> zoneinfo.ZoneInfo:
        return zoneinfo.ZoneInfo(self.time_zone)

    @property
    def is_bounded(self) -> bool:
        return self.occurrence_count is not None or self.end_time is not None

    @property
    def weekday_indexes(self) -> list[int]:
        return sorted(WEEKDAY_INDEXES[RecurrenceWeekday(day)] for day in self.days_of_week)

    def validate(self) -> None:
        """Raise ``InvalidRecurrenceRuleError`` if the rule cannot be expanded."""
        if self.recurrence_type not in RecurrenceType.values:
            raise InvalidRecurrenceRuleError(
                f"Invalid recurrence type: {self.recurrence_type}. "
                f"Valid options are: {', '.join(RecurrenceType.values)}",
                field="type",
            )

        if not isinstance(self.interval, int) or self.interval < 1:
            raise InvalidRecurrenceRuleError("Interval must be at least 1.", field="interval")

        if self.start_time is None or self.start_time.tzinfo is None:
            raise InvalidRecurrenceRuleError(
                "Start time must be a timezone aware datetime.", field="startTime"
            )

        try:
            self.tzinfo  # noqa: B018
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidRecurrenceRuleError(
                f"Invalid IANA timezone: {self.time_zone}", field="timeZone"
            ) from e

        if self.occurrence_count is not None and self.end_time is not None:
            raise InvalidRecurrenceRuleError(
                "Cannot specify both 'occurrenceCount' and 'endTime' in a recurrence rule.",
                field="occurrenceCount",
            )

        allow_unbounded = (
            self.allow_unbounded
            if self.allow_unbounded is not None
            else getattr(settings, "CALENDAR_EVENTS_ALLOW_UNBOUNDED_RECURRENCE", False)
        )
        if not self.is_bounded and not allow_unbounded:
            raise InvalidRecurrenceRuleError(
                "Either 'occurrenceCount' or 'endTime' must be specified.",
                field="occurrenceCount",
            )

        if self.occurrence_count is not None and self.occurrence_count < 1:
            raise InvalidRecurrenceRuleError(
                "Occurrence count must be at least 1.", field="occurrenceCount"
            )

        if self.end_time is not None:
            if self.end_time.tzinfo is None:
                raise InvalidRecurrenceRuleError(
                    "End time must be a timezone aware datetime.", field="endTime"
                )
            if self.end_time < self.start_time:
                raise InvalidRecurrenceRuleError(
                    "End time cannot be before start time.", field="endTime"
                )

        invalid_weekdays = sorted(
            day for day in self.days_of_week if day not in RecurrenceWeekday.values
        )
        if invalid_weekdays:
            raise InvalidRecurrenceRuleError(
                f"Invalid weekdays: {', '.join(invalid_weekdays)}. "
                f"Valid options are: {', '.join(RecurrenceWeekday.values)}",
                field="daysOfWeek",
            )

        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise InvalidRecurrenceRuleError(
                "Day of month must be between 1 and 31.", field="dayOfMonth"
            )

        if self.month_of_year is not None and not 1 <= self.month_of_year <= 12:
            raise InvalidRecurrenceRuleError(
                "Month of year must be between 1 and 12.", field="monthOfYear"
            )

        if self.recurrence_type in NTH_RECURRENCE_TYPES:
            if not self.days_of_week:
                raise InvalidRecurrenceRuleError(
                    "At least one day of week is required for nth weekday recurrences.",
                    field="daysOfWeek",
                )
            if self.instance is None or (
                self.instance != LAST_INSTANCE and not 1 <= self.instance <= MAX_INSTANCE
            ):
                raise InvalidRecurrenceRuleError(
                    f"Instance must be between 1 and {MAX_INSTANCE}, or {LAST_INSTANCE} for last.",
                    field="instance",
                )


class OccurrenceGenerator:
    """Expands a ``RecurrencePattern`` into UTC occurrence start instants."""

    def __init__(self, max_occurrences: int | None = None):
        self.max_occurrences = (
            max_occurrences
            if max_occurrences is not None
            else getattr(settings, "CALENDAR_EVENTS_MAX_OCCURRENCES", 10000)
        )

    def generate(
        self,
        pattern: RecurrencePattern,
        range_start: datetime.datetime | None = None,
        range_end: datetime.datetime | None = None,
    ) -> list[datetime.datetime]:
        """
        Return the occurrences of ``pattern`` within ``[range_start, range_end]``.

        ``occurrence_count`` is counted from the pattern start, so occurrences before
        ``range_start`` still consume the count. Every occurrence expanded up to
        ``range_end`` counts against ``max_occurrences``, including the ones skipped
        before ``range_start``. Raises ``RecurrenceRangeTooLargeError`` past that limit.
        """
        occurrences: list[datetime.datetime] = []
        expanded = 0
        for occurrence in self.iter_occurrences(pattern):
            if range_end is not None and occurrence > range_end:
                break
            expanded += 1
            if expanded > self.max_occurrences:
                raise RecurrenceRangeTooLargeError(self.max_occurrences)
            if range_start is not None and occurrence < range_start:
                continue
            occurrences.append(occurrence)
        return occurrences

    def is_occurrence(self, pattern: RecurrencePattern, instant: datetime.datetime) -> bool:
        return self.generate(pattern, instant, instant) == [instant]

    def next_occurrence(
        self, pattern: RecurrencePattern, after: datetime.datetime
    ) -> datetime.datetime | None:
        """
        Return the first occurrence at or after ``after``, if the series has one.

        The occurrences skipped before ``after`` count against ``max_occurrences``.
        """
        expanded = 0
        for occurrence in self.iter_occurrences(pattern):
            if occurrence >= after:
                return occurrence
            expanded += 1
            if expanded > self.max_occurrences:
                raise RecurrenceRangeTooLargeError(self.max_occurrences)
        return None

    @staticmethod
    def occurrence_end(
        pattern: RecurrencePattern,
        occurrence_start: datetime.datetime,
        event_start: datetime.datetime,
        event_end: datetime.datetime,
    ) -> datetime.datetime:
        """
        End of the occurrence starting at ``occurrence_start``.

        The event duration is measured in wall-clock time of the pattern's time zone, so a
        09:00-10:00 meeting keeps ending at 10:00 local time after a DST change.
        """
        tz = pattern.tzinfo
        local_duration = _to_local(event_end, tz) - _to_local(event_start, tz)
        local_end = _to_local(occurrence_start, tz) + local_duration
        return _to_utc(local_end, tz)

    def iter_occurrences(self, pattern: RecurrencePattern) -> Iterator[datetime.datetime]:
        """Lazily yield the UTC occurrences of ``pattern`` in increasing order."""
        tz = pattern.tzinfo
        microsecond = pattern.start_time.microsecond
        for local in build_rrule(pattern):
            # rrule drops the microseconds of dtstart
            occurrence = _to_utc(local.replace(microsecond=microsecond), tz)
            if pattern.end_time is not None and occurrence > pattern.end_time:
                return
            yield occurrence


def build_rrule(pattern: RecurrencePattern) -> rrule.rrule:
    """Build a ``dateutil`` rule iterating naive local datetimes of ``pattern``."""
    tz = pattern.tzinfo
    local_start = _to_local(pattern.start_time, tz)
    weekdays = [rrule.weekdays[index] for index in pattern.weekday_indexes]
    kwargs: dict = {
        "dtstart": local_start,
        "interval": pattern.interval,
        "count": pattern.occurrence_count,
        "wkst": rrule.MO,
    }
    if pattern.end_time is not None:
        kwargs["until"] = _to_local(pattern.end_time, tz)

    match pattern.recurrence_type:
        case RecurrenceType.DAILY:
            pass
        case RecurrenceType.WEEKLY:
            kwargs["byweekday"] = weekdays or [rrule.weekdays[local_start.weekday()]]
        case RecurrenceType.MONTHLY:
            kwargs.update(_last_existing_day(pattern.day_of_month or local_start.day))
        case RecurrenceType.YEARLY:
            kwargs["bymonth"] = pattern.month_of_year or local_start.month
            kwargs.update(_last_existing_day(pattern.day_of_month or local_start.day))
        case RecurrenceType.MONTH_NTH | RecurrenceType.YEARLY_NTH:
            kwargs["byweekday"] = weekdays
            kwargs["bysetpos"] = pattern.instance
            if pattern.recurrence_type == RecurrenceType.YEARLY_NTH:
                kwargs["bymonth"] = pattern.month_of_year or local_start.month
        case _:
            raise InvalidRecurrenceRuleError(
                f"Invalid recurrence type: {pattern.recurrence_type}", field="type"
            )

    return rrule.rrule(RRULE_FREQUENCIES[RecurrenceType(pattern.recurrence_type)], **kwargs)


def _last_existing_day(day: int) -> dict:
    # day 31 falls back to the 30th, 29th or 28th in shorter months
    return {"bymonthday": tuple(range(min(day, 28), day + 1)), "bysetpos": -1}


def _to_local(instant: datetime.datetime, tz: zoneinfo.ZoneInfo) -> datetime.datetime:
    return instant.astimezone(tz).replace(tzinfo=None)


def _to_utc(local: datetime.datetime, tz: zoneinfo.ZoneInfo) -> datetime.datetime:
    return local.replace(tzinfo=tz).astimezone(datetime.UTC)
