import dataclasses
import datetime
from collections.abc import Callable, Iterable

from django.utils import timezone

from calendar_events.exceptions import EventValidationError
from calendar_events.services.dataclasses import (
    AttendeeData,
    CalendarEventData,
    CalendarEventPatch,
)


SCALAR_FIELDS = (
    "calendar_id",
    "title",
    "description",
    "start",
    "end",
    "all_day",
    "background_color",
    "is_cancelled",
)


class ChangeTracker:
    """
    Applies patches to event snapshots and decides whether ``updated_at`` moves.

    Only effective changes count: a patch repeating the current values, or listing the same
    attendees in another order, leaves ``updated_at`` untouched.
    """

    def __init__(self, clock: Callable[[], datetime.datetime] = timezone.now):
        self.clock = clock

    def apply_update(
        self, event: CalendarEventData, patch: CalendarEventPatch
    ) -> CalendarEventData:
        updated = dataclasses.replace(event, **patch.changes())
        self.validate(updated)
        if not self.changed_fields(event, updated):
            return event
        return self.touch(updated, previous=event.updated_at)

    def touch(
        self, event: CalendarEventData, previous: datetime.datetime | None = None
    ) -> CalendarEventData:
        """Return ``event`` with ``updated_at`` strictly after ``previous``."""
        previous = previous if previous is not None else event.updated_at
        now = self.clock()
        if previous is not None and now <= previous:
            now = previous + datetime.timedelta(microseconds=1)
        return dataclasses.replace(event, updated_at=now)

    def changed_fields(self, old: CalendarEventData, new: CalendarEventData) -> set[str]:
        changed = {name for name in SCALAR_FIELDS if getattr(old, name) != getattr(new, name)}
        # RecurrencePattern compares by value, days of week as a set
        if old.recurrence != new.recurrence:
            changed.add("recurrence")
        if self._attendee_state(old.attendees) != self._attendee_state(new.attendees):
            changed.add("attendees")
        return changed

    def validate(self, event: CalendarEventData) -> None:
        errors: dict[str, list[str]] = {}
        if event.recurrence is not None and event.recurring_event_id is not None:
            errors.setdefault("recurrence", []).append(
                "An occurrence exception cannot have its own recurrence."
            )
        if event.end < event.start:
            errors.setdefault("end", []).append("End must not be before start.")

        seen: set[str] = set()
        for attendee in event.attendees:
            if attendee.key in seen:
                errors.setdefault("attendees", []).append(
                    f"Duplicated attendee email: {attendee.email}"
                )
            seen.add(attendee.key)

        if errors:
            raise EventValidationError(errors)

    @staticmethod
    def _attendee_state(attendees: Iterable[AttendeeData]) -> dict[str, tuple[str, str, str]]:
        return {
            attendee.key: (attendee.display_name, attendee.status, attendee.attendee_type)
            for attendee in attendees
        }
