import datetime
import logging
from collections.abc import Iterable

from django.contrib.contenttypes.models import ContentType
from django.db import DatabaseError, models, transaction
from django.db.models.functions import Lower
from django.utils import timezone

from calendar_events.exceptions import EventNotFoundError, EventPersistenceError
from calendar_events.models import (
    Attendee,
    CalendarEvent,
    CalendarEventActivityTarget,
    Recurrence,
)
from calendar_events.recurrence import RecurrencePattern
from calendar_events.services.dataclasses import AttendeeData, CalendarEventData
from users.models import User


logger = logging.getLogger(__name__)


class CalendarEventRepository:
    """
    Loads and stores the calendar event aggregate (event, recurrence and attendees).

    Every write runs in a transaction, database failures are surfaced as
    ``EventPersistenceError``.
    """

    def _base_queryset(self):
        return CalendarEvent.objects.select_related("recurrence").prefetch_related("attendees")

    def lock(self, event_id: int) -> None:
        """Lock the event row until the end of the current transaction."""
        # no select_related here, FOR UPDATE cannot lock the nullable side of an outer join
        if not CalendarEvent.objects.select_for_update().filter(pk=event_id).exists():
            raise EventNotFoundError()

    def get(self, event_id: int, for_update: bool = False) -> CalendarEventData:
        if for_update:
            self.lock(event_id)
        try:
            event = self._base_queryset().get(pk=event_id)
        except CalendarEvent.DoesNotExist as e:
            raise EventNotFoundError() from e
        return CalendarEventData.from_model(event)

    def list_single_events(
        self, calendar_id: int, range_start: datetime.datetime, range_end: datetime.datetime
    ) -> list[CalendarEventData]:
        events = (
            self._base_queryset()
            .filter_by_calendar(calendar_id)
            .filter_single_events()
            .filter_not_cancelled()
            .filter_overlapping(range_start, range_end)
        )
        return [CalendarEventData.from_model(event) for event in events]

    def list_recurring_roots(
        self, calendar_id: int, range_end: datetime.datetime
    ) -> list[CalendarEventData]:
        events = (
            self._base_queryset()
            .filter_by_calendar(calendar_id)
            .filter_recurring_roots()
            .filter_not_cancelled()
            .filter(recurrence__start_time__lte=range_end)
        )
        return [CalendarEventData.from_model(event) for event in events]

    def list_exceptions(self, root_ids: Iterable[int]) -> dict[int, list[CalendarEventData]]:
        exceptions_by_root: dict[int, list[CalendarEventData]] = {}
        for event in self._base_queryset().filter(recurring_event_id__in=list(root_ids)):
            exceptions_by_root.setdefault(event.recurring_event_id, []).append(
                CalendarEventData.from_model(event)
            )
        return exceptions_by_root

    def get_exception(
        self, root_id: int, original_start: datetime.datetime
    ) -> CalendarEventData | None:
        event = (
            self._base_queryset()
            .filter(recurring_event_id=root_id, original_start=original_start)
            .first()
        )
        return CalendarEventData.from_model(event) if event else None

    def has_exceptions(self, root_id: int) -> bool:
        return CalendarEvent.objects.filter(recurring_event_id=root_id).exists()

    def save(self, data: CalendarEventData) -> CalendarEventData:
        """Create or update the event described by ``data``, returning the stored snapshot."""
        try:
            with transaction.atomic():
                if data.id is None:
                    event = CalendarEvent()
                else:
                    event = CalendarEvent.objects.select_for_update().get(pk=data.id)

                event.calendar_id = data.calendar_id
                event.title = data.title
                event.description = data.description
                event.start = data.start
                event.end = data.end
                event.all_day = data.all_day
                event.background_color = data.background_color
                event.recurring_event_id = data.recurring_event_id
                event.original_start = data.original_start
                event.is_cancelled = data.is_cancelled
                event.updated_at = data.updated_at or timezone.now()
                event.save()

                self._save_recurrence(event, data.recurrence)
                self._save_attendees(event, data.attendees)
        except CalendarEvent.DoesNotExist as e:
            raise EventNotFoundError() from e
        except DatabaseError as e:
            logger.exception("Failed to save calendar event %s", data.id)
            raise EventPersistenceError() from e

        return self.get(event.pk)

    def delete(self, event_id: int) -> None:
        try:
            with transaction.atomic():
                CalendarEvent.objects.filter(pk=event_id).delete()
        except DatabaseError as e:
            logger.exception("Failed to delete calendar event %s", event_id)
            raise EventPersistenceError() from e

    def delete_events(self, event_ids: Iterable[int]) -> int:
        try:
            _, deleted_per_model = CalendarEvent.objects.filter(pk__in=list(event_ids)).delete()
        except DatabaseError as e:
            logger.exception("Failed to delete calendar events")
            raise EventPersistenceError() from e
        return deleted_per_model.get(CalendarEvent._meta.label, 0)

    def add_activity_target(self, event_id: int, entity: models.Model) -> None:
        try:
            CalendarEventActivityTarget.objects.get_or_create(
                event_id=event_id,
                content_type=ContentType.objects.get_for_model(entity),
                object_id=str(entity.pk),
            )
        except DatabaseError as e:
            logger.exception("Failed to link calendar event %s to %s", event_id, entity)
            raise EventPersistenceError() from e

    def list_events_for_entity(self, entity: models.Model) -> list[CalendarEventData]:
        events = self._base_queryset().filter(
            activity_targets__content_type=ContentType.objects.get_for_model(entity),
            activity_targets__object_id=str(entity.pk),
        )
        return [CalendarEventData.from_model(event) for event in events]

    def _save_recurrence(self, event: CalendarEvent, pattern: RecurrencePattern | None) -> None:
        if pattern is None:
            Recurrence.objects.filter(event=event).delete()
            return

        recurrence = Recurrence.objects.filter(event=event).first() or Recurrence(event=event)
        recurrence.set_pattern(pattern)
        recurrence.save()

    def _save_attendees(self, event: CalendarEvent, attendees: Iterable[AttendeeData]) -> None:
        attendees_by_key = {attendee.key: attendee for attendee in attendees}
        user_ids = self._resolve_user_ids(attendees_by_key.keys())

        existing = {attendee.email.lower(): attendee for attendee in event.attendees.all()}
        removed_ids = [a.pk for key, a in existing.items() if key not in attendees_by_key]
        if removed_ids:
            Attendee.objects.filter(pk__in=removed_ids).delete()

        for key, data in attendees_by_key.items():
            attendee = existing.get(key) or Attendee(event=event)
            attendee.email = data.email
            attendee.display_name = data.display_name
            attendee.status = data.status
            attendee.attendee_type = data.attendee_type
            attendee.user_id = data.user_id or user_ids.get(key)
            attendee.save()

    def _resolve_user_ids(self, emails: Iterable[str]) -> dict[str, int]:
        emails = list(emails)
        if not emails:
            return {}
        return dict(
            User.objects.annotate(email_lower=Lower("email"))
            .filter(email_lower__in=emails)
            .values_list("email_lower", "id")
        )
