import datetime

from django.db import models

from calendar_events.querysets import CalendarEventQuerySet, CalendarQuerySet


class CalendarManager(models.Manager):
    def get_queryset(self) -> CalendarQuerySet:
        return CalendarQuerySet(self.model, using=self._db)

    def filter_owned_by(self, user):
        return self.get_queryset().filter_owned_by(user)


class CalendarEventManager(models.Manager):
    """
    Custom manager for CalendarEvent model, delegating to CalendarEventQuerySet.
    """

    def get_queryset(self) -> CalendarEventQuerySet:
        return CalendarEventQuerySet(self.model, using=self._db)

    def filter_by_calendar(self, calendar_id: int):
        return self.get_queryset().filter_by_calendar(calendar_id)

    def filter_recurring_roots(self):
        return self.get_queryset().filter_recurring_roots()

    def filter_exceptions(self):
        return self.get_queryset().filter_exceptions()

    def filter_single_events(self):
        return self.get_queryset().filter_single_events()

    def filter_overlapping(self, range_start: datetime.datetime, range_end: datetime.datetime):
        return self.get_queryset().filter_overlapping(range_start, range_end)
