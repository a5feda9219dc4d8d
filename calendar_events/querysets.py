import datetime

from django.db import models


class CalendarQuerySet(models.QuerySet):
    def filter_owned_by(self, user):
        """Filter calendars owned by the given user."""
        return self.filter(ownerships__user=user)


class CalendarEventQuerySet(models.QuerySet):
    """
    Custom QuerySet for CalendarEvent model to handle recurrence related queries.
    """

    def filter_by_calendar(self, calendar_id: int):
        return self.filter(calendar_id=calendar_id)

    def filter_recurring_roots(self):
        """Filter to get only recurrence roots (events that own a recurrence pattern)."""
        return self.filter(recurrence__isnull=False)

    def filter_exceptions(self):
        """Filter to get only materialized occurrence exceptions."""
        return self.filter(recurring_event__isnull=False)

    def filter_single_events(self):
        """Filter to get events that are neither recurrence roots nor exceptions."""
        return self.filter(recurrence__isnull=True, recurring_event__isnull=True)

    def filter_overlapping(self, range_start: datetime.datetime, range_end: datetime.datetime):
        """Filter events whose [start, end] interval overlaps the given range."""
        return self.filter(start__lte=range_end, end__gte=range_start)

    def filter_not_cancelled(self):
        return self.filter(is_cancelled=False)
