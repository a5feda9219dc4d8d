from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models.functions import Lower
from django.utils import timezone

from calendar_events.constants import AttendeeStatus, AttendeeType, RecurrenceType
from calendar_events.managers import CalendarEventManager, CalendarManager
from calendar_events.recurrence import RecurrencePattern
from common.models import BaseModel


if TYPE_CHECKING:
    from django_stubs_ext.db.models.manager import RelatedManager


class Calendar(BaseModel):
    """
    A calendar owning events. Users that own the calendar can view and edit its events.
    """

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    users = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="CalendarOwnership",
        related_name="calendars",
        blank=True,
    )

    objects: CalendarManager = CalendarManager()

    def __str__(self):
        return self.name


class CalendarOwnership(BaseModel):
    calendar = models.ForeignKey(Calendar, on_delete=models.CASCADE, related_name="ownerships")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="calendar_ownerships",
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["calendar", "user"], name="calendar_events_unique_calendar_ownership"
            )
        ]

    def __str__(self):
        return f"{self.calendar} owned by {self.user}"


class CalendarEvent(BaseModel):
    """
    Represents an event in a calendar.

    An event is either a single event, a recurrence root (it owns a ``Recurrence``), or a
    materialized exception of a root (``recurring_event`` is set and ``original_start``
    identifies the replaced occurrence). ``created`` is the creation instant, ``updated_at``
    only moves when the event has an effective change.
    """

    calendar = models.ForeignKey(
        Calendar,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="events",
        help_text="Owning calendar. Events without a calendar are system calendar events.",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    start = models.DateTimeField(db_index=True)
    end = models.DateTimeField(db_index=True)
    all_day = models.BooleanField(default=False)
    background_color = models.CharField(max_length=7, null=True, blank=True)

    recurring_event = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="exceptions",
        help_text="Recurrence root this event is an exception of",
    )
    original_start = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Start of the generated occurrence this exception replaces",
    )
    is_cancelled = models.BooleanField(default=False)

    updated_at = models.DateTimeField(default=timezone.now)

    attendees: "RelatedManager[Attendee]"
    exceptions: "RelatedManager[CalendarEvent]"
    activity_targets: "RelatedManager[CalendarEventActivityTarget]"

    objects: CalendarEventManager = CalendarEventManager()

    class Meta:
        ordering = ("start", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["recurring_event", "original_start"],
                condition=models.Q(recurring_event__isnull=False),
                name="calendar_events_unique_exception_per_occurrence",
            ),
        ]

    def __str__(self):
        return f"{self.title} ({self.start} - {self.end})"

    @property
    def created_at(self):
        return self.created

    @property
    def is_exception(self) -> bool:
        return self.recurring_event_id is not None

    def get_recurrence(self) -> "Recurrence | None":
        try:
            return self.recurrence
        except Recurrence.DoesNotExist:
            return None

    def get_recurrence_pattern(self) -> RecurrencePattern | None:
        recurrence = self.get_recurrence()
        return recurrence.to_pattern() if recurrence else None


class Recurrence(BaseModel):
    """
    Recurrence rule of a recurrence root event, stored column by column.
    """

    event = models.OneToOneField(
        CalendarEvent, on_delete=models.CASCADE, related_name="recurrence"
    )
    recurrence_type = models.CharField(max_length=10, choices=RecurrenceType)
    interval = models.PositiveIntegerField(default=1)
    days_of_week = models.JSONField(default=list, blank=True)
    day_of_month = models.PositiveSmallIntegerField(null=True, blank=True)
    month_of_year = models.PositiveSmallIntegerField(null=True, blank=True)
    instance = models.SmallIntegerField(
        null=True, blank=True, help_text="Nth ordinal for nth weekday recurrences, -1 for last"
    )
    start_time = models.DateTimeField()
    time_zone = models.CharField(max_length=64, default="UTC")
    occurrence_count = models.PositiveIntegerField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Recurrence: {self.recurrence_type} every {self.interval}"

    def to_pattern(self) -> RecurrencePattern:
        # stored rules were validated on save, so a later settings change must not break reads
        return RecurrencePattern(
            recurrence_type=self.recurrence_type,
            start_time=self.start_time,
            interval=self.interval,
            days_of_week=frozenset(self.days_of_week or ()),
            day_of_month=self.day_of_month,
            month_of_year=self.month_of_year,
            instance=self.instance,
            time_zone=self.time_zone,
            occurrence_count=self.occurrence_count,
            end_time=self.end_time,
            allow_unbounded=True,
        )

    def set_pattern(self, pattern: RecurrencePattern) -> None:
        self.recurrence_type = pattern.recurrence_type
        self.start_time = pattern.start_time
        self.interval = pattern.interval
        self.days_of_week = sorted(pattern.days_of_week)
        self.day_of_month = pattern.day_of_month
        self.month_of_year = pattern.month_of_year
        self.instance = pattern.instance
        self.time_zone = pattern.time_zone
        self.occurrence_count = pattern.occurrence_count
        self.end_time = pattern.end_time


class Attendee(BaseModel):
    """
    An invitee of a calendar event, optionally linked to a user resolved by email.
    """

    event = models.ForeignKey(CalendarEvent, on_delete=models.CASCADE, related_name="attendees")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="calendar_event_attendances",
    )
    display_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField()
    status = models.CharField(
        max_length=20, choices=AttendeeStatus, default=AttendeeStatus.NONE
    )
    attendee_type = models.CharField(
        max_length=20, choices=AttendeeType, default=AttendeeType.REQUIRED
    )

    class Meta:
        ordering = ("id",)
        constraints = [
            models.UniqueConstraint(
                Lower("email"), "event", name="calendar_events_unique_attendee_email_per_event"
            ),
        ]

    def __str__(self):
        return f"{self.display_name or self.email} - {self.event.title} ({self.status})"


class CalendarEventActivityTarget(BaseModel):
    """
    Generic link between a calendar event and any other model instance it is an activity of.
    """

    event = models.ForeignKey(
        CalendarEvent, on_delete=models.CASCADE, related_name="activity_targets"
    )
    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE)
    object_id = models.CharField(max_length=64)
    target = GenericForeignKey("content_type", "object_id")

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["event", "content_type", "object_id"],
                name="calendar_events_unique_activity_target",
            ),
        ]
        indexes = [
            models.Index(fields=["content_type", "object_id"], name="calendar_events_activity_idx")
        ]

    def __str__(self):
        return f"{self.event} linked to {self.content_type.model} #{self.object_id}"
