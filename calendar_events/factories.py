import datetime

from model_bakery import baker

from .constants import AttendeeStatus, AttendeeType
from .models import Attendee, Calendar, CalendarEvent, CalendarOwnership, Recurrence


class CalendarEventFactory:
    @staticmethod
    def create_calendar(owner=None, **kwargs) -> Calendar:
        calendar = baker.make(Calendar, name=kwargs.pop("name", "Calendar"), **kwargs)
        if owner is not None:
            CalendarOwnership.objects.create(calendar=calendar, user=owner)
        return calendar

    @staticmethod
    def create_event(
        calendar: Calendar | None,
        start: datetime.datetime,
        end: datetime.datetime,
        title: str = "Event",
        **kwargs,
    ) -> CalendarEvent:
        return baker.make(
            CalendarEvent,
            calendar=calendar,
            title=title,
            description=kwargs.pop("description", None),
            start=start,
            end=end,
            background_color=kwargs.pop("background_color", None),
            recurring_event=kwargs.pop("recurring_event", None),
            original_start=kwargs.pop("original_start", None),
            **kwargs,
        )

    @staticmethod
    def create_recurring_event(
        calendar: Calendar | None,
        start: datetime.datetime,
        end: datetime.datetime,
        recurrence_type: str,
        title: str = "Recurring event",
        interval: int = 1,
        occurrence_count: int | None = None,
        end_time: datetime.datetime | None = None,
        days_of_week: list[str] | None = None,
        time_zone: str = "UTC",
        **kwargs,
    ) -> CalendarEvent:
        """
        Create a recurrence root whose pattern starts with the event.

        Extra recurrence fields (day_of_month, month_of_year, instance) are taken from kwargs,
        everything else is passed to the event.
        """
        recurrence_kwargs = {
            name: kwargs.pop(name, None) for name in ("day_of_month", "month_of_year", "instance")
        }
        event = CalendarEventFactory.create_event(calendar, start, end, title=title, **kwargs)
        Recurrence.objects.create(
            event=event,
            recurrence_type=recurrence_type,
            interval=interval,
            days_of_week=days_of_week or [],
            start_time=start,
            time_zone=time_zone,
            occurrence_count=occurrence_count,
            end_time=end_time,
            **recurrence_kwargs,
        )
        return event

    @staticmethod
    def add_attendee(
        event: CalendarEvent,
        email: str,
        user=None,
        status: str = AttendeeStatus.NONE,
        attendee_type: str = AttendeeType.REQUIRED,
        display_name: str = "",
    ) -> Attendee:
        return Attendee.objects.create(
            event=event,
            email=email,
            user=user,
            status=status,
            attendee_type=attendee_type,
            display_name=display_name,
        )
