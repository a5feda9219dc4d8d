import dataclasses
import datetime
from collections.abc import Callable
from typing import Annotated

from django.utils import timezone

from dependency_injector.wiring import Provide, inject

from calendar_events.constants import AttendeeStatus
from calendar_events.exceptions import InvitationStatusChangeError
from calendar_events.recurrence import OccurrenceGenerator
from calendar_events.services.dataclasses import AttendeeData, CalendarEventData


class InvitationStatusManager:
    @inject
    def __init__(
        self,
        occurrence_generator: Annotated[
            OccurrenceGenerator, Provide["occurrence_generator"]
        ] = None,
        clock: Callable[[], datetime.datetime] = timezone.now,
    ):
        self.occurrence_generator = occurrence_generator or OccurrenceGenerator()
        self.clock = clock

    def can_change_invitation_status(self, event: CalendarEventData, user) -> bool:
        """
        The user is an attendee of the event, the event is not cancelled and has not started.

        Attendance is matched on the linked user only, never on email or display name. A
        recurrence root counts as not started while it still has a future occurrence.
        """
        if user is None or event.get_attendee_for_user(getattr(user, "pk", None)) is None:
            return False
        if event.is_cancelled:
            return False

        now = self.clock()
        if event.recurrence is not None:
            return self.occurrence_generator.next_occurrence(event.recurrence, now) is not None
        return event.start > now

    def invitation_status_for(self, event: CalendarEventData, user) -> str:
        attendee = event.get_attendee_for_user(getattr(user, "pk", None))
        return attendee.status if attendee else AttendeeStatus.NONE

    def aggregate_status(self, event: CalendarEventData) -> str:
        required = [attendee for attendee in event.attendees if attendee.is_required]
        if any(attendee.status == AttendeeStatus.DECLINED for attendee in required):
            return AttendeeStatus.DECLINED
        if required and all(attendee.status == AttendeeStatus.ACCEPTED for attendee in required):
            return AttendeeStatus.ACCEPTED

        statuses = [attendee.status for attendee in event.attendees]
        if statuses.count(AttendeeStatus.TENTATIVE) > statuses.count(AttendeeStatus.NONE):
            return AttendeeStatus.TENTATIVE
        return AttendeeStatus.NONE

    def attendees_with_status(
        self, event: CalendarEventData, user, status: str
    ) -> tuple[AttendeeData, ...]:
        """Attendees of ``event`` after ``user`` answered the invitation with ``status``."""
        if status not in AttendeeStatus.values or not self.can_change_invitation_status(
            event, user
        ):
            raise InvitationStatusChangeError()

        return tuple(
            dataclasses.replace(attendee, status=status)
            if attendee.user_id == user.pk
            else attendee
            for attendee in event.attendees
        )
