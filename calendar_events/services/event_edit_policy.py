from typing import Annotated

from dependency_injector.wiring import Provide, inject

from calendar_events.constants import EventAction
from calendar_events.exceptions import (
    CalendarNotFoundError,
    EventAccessDeniedError,
    EventNotFoundError,
)
from calendar_events.services.calendar_permission_service import CalendarPermissionService
from calendar_events.services.dataclasses import CalendarEventData


class EventEditPolicy:
    """
    Decides who can view, edit and delete an event.

    Permissions of an event are those of its owning calendar: any action requires VIEW on
    the calendar. Events without a calendar belong to the system calendar and are reported
    as not found to users. Editing is also refused when the event is an invitation sent by
    an organizer other than the current user.
    """

    @inject
    def __init__(
        self,
        calendar_permission_service: Annotated[
            CalendarPermissionService, Provide["calendar_permission_service"]
        ] = None,
    ):
        self.calendar_permission_service = calendar_permission_service

    def check_permission(self, user, event: CalendarEventData, action: str) -> None:
        if event.calendar_id is None:
            raise EventNotFoundError("A system calendar event cannot be managed.")

        try:
            self.check_calendar_access(user, event.calendar_id)
        except CalendarNotFoundError as e:
            raise EventNotFoundError() from e

        if action == EventAction.EDIT and self.is_invitation_from_other_organizer(user, event):
            raise EventAccessDeniedError(
                "Only the organizer can edit this calendar event."
            )

    def can_edit(self, user, event: CalendarEventData, action: str) -> bool:
        try:
            self.check_permission(user, event, action)
        except (EventNotFoundError, EventAccessDeniedError):
            return False
        return True

    def check_calendar_access(self, user, calendar_id: int) -> None:
        calendar = self.calendar_permission_service.get_calendar(calendar_id)
        if not self.calendar_permission_service.is_granted(user, calendar, EventAction.VIEW):
            raise EventAccessDeniedError()

    @staticmethod
    def is_invitation_from_other_organizer(user, event: CalendarEventData) -> bool:
        return any(
            attendee.is_organizer
            and attendee.user_id is not None
            and attendee.user_id != getattr(user, "pk", None)
            for attendee in event.attendees
        )
