from calendar_events.constants import EventAction
from calendar_events.exceptions import CalendarNotFoundError
from calendar_events.models import Calendar, CalendarOwnership


class CalendarPermissionService:
    """
    Grants actions on calendars. Owners and superusers can view and edit a calendar and,
    through it, its events.
    """

    def is_granted(self, user, calendar: Calendar, action: str = EventAction.VIEW) -> bool:
        if user is None or not user.is_authenticated or not user.is_active:
            return False
        if user.is_superuser:
            return True
        return CalendarOwnership.objects.filter(calendar=calendar, user=user).exists()

    def get_calendar(self, calendar_id: int) -> Calendar:
        try:
            return Calendar.objects.get(pk=calendar_id)
        except Calendar.DoesNotExist as e:
            raise CalendarNotFoundError() from e
