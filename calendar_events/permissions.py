from rest_framework.permissions import BasePermission


class CalendarEventPermission(BasePermission):
    """
    Only authenticated users can reach calendar events. Access to a given event is decided by
    the calendar event service, from the permissions on the event's calendar.
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)
