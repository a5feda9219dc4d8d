import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from calendar_events.exceptions import (
    CalendarEventsError,
    EventPersistenceError,
    EventValidationError,
    InvalidRecurrenceRuleError,
    RecurrenceRangeTooLargeError,
)


logger = logging.getLogger(__name__)


def calendar_events_exception_handler(exc, context):
    """
    DRF exception handler that renders calendar events errors.

    ``EventNotFoundError`` and ``EventAccessDeniedError`` subclass Django's ``Http404`` and
    ``PermissionDenied``, so DRF's default handler already turns them into 404 and 403.
    """
    if isinstance(exc, InvalidRecurrenceRuleError):
        field_name = f"recurrence.{exc.field}" if exc.field else "recurrence"
        return Response({field_name: [str(exc)]}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, RecurrenceRangeTooLargeError):
        return Response({"non_field_errors": [str(exc)]}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, EventValidationError):
        return Response(exc.errors, status=status.HTTP_422_UNPROCESSABLE_ENTITY)

    if isinstance(exc, EventPersistenceError):
        logger.error("Calendar event persistence failure: %s", exc)
        return Response(
            {"detail": EventPersistenceError.default_message},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = exception_handler(exc, context)
    if response is None and isinstance(exc, CalendarEventsError):
        logger.exception("Unhandled calendar events error: %s", exc)
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return response
