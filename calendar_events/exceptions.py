from django.core.exceptions import ImproperlyConfigured, PermissionDenied
from django.http import Http404


class CalendarEventServiceNotInitializedError(ImproperlyConfigured):
    pass


class CalendarEventsError(Exception):
    """Base exception for calendar events errors"""

    default_message = ""

    def __init__(self, message: str | None = None):
        if message is None:
            message = self.default_message
        super().__init__(message)


# Recurrence Errors
class RecurrenceError(CalendarEventsError):
    """Errors related to recurrence rules and their expansion"""

    pass


class InvalidRecurrenceRuleError(RecurrenceError):
    default_message = "Invalid recurrence rule."

    def __init__(self, message: str | None = None, field: str | None = None):
        super().__init__(message)
        self.field = field


class RecurrenceRangeTooLargeError(RecurrenceError):
    def __init__(self, max_occurrences: int):
        super().__init__(
            f"Recurrence expansion exceeds the limit of {max_occurrences} occurrences. "
            "Narrow the requested range."
        )
        self.max_occurrences = max_occurrences


# Lookup and Permission Errors
class EventNotFoundError(CalendarEventsError, Http404):
    default_message = "Calendar event not found."


class CalendarNotFoundError(CalendarEventsError, Http404):
    default_message = "Calendar not found."


class EntityNotFoundError(CalendarEventsError, Http404):
    def __init__(self, entity_class: str, entity_id=None):
        if entity_id is None:
            super().__init__(f"Unknown entity class: {entity_class}.")
        else:
            super().__init__(f"{entity_class} with id {entity_id} not found.")


class EventAccessDeniedError(CalendarEventsError, PermissionDenied):
    default_message = "You do not have access to this calendar event."


# Validation Errors
class EventValidationError(CalendarEventsError):
    """Field level validation errors, ``errors`` maps field names to messages"""

    default_message = "Invalid calendar event data."

    def __init__(self, errors: dict[str, list[str]] | str):
        if isinstance(errors, str):
            errors = {"non_field_errors": [errors]}
        self.errors = errors
        super().__init__(
            "; ".join(
                f"{field}: {', '.join(map(str, messages))}" for field, messages in errors.items()
            )
        )


class InvitationStatusChangeError(EventValidationError):
    def __init__(self):
        super().__init__(
            {"status": ["You cannot change the invitation status of this calendar event."]}
        )


# Persistence Errors
class EventPersistenceError(CalendarEventsError):
    default_message = "Failed to persist calendar event changes."
