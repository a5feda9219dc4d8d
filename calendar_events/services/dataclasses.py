import dataclasses
import datetime
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import TYPE_CHECKING, Any

from calendar_events.constants import AttendeeStatus, AttendeeType
from calendar_events.recurrence import RecurrencePattern


if TYPE_CHECKING:
    from calendar_events.models import CalendarEvent


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


# Marks a patch field that was not sent, as opposed to one explicitly set to None
UNSET: Any = _Unset()


@dataclass(frozen=True)
class AttendeeData:
    email: str
    display_name: str = ""
    status: str = AttendeeStatus.NONE
    attendee_type: str = AttendeeType.REQUIRED
    user_id: int | None = None

    @property
    def key(self) -> str:
        return self.email.lower()

    @property
    def is_organizer(self) -> bool:
        return self.attendee_type == AttendeeType.ORGANIZER

    @property
    def is_required(self) -> bool:
        return self.attendee_type in (AttendeeType.ORGANIZER, AttendeeType.REQUIRED)


@dataclass(frozen=True)
class CalendarEventData:
    """Snapshot of a calendar event and everything it owns."""

    calendar_id: int | None
    title: str
    start: datetime.datetime
    end: datetime.datetime
    id: int | None = None  # noqa: A003
    description: str | None = None
    all_day: bool = False
    background_color: str | None = None
    recurrence: RecurrencePattern | None = None
    recurring_event_id: int | None = None
    original_start: datetime.datetime | None = None
    is_cancelled: bool = False
    attendees: tuple[AttendeeData, ...] = ()
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @property
    def is_exception(self) -> bool:
        return self.recurring_event_id is not None

    @property
    def is_system_event(self) -> bool:
        return self.calendar_id is None

    def get_attendee(self, email: str) -> AttendeeData | None:
        return next((a for a in self.attendees if a.key == email.lower()), None)

    def get_attendee_for_user(self, user_id: int | None) -> AttendeeData | None:
        if user_id is None:
            return None
        return next((a for a in self.attendees if a.user_id == user_id), None)

    @classmethod
    def from_model(cls, event: "CalendarEvent") -> "CalendarEventData":
        return cls(
            id=event.id,
            calendar_id=event.calendar_id,
            title=event.title,
            description=event.description,
            start=event.start,
            end=event.end,
            all_day=event.all_day,
            background_color=event.background_color,
            recurrence=event.get_recurrence_pattern(),
            recurring_event_id=event.recurring_event_id,
            original_start=event.original_start,
            is_cancelled=event.is_cancelled,
            attendees=tuple(
                AttendeeData(
                    email=attendee.email,
                    display_name=attendee.display_name,
                    status=attendee.status,
                    attendee_type=attendee.attendee_type,
                    user_id=attendee.user_id,
                )
                for attendee in event.attendees.all()
            ),
            created_at=event.created,
            updated_at=event.updated_at,
        )


@dataclass
class CalendarEventInputData:
    calendar_id: int | None
    title: str
    start: datetime.datetime
    end: datetime.datetime
    description: str | None = None
    all_day: bool = False
    background_color: str | None = None
    recurrence: RecurrencePattern | None = None
    attendees: list[AttendeeData] = dataclass_field(default_factory=list)


@dataclass
class CalendarEventPatch:
    """
    Partial update of a calendar event. Fields left as ``UNSET`` are not touched.
    """

    calendar_id: int | None = UNSET
    title: str = UNSET
    description: str | None = UNSET
    start: datetime.datetime = UNSET
    end: datetime.datetime = UNSET
    all_day: bool = UNSET
    background_color: str | None = UNSET
    recurrence: RecurrencePattern | None = UNSET
    attendees: tuple[AttendeeData, ...] = UNSET
    is_cancelled: bool = UNSET

    def changes(self) -> dict[str, Any]:
        changes = {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not UNSET
        }
        if "attendees" in changes:
            changes["attendees"] = tuple(changes["attendees"])
        return changes

    def is_empty(self) -> bool:
        return not self.changes()


@dataclass
class CalendarEventOccurrenceData:
    """
    One rendered occurrence in a listing: a single event, a generated instance of a
    recurrence root, or a modified exception.
    """

    id: int  # noqa: A003
    calendar_id: int | None
    title: str
    start: datetime.datetime
    end: datetime.datetime
    description: str | None = None
    all_day: bool = False
    background_color: str | None = None
    recurring_event_id: int | None = None
    original_start: datetime.datetime | None = None
    is_cancelled: bool = False
    attendees: tuple[AttendeeData, ...] = ()
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @classmethod
    def from_event(
        cls,
        event: CalendarEventData,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
        recurring_event_id: int | None = None,
        original_start: datetime.datetime | None = None,
    ) -> "CalendarEventOccurrenceData":
        return cls(
            id=event.id,
            calendar_id=event.calendar_id,
            title=event.title,
            description=event.description,
            start=start or event.start,
            end=end or event.end,
            all_day=event.all_day,
            background_color=event.background_color,
            recurring_event_id=recurring_event_id or event.recurring_event_id,
            original_start=original_start or event.original_start,
            is_cancelled=event.is_cancelled,
            attendees=event.attendees,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


@dataclass
class CalendarEventViewData:
    event: CalendarEventData
    invitation_status: str
    can_change_invitation_status: bool
    editable: bool
    removable: bool
    aggregate_status: str
