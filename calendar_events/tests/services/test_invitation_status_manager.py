import datetime
from unittest.mock import Mock

import pytest

from calendar_events.constants import AttendeeStatus, AttendeeType, RecurrenceType
from calendar_events.exceptions import InvitationStatusChangeError
from calendar_events.recurrence import OccurrenceGenerator, RecurrencePattern
from calendar_events.services.dataclasses import AttendeeData, CalendarEventData
from calendar_events.services.invitation_status_manager import InvitationStatusManager


NOW = datetime.datetime(2024, 6, 1, 12, tzinfo=datetime.UTC)


@pytest.fixture
def user():
    return Mock(pk=5)


@pytest.fixture
def manager():
    return InvitationStatusManager(
        occurrence_generator=OccurrenceGenerator(max_occurrences=1000), clock=lambda: NOW
    )


def _event(start=NOW + datetime.timedelta(days=1), attendees=(), **kwargs):
    return CalendarEventData(
        id=1,
        calendar_id=1,
        title="Planning",
        start=start,
        end=start + datetime.timedelta(hours=1),
        attendees=attendees,
        **kwargs,
    )


def _attendee(email, status=AttendeeStatus.NONE, attendee_type=AttendeeType.REQUIRED, **kwargs):
    return AttendeeData(email=email, status=status, attendee_type=attendee_type, **kwargs)


def test_attendee_can_answer_future_event(manager, user):
    event = _event(attendees=(_attendee("me@example.com", user_id=user.pk),))

    assert manager.can_change_invitation_status(event, user)
    assert manager.invitation_status_for(event, user) == AttendeeStatus.NONE


def test_non_attendee_cannot_answer(manager, user):
    # matching email or display name is not enough, the attendee must be linked to the user
    event = _event(attendees=(_attendee("me@example.com", display_name="Me"),))

    assert manager.can_change_invitation_status(event, user) is False
    assert manager.invitation_status_for(event, user) == AttendeeStatus.NONE


def test_cannot_answer_cancelled_event(manager, user):
    event = _event(attendees=(_attendee("me@example.com", user_id=user.pk),), is_cancelled=True)

    assert manager.can_change_invitation_status(event, user) is False


def test_cannot_answer_started_event(manager, user):
    event = _event(
        start=NOW - datetime.timedelta(minutes=5),
        attendees=(_attendee("me@example.com", user_id=user.pk),),
    )

    assert manager.can_change_invitation_status(event, user) is False


def test_recurring_event_can_be_answered_while_it_has_future_occurrences(manager, user):
    start = NOW - datetime.timedelta(days=3)
    attendees = (_attendee("me@example.com", user_id=user.pk),)
    ongoing = _event(
        start=start,
        attendees=attendees,
        recurrence=RecurrencePattern(
            recurrence_type=RecurrenceType.DAILY, start_time=start, occurrence_count=10
        ),
    )
    finished = _event(
        start=start,
        attendees=attendees,
        recurrence=RecurrencePattern(
            recurrence_type=RecurrenceType.DAILY, start_time=start, occurrence_count=2
        ),
    )

    assert manager.can_change_invitation_status(ongoing, user)
    assert manager.can_change_invitation_status(finished, user) is False


def test_attendees_with_status_only_changes_the_user(manager, user):
    event = _event(
        attendees=(
            _attendee("other@example.com", status=AttendeeStatus.TENTATIVE),
            _attendee("me@example.com", user_id=user.pk),
        )
    )

    attendees = manager.attendees_with_status(event, user, AttendeeStatus.ACCEPTED)

    assert [attendee.status for attendee in attendees] == [
        AttendeeStatus.TENTATIVE,
        AttendeeStatus.ACCEPTED,
    ]


def test_attendees_with_status_rejects_non_attendee(manager, user):
    with pytest.raises(InvitationStatusChangeError) as exc_info:
        manager.attendees_with_status(_event(), user, AttendeeStatus.ACCEPTED)

    assert "status" in exc_info.value.errors


def test_attendees_with_status_rejects_unknown_status(manager, user):
    event = _event(attendees=(_attendee("me@example.com", user_id=user.pk),))

    with pytest.raises(InvitationStatusChangeError):
        manager.attendees_with_status(event, user, "maybe")


@pytest.mark.parametrize(
    "attendees, expected",
    [
        ((), AttendeeStatus.NONE),
        (
            (
                _attendee("a@example.com", AttendeeStatus.ACCEPTED),
                _attendee("b@example.com", AttendeeStatus.DECLINED),
            ),
            AttendeeStatus.DECLINED,
        ),
        (
            (
                _attendee("a@example.com", AttendeeStatus.ACCEPTED, AttendeeType.ORGANIZER),
                _attendee("b@example.com", AttendeeStatus.ACCEPTED),
                _attendee("c@example.com", AttendeeStatus.NONE, AttendeeType.OPTIONAL),
            ),
            AttendeeStatus.ACCEPTED,
        ),
        (
            (
                _attendee("a@example.com", AttendeeStatus.ACCEPTED),
                _attendee("b@example.com", AttendeeStatus.DECLINED, AttendeeType.OPTIONAL),
            ),
            AttendeeStatus.ACCEPTED,
        ),
        (
            (
                _attendee("a@example.com", AttendeeStatus.TENTATIVE),
                _attendee("b@example.com", AttendeeStatus.TENTATIVE),
                _attendee("c@example.com", AttendeeStatus.NONE),
            ),
            AttendeeStatus.TENTATIVE,
        ),
        (
            (
                _attendee("a@example.com", AttendeeStatus.TENTATIVE),
                _attendee("b@example.com", AttendeeStatus.NONE),
            ),
            AttendeeStatus.NONE,
        ),
    ],
)
def test_aggregate_status(manager, attendees, expected):
    assert manager.aggregate_status(_event(attendees=attendees)) == expected
