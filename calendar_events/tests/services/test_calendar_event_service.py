import datetime

import pytest

from calendar_events.constants import AttendeeStatus, AttendeeType, RecurrenceType
from calendar_events.exceptions import (
    CalendarEventServiceNotInitializedError,
    CalendarNotFoundError,
    EntityNotFoundError,
    EventAccessDeniedError,
    EventNotFoundError,
    EventValidationError,
    InvitationStatusChangeError,
)
from calendar_events.factories import CalendarEventFactory
from calendar_events.models import CalendarEvent, CalendarEventActivityTarget
from calendar_events.recurrence import OccurrenceGenerator, RecurrencePattern
from calendar_events.services.calendar_event_repository import CalendarEventRepository
from calendar_events.services.calendar_event_service import CalendarEventService
from calendar_events.services.calendar_permission_service import CalendarPermissionService
from calendar_events.services.change_tracker import ChangeTracker
from calendar_events.services.dataclasses import (
    AttendeeData,
    CalendarEventInputData,
    CalendarEventPatch,
)
from calendar_events.services.entity_lookup_service import EntityLookupService
from calendar_events.services.event_edit_policy import EventEditPolicy
from calendar_events.services.invitation_status_manager import InvitationStatusManager


CALENDAR_LABEL = "calendar_events.Calendar"
START = datetime.datetime(2030, 1, 7, 9, tzinfo=datetime.UTC)
HOUR = datetime.timedelta(hours=1)
DAY = datetime.timedelta(days=1)


def _build_service() -> CalendarEventService:
    generator = OccurrenceGenerator(max_occurrences=1000)
    return CalendarEventService(
        calendar_event_repository=CalendarEventRepository(),
        event_edit_policy=EventEditPolicy(
            calendar_permission_service=CalendarPermissionService()
        ),
        invitation_status_manager=InvitationStatusManager(occurrence_generator=generator),
        change_tracker=ChangeTracker(),
        occurrence_generator=generator,
        entity_lookup_service=EntityLookupService(),
    )


@pytest.fixture
def service(user):
    service = _build_service()
    service.initialize_with_user(user)
    return service


@pytest.fixture
def other_service(other_user):
    service = _build_service()
    service.initialize_with_user(other_user)
    return service


@pytest.fixture
def daily_event(calendar):
    """Daily recurrence root with five occurrences, from START to START + 4 days."""
    return CalendarEventFactory.create_recurring_event(
        calendar, START, START + HOUR, RecurrenceType.DAILY, occurrence_count=5
    )


def _daily_pattern(**kwargs):
    kwargs.setdefault("occurrence_count", 5)
    return RecurrencePattern(recurrence_type=RecurrenceType.DAILY, start_time=START, **kwargs)


def _input(calendar, **kwargs):
    return CalendarEventInputData(
        calendar_id=calendar.id,
        title=kwargs.pop("title", "Kickoff"),
        start=kwargs.pop("start", START),
        end=kwargs.pop("end", START + HOUR),
        **kwargs,
    )


@pytest.mark.django_db
def test_service_requires_user():
    service = _build_service()

    with pytest.raises(CalendarEventServiceNotInitializedError):
        service.view(1)


@pytest.mark.django_db
def test_create_event(service, calendar, other_user):
    created = service.create(
        _input(calendar, attendees=[AttendeeData(email=other_user.email.upper())])
    )

    assert created.id is not None
    assert created.calendar_id == calendar.id
    assert created.description is None
    assert created.created_at is not None
    assert created.updated_at is not None
    assert created.attendees[0].user_id == other_user.pk
    assert CalendarEvent.objects.filter(pk=created.id).exists()


@pytest.mark.django_db
def test_create_recurring_event(service, calendar):
    created = service.create(_input(calendar, recurrence=_daily_pattern()))

    assert created.recurrence == _daily_pattern()
    assert CalendarEvent.objects.get(pk=created.id).recurrence.occurrence_count == 5


@pytest.mark.django_db
def test_create_requires_calendar(service):
    with pytest.raises(EventValidationError) as exc_info:
        service.create(
            CalendarEventInputData(calendar_id=None, title="x", start=START, end=START + HOUR)
        )

    assert "calendar" in exc_info.value.errors


@pytest.mark.django_db
def test_create_in_unknown_calendar(service):
    with pytest.raises(CalendarNotFoundError):
        service.create(
            CalendarEventInputData(calendar_id=999999, title="x", start=START, end=START + HOUR)
        )


@pytest.mark.django_db
def test_create_in_calendar_of_another_user(other_service, calendar):
    with pytest.raises(EventAccessDeniedError):
        other_service.create(_input(calendar))


@pytest.mark.django_db
def test_create_rejects_end_before_start(service, calendar):
    with pytest.raises(EventValidationError) as exc_info:
        service.create(_input(calendar, end=START - HOUR))

    assert "end" in exc_info.value.errors
    assert not CalendarEvent.objects.exists()


@pytest.mark.django_db
def test_update_with_same_values_keeps_updated_at(service, calendar):
    created = service.create(_input(calendar, attendees=[AttendeeData(email="a@example.com")]))

    updated = service.update(
        created.id,
        CalendarEventPatch(
            title=created.title,
            attendees=(AttendeeData(email="A@example.com"),),
        ),
    )

    assert updated.updated_at == created.updated_at
    assert updated.created_at == created.created_at


@pytest.mark.django_db
def test_update_recurrence_interval_advances_updated_at(service, calendar):
    created = service.create(_input(calendar, recurrence=_daily_pattern()))

    updated = service.update(
        created.id, CalendarEventPatch(recurrence=_daily_pattern(interval=2))
    )

    assert updated.recurrence.interval == 2
    assert updated.updated_at > created.updated_at
    assert updated.created_at == created.created_at


@pytest.mark.django_db
def test_update_attendee_status_advances_updated_at(service, calendar):
    created = service.create(
        _input(
            calendar,
            attendees=[AttendeeData(email="a@example.com"), AttendeeData(email="b@example.com")],
        )
    )

    updated = service.update(
        created.id,
        CalendarEventPatch(
            attendees=(
                AttendeeData(email="b@example.com"),
                AttendeeData(email="a@example.com", status=AttendeeStatus.DECLINED),
            )
        ),
    )

    assert updated.updated_at > created.updated_at
    assert updated.get_attendee("a@example.com").status == AttendeeStatus.DECLINED


@pytest.mark.django_db
def test_update_by_invitee_is_denied(service, calendar, user, other_user):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)
    CalendarEventFactory.add_attendee(
        event, other_user.email, user=other_user, attendee_type=AttendeeType.ORGANIZER
    )
    CalendarEventFactory.add_attendee(event, user.email, user=user)

    with pytest.raises(EventAccessDeniedError):
        service.update(event.id, CalendarEventPatch(title="Mine now"))


@pytest.mark.django_db
def test_update_move_to_calendar_of_another_user(service, calendar, other_user):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)
    foreign_calendar = CalendarEventFactory.create_calendar(owner=other_user)

    with pytest.raises(EventAccessDeniedError):
        service.update(event.id, CalendarEventPatch(calendar_id=foreign_calendar.id))


@pytest.mark.django_db
def test_system_event_is_not_found(service):
    event = CalendarEventFactory.create_event(None, START, START + HOUR)

    with pytest.raises(EventNotFoundError):
        service.view(event.id)
    with pytest.raises(EventNotFoundError):
        service.update(event.id, CalendarEventPatch(title="x"))
    with pytest.raises(EventNotFoundError):
        service.delete(event.id)
    with pytest.raises(EventNotFoundError):
        service.change_invitation_status(event.id, AttendeeStatus.ACCEPTED)


@pytest.mark.django_db
def test_unknown_event_is_not_found(service):
    with pytest.raises(EventNotFoundError):
        service.view(999999)


@pytest.mark.django_db
def test_delete_removes_event(service, calendar):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)

    service.delete(event.id)

    assert not CalendarEvent.objects.filter(pk=event.id).exists()


@pytest.mark.django_db
def test_delete_cancels_when_asked(service, calendar):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)

    service.delete(event.id, cancel_instead_of_delete=True)

    assert CalendarEvent.objects.get(pk=event.id).is_cancelled


@pytest.mark.django_db
def test_delete_cancels_when_an_attendee_accepted(service, calendar):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)
    CalendarEventFactory.add_attendee(event, "guest@example.com", status=AttendeeStatus.ACCEPTED)

    service.delete(event.id)

    assert CalendarEvent.objects.get(pk=event.id).is_cancelled


@pytest.mark.django_db
def test_delete_recurring_event_with_exceptions_cancels_them(service, daily_event):
    exception = service.modify_occurrence(
        daily_event.id, START + DAY, CalendarEventPatch(title="Moved")
    )

    service.delete(daily_event.id)

    assert CalendarEvent.objects.get(pk=daily_event.id).is_cancelled
    assert CalendarEvent.objects.get(pk=exception.id).is_cancelled


@pytest.mark.django_db
def test_delete_exception_cancels_it(service, daily_event):
    exception = service.modify_occurrence(
        daily_event.id, START + DAY, CalendarEventPatch(title="Moved")
    )

    service.delete(exception.id)

    assert CalendarEvent.objects.get(pk=exception.id).is_cancelled
    assert not CalendarEvent.objects.get(pk=daily_event.id).is_cancelled


@pytest.mark.django_db
def test_list_occurrences(service, calendar, daily_event):
    single = CalendarEventFactory.create_event(calendar, START + 2 * HOUR, START + 3 * HOUR)
    CalendarEventFactory.create_event(calendar, START + 30 * DAY, START + 30 * DAY + HOUR)
    CalendarEventFactory.create_event(
        calendar, START + 3 * HOUR, START + 4 * HOUR, is_cancelled=True
    )

    occurrences = service.list_occurrences(calendar.id, START, START + DAY + 12 * HOUR)

    assert [(occurrence.id, occurrence.start) for occurrence in occurrences] == [
        (daily_event.id, START),
        (single.id, START + 2 * HOUR),
        (daily_event.id, START + DAY),
    ]


@pytest.mark.django_db
def test_list_occurrences_rejects_inverted_range(service, calendar):
    with pytest.raises(EventValidationError):
        service.list_occurrences(calendar.id, START, START - DAY)


@pytest.mark.django_db
def test_list_occurrences_of_another_users_calendar(other_service, calendar):
    with pytest.raises(EventAccessDeniedError):
        other_service.list_occurrences(calendar.id, START, START + DAY)


@pytest.mark.django_db
def test_cancel_occurrence(service, calendar, daily_event):
    cancelled = service.cancel_occurrence(daily_event.id, START + 2 * DAY)

    assert cancelled.is_cancelled
    assert cancelled.recurring_event_id == daily_event.id
    assert cancelled.original_start == START + 2 * DAY
    assert cancelled.end - cancelled.start == HOUR

    starts = [o.start for o in service.list_occurrences(calendar.id, START, START + 10 * DAY)]
    assert starts == [START, START + DAY, START + 3 * DAY, START + 4 * DAY]


@pytest.mark.django_db
def test_cancel_occurrence_twice_reuses_exception(service, daily_event):
    first = service.cancel_occurrence(daily_event.id, START + DAY)
    second = service.cancel_occurrence(daily_event.id, START + DAY)

    assert first.id == second.id
    assert second.updated_at == first.updated_at
    assert CalendarEvent.objects.filter(recurring_event_id=daily_event.id).count() == 1


@pytest.mark.django_db
def test_cancel_occurrence_rejects_instant_not_generated(service, daily_event):
    with pytest.raises(EventValidationError) as exc_info:
        service.cancel_occurrence(daily_event.id, START + DAY + HOUR)

    assert "originalStart" in exc_info.value.errors


@pytest.mark.django_db
def test_cancel_occurrence_of_single_event(service, calendar):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)

    with pytest.raises(EventValidationError) as exc_info:
        service.cancel_occurrence(event.id, START)

    assert "recurrence" in exc_info.value.errors


@pytest.mark.django_db
def test_modify_occurrence(service, calendar, daily_event):
    modified = service.modify_occurrence(
        daily_event.id,
        START + DAY,
        CalendarEventPatch(
            title="Late sync", start=START + DAY + 5 * HOUR, end=START + DAY + 6 * HOUR
        ),
    )

    occurrences = service.list_occurrences(calendar.id, START + DAY, START + 2 * DAY - HOUR)

    assert len(occurrences) == 1
    assert occurrences[0].id == modified.id
    assert occurrences[0].title == "Late sync"
    assert occurrences[0].start == START + DAY + 5 * HOUR
    assert occurrences[0].original_start == START + DAY


@pytest.mark.django_db
def test_modify_occurrence_cannot_change_calendar(service, user, daily_event):
    other_calendar = CalendarEventFactory.create_calendar(owner=user)

    with pytest.raises(EventValidationError):
        service.modify_occurrence(
            daily_event.id, START + DAY, CalendarEventPatch(calendar_id=other_calendar.id)
        )


@pytest.mark.django_db
def test_cleanup_orphaned_exceptions(service, daily_event):
    kept = service.cancel_occurrence(daily_event.id, START + DAY)
    orphaned = service.cancel_occurrence(daily_event.id, START + 4 * DAY)
    service.update(
        daily_event.id, CalendarEventPatch(recurrence=_daily_pattern(occurrence_count=3))
    )

    assert service.cleanup_orphaned_exceptions(daily_event.id) == 1
    assert CalendarEvent.objects.filter(pk=kept.id).exists()
    assert not CalendarEvent.objects.filter(pk=orphaned.id).exists()
    assert service.cleanup_orphaned_exceptions(daily_event.id) == 0


@pytest.mark.django_db
def test_view(service, calendar, user):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)
    CalendarEventFactory.add_attendee(
        event, user.email, user=user, status=AttendeeStatus.TENTATIVE
    )

    view = service.view(event.id)

    assert view.event.id == event.id
    assert view.invitation_status == AttendeeStatus.TENTATIVE
    assert view.can_change_invitation_status
    assert view.editable
    assert view.removable
    assert view.aggregate_status == AttendeeStatus.TENTATIVE


@pytest.mark.django_db
def test_change_invitation_status_by_attendee(other_service, calendar, other_user):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)
    CalendarEventFactory.add_attendee(event, other_user.email, user=other_user)

    updated = other_service.change_invitation_status(event.id, AttendeeStatus.ACCEPTED)

    assert updated.get_attendee_for_user(other_user.pk).status == AttendeeStatus.ACCEPTED
    assert updated.updated_at > event.updated_at


@pytest.mark.django_db
def test_change_invitation_status_by_non_attendee_without_access(other_service, calendar):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)

    with pytest.raises(EventAccessDeniedError):
        other_service.change_invitation_status(event.id, AttendeeStatus.ACCEPTED)


@pytest.mark.django_db
def test_change_invitation_status_by_owner_not_invited(service, calendar):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)

    with pytest.raises(InvitationStatusChangeError):
        service.change_invitation_status(event.id, AttendeeStatus.ACCEPTED)


@pytest.mark.django_db
def test_activity_targets(service, other_service, calendar, other_user):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)
    target = CalendarEventFactory.create_calendar(owner=other_user)
    other_calendar_event = CalendarEventFactory.create_event(target, START, START + HOUR)

    service.link_activity_target(event.id, CALENDAR_LABEL, target.pk)
    # linking twice is a no-op
    service.link_activity_target(event.id, CALENDAR_LABEL, target.pk)
    other_service.link_activity_target(other_calendar_event.id, CALENDAR_LABEL, target.pk)

    assert [e.id for e in service.list_activity_events(CALENDAR_LABEL, target.pk)] == [event.id]
    assert [e.id for e in other_service.list_activity_events(CALENDAR_LABEL, target.pk)] == [
        other_calendar_event.id
    ]


@pytest.mark.django_db
def test_activity_targets_with_unknown_entity(service, calendar):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)
    with pytest.raises(EntityNotFoundError):
        service.link_activity_target(event.id, "users.Unknown", 1)
    with pytest.raises(EntityNotFoundError):
        service.link_activity_target(event.id, "calendar_events.Calendar", 999999)


@pytest.mark.django_db
def test_activity_targets_refuse_models_outside_the_allow_list(service, calendar, other_user):
    event = CalendarEventFactory.create_event(calendar, START, START + HOUR)

    with pytest.raises(EntityNotFoundError):
        service.link_activity_target(event.id, "users.User", other_user.pk)
    with pytest.raises(EntityNotFoundError):
        service.list_activity_events("users.User", other_user.pk)
    assert not CalendarEventActivityTarget.objects.exists()
