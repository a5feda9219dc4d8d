import dataclasses
import datetime
import logging
from typing import Annotated

from django.db import transaction

from dependency_injector.wiring import Provide, inject

from calendar_events.constants import AttendeeStatus, EventAction
from calendar_events.exceptions import (
    CalendarEventServiceNotInitializedError,
    EventNotFoundError,
    EventValidationError,
)
from calendar_events.recurrence import OccurrenceGenerator, RecurrencePattern
from calendar_events.services.calendar_event_repository import CalendarEventRepository
from calendar_events.services.change_tracker import ChangeTracker
from calendar_events.services.dataclasses import (
    UNSET,
    CalendarEventData,
    CalendarEventInputData,
    CalendarEventOccurrenceData,
    CalendarEventPatch,
    CalendarEventViewData,
)
from calendar_events.services.entity_lookup_service import EntityLookupService
from calendar_events.services.event_edit_policy import EventEditPolicy
from calendar_events.services.exception_set import ExceptionSet
from calendar_events.services.invitation_status_manager import InvitationStatusManager
from users.models import User


logger = logging.getLogger(__name__)


class CalendarEventService:
    """
    Entry point for every calendar event operation. Call ``initialize_with_user`` first,
    permissions are checked against that user.
    """

    user: User | None

    @inject
    def __init__(
        self,
        calendar_event_repository: Annotated[
            CalendarEventRepository, Provide["calendar_event_repository"]
        ] = None,
        event_edit_policy: Annotated[EventEditPolicy, Provide["event_edit_policy"]] = None,
        invitation_status_manager: Annotated[
            InvitationStatusManager, Provide["invitation_status_manager"]
        ] = None,
        change_tracker: Annotated[ChangeTracker, Provide["change_tracker"]] = None,
        occurrence_generator: Annotated[
            OccurrenceGenerator, Provide["occurrence_generator"]
        ] = None,
        entity_lookup_service: Annotated[
            EntityLookupService, Provide["entity_lookup_service"]
        ] = None,
    ) -> None:
        self.user = None
        self.calendar_event_repository = calendar_event_repository
        self.event_edit_policy = event_edit_policy
        self.invitation_status_manager = invitation_status_manager
        self.change_tracker = change_tracker
        self.occurrence_generator = occurrence_generator
        self.entity_lookup_service = entity_lookup_service

    def initialize_with_user(self, user: User) -> None:
        self.user = user

    def _get_user(self) -> User:
        if self.user is None:
            raise CalendarEventServiceNotInitializedError(
                "CalendarEventService requires initialize_with_user() to be called first."
            )
        return self.user

    @transaction.atomic()
    def create(self, event_data: CalendarEventInputData) -> CalendarEventData:
        user = self._get_user()
        if event_data.calendar_id is None:
            raise EventValidationError({"calendar": ["This field is required."]})
        self.event_edit_policy.check_calendar_access(user, event_data.calendar_id)

        event = CalendarEventData(
            calendar_id=event_data.calendar_id,
            title=event_data.title,
            description=event_data.description,
            start=event_data.start,
            end=event_data.end,
            all_day=event_data.all_day,
            background_color=event_data.background_color,
            recurrence=event_data.recurrence,
            attendees=tuple(event_data.attendees),
        )
        self.change_tracker.validate(event)

        created = self.calendar_event_repository.save(self.change_tracker.touch(event))
        logger.info("Calendar event %s created by user %s", created.id, user.pk)
        return created

    @transaction.atomic()
    def update(self, event_id: int, patch: CalendarEventPatch) -> CalendarEventData:
        user = self._get_user()
        event = self.calendar_event_repository.get(event_id, for_update=True)
        self.event_edit_policy.check_permission(user, event, EventAction.EDIT)

        if patch.calendar_id is not UNSET and patch.calendar_id != event.calendar_id:
            if patch.calendar_id is None:
                raise EventValidationError({"calendar": ["This field may not be null."]})
            self.event_edit_policy.check_calendar_access(user, patch.calendar_id)

        return self._save_if_changed(event, patch)

    @transaction.atomic()
    def delete(self, event_id: int, cancel_instead_of_delete: bool = False) -> None:
        """
        Delete an event, or cancel it when other people depend on it.

        The event is cancelled instead of removed when asked to, when it is an invitation
        from another organizer, when someone other than the organizer accepted it, when it is
        an occurrence exception, or when it is a recurrence root with exceptions (which are
        all cancelled along with it).
        """
        user = self._get_user()
        event = self.calendar_event_repository.get(event_id, for_update=True)
        self.event_edit_policy.check_permission(user, event, EventAction.DELETE)

        if not self._should_cancel_instead_of_delete(user, event, cancel_instead_of_delete):
            self.calendar_event_repository.delete(event.id)
            logger.info("Calendar event %s deleted by user %s", event.id, user.pk)
            return

        cancel_patch = CalendarEventPatch(is_cancelled=True)
        self._save_if_changed(event, cancel_patch)
        if event.is_recurring:
            exceptions = self.calendar_event_repository.list_exceptions([event.id])
            for exception in exceptions.get(event.id, []):
                self._save_if_changed(exception, cancel_patch)
        logger.info("Calendar event %s cancelled by user %s", event.id, user.pk)

    def list_occurrences(
        self,
        calendar_id: int,
        range_start: datetime.datetime,
        range_end: datetime.datetime,
    ) -> list[CalendarEventOccurrenceData]:
        """
        Everything happening in a calendar within ``[range_start, range_end]``: single events,
        generated occurrences of recurring events and their modified exceptions.
        """
        user = self._get_user()
        if range_end < range_start:
            raise EventValidationError({"end": ["End must not be before start."]})
        self.event_edit_policy.check_calendar_access(user, calendar_id)

        occurrences = [
            CalendarEventOccurrenceData.from_event(event)
            for event in self.calendar_event_repository.list_single_events(
                calendar_id, range_start, range_end
            )
        ]

        roots = self.calendar_event_repository.list_recurring_roots(calendar_id, range_end)
        exceptions_by_root = self.calendar_event_repository.list_exceptions(
            [root.id for root in roots]
        )
        for root in roots:
            exception_set = ExceptionSet(root, exceptions_by_root.get(root.id, []))
            occurrences.extend(
                exception_set.apply(self.occurrence_generator, range_start, range_end)
            )

        return sorted(occurrences, key=lambda occurrence: (occurrence.start, occurrence.id))

    def view(self, event_id: int) -> CalendarEventViewData:
        user = self._get_user()
        event = self.calendar_event_repository.get(event_id)
        self.event_edit_policy.check_permission(user, event, EventAction.VIEW)

        return CalendarEventViewData(
            event=event,
            invitation_status=self.invitation_status_manager.invitation_status_for(event, user),
            can_change_invitation_status=(
                self.invitation_status_manager.can_change_invitation_status(event, user)
            ),
            editable=self.event_edit_policy.can_edit(user, event, EventAction.EDIT),
            removable=self.event_edit_policy.can_edit(user, event, EventAction.DELETE),
            aggregate_status=self.invitation_status_manager.aggregate_status(event),
        )

    @transaction.atomic()
    def cancel_occurrence(
        self, event_id: int, original_start: datetime.datetime
    ) -> CalendarEventData:
        """Cancel the occurrence of a recurring event starting at ``original_start``."""
        return self.modify_occurrence(
            event_id, original_start, CalendarEventPatch(is_cancelled=True)
        )

    @transaction.atomic()
    def modify_occurrence(
        self, event_id: int, original_start: datetime.datetime, patch: CalendarEventPatch
    ) -> CalendarEventData:
        """
        Override one occurrence of a recurring event, materializing its exception on the
        first edit.
        """
        user = self._get_user()
        root = self.calendar_event_repository.get(event_id, for_update=True)
        self.event_edit_policy.check_permission(user, root, EventAction.EDIT)
        pattern = self._get_occurrence_pattern(root, original_start)

        if patch.calendar_id is not UNSET and patch.calendar_id != root.calendar_id:
            raise EventValidationError(
                {"calendar": ["An occurrence cannot be moved to another calendar."]}
            )

        exception = self.calendar_event_repository.get_exception(root.id, original_start)
        if exception is not None:
            return self._save_if_changed(exception, patch)

        exception = dataclasses.replace(
            self._materialize_occurrence(root, pattern, original_start), **patch.changes()
        )
        self.change_tracker.validate(exception)
        saved = self.calendar_event_repository.save(self.change_tracker.touch(exception))
        logger.info(
            "Occurrence %s of calendar event %s materialized as %s",
            original_start.isoformat(),
            root.id,
            saved.id,
        )
        return saved

    @transaction.atomic()
    def cleanup_orphaned_exceptions(self, event_id: int) -> int:
        """Delete exceptions whose occurrence is no longer generated by the root's pattern."""
        user = self._get_user()
        root = self.calendar_event_repository.get(event_id, for_update=True)
        self.event_edit_policy.check_permission(user, root, EventAction.EDIT)

        exceptions = self.calendar_event_repository.list_exceptions([root.id]).get(root.id, [])
        orphans = ExceptionSet(root, exceptions).orphans(self.occurrence_generator)
        if not orphans:
            return 0

        deleted = self.calendar_event_repository.delete_events([orphan.id for orphan in orphans])
        logger.info("Deleted %s orphaned exceptions of calendar event %s", deleted, root.id)
        return deleted

    @transaction.atomic()
    def change_invitation_status(self, event_id: int, status: str) -> CalendarEventData:
        user = self._get_user()
        event = self.calendar_event_repository.get(event_id, for_update=True)
        if event.is_system_event:
            raise EventNotFoundError("A system calendar event cannot be managed.")
        if event.get_attendee_for_user(user.pk) is None:
            # non attendees still need access to the calendar
            self.event_edit_policy.check_permission(user, event, EventAction.VIEW)

        attendees = self.invitation_status_manager.attendees_with_status(event, user, status)
        return self._save_if_changed(event, CalendarEventPatch(attendees=attendees))

    @transaction.atomic()
    def link_activity_target(self, event_id: int, entity_class, entity_id) -> None:
        user = self._get_user()
        event = self.calendar_event_repository.get(event_id)
        self.event_edit_policy.check_permission(user, event, EventAction.EDIT)

        entity = self.entity_lookup_service.get_entity(entity_class, entity_id)
        self.calendar_event_repository.add_activity_target(event.id, entity)

    def list_activity_events(self, entity_class, entity_id) -> list[CalendarEventData]:
        """Events linked to an entity that the current user is allowed to see."""
        user = self._get_user()
        entity = self.entity_lookup_service.get_entity(entity_class, entity_id)
        return [
            event
            for event in self.calendar_event_repository.list_events_for_entity(entity)
            if self.event_edit_policy.can_edit(user, event, EventAction.VIEW)
        ]

    def _save_if_changed(
        self, event: CalendarEventData, patch: CalendarEventPatch
    ) -> CalendarEventData:
        updated = self.change_tracker.apply_update(event, patch)
        if updated is event:
            return event
        return self.calendar_event_repository.save(updated)

    def _should_cancel_instead_of_delete(
        self, user: User, event: CalendarEventData, cancel_instead_of_delete: bool
    ) -> bool:
        if cancel_instead_of_delete or event.is_exception:
            return True
        if self.event_edit_policy.is_invitation_from_other_organizer(user, event):
            return True
        if any(
            attendee.status == AttendeeStatus.ACCEPTED and not attendee.is_organizer
            for attendee in event.attendees
        ):
            return True
        return event.is_recurring and self.calendar_event_repository.has_exceptions(event.id)

    def _get_occurrence_pattern(
        self, root: CalendarEventData, original_start: datetime.datetime
    ) -> RecurrencePattern:
        if root.recurrence is None:
            raise EventValidationError({"recurrence": ["This calendar event is not recurring."]})
        if not self.occurrence_generator.is_occurrence(root.recurrence, original_start):
            raise EventValidationError(
                {"originalStart": ["No occurrence of this calendar event starts at this time."]}
            )
        return root.recurrence

    def _materialize_occurrence(
        self,
        root: CalendarEventData,
        pattern: RecurrencePattern,
        original_start: datetime.datetime,
    ) -> CalendarEventData:
        return dataclasses.replace(
            root,
            id=None,
            start=original_start,
            end=self.occurrence_generator.occurrence_end(
                pattern, original_start, root.start, root.end
            ),
            recurrence=None,
            recurring_event_id=root.id,
            original_start=original_start,
            created_at=None,
            updated_at=None,
        )
