from dependency_injector import containers, providers

from calendar_events.recurrence import OccurrenceGenerator
from calendar_events.services.calendar_event_repository import CalendarEventRepository
from calendar_events.services.calendar_event_service import CalendarEventService
from calendar_events.services.calendar_permission_service import CalendarPermissionService
from calendar_events.services.change_tracker import ChangeTracker
from calendar_events.services.entity_lookup_service import EntityLookupService
from calendar_events.services.event_edit_policy import EventEditPolicy
from calendar_events.services.invitation_status_manager import InvitationStatusManager


class AppContainer(containers.DeclarativeContainer):
    config = providers.Configuration()

    occurrence_generator = providers.Factory(
        OccurrenceGenerator,
        max_occurrences=config.CALENDAR_EVENTS_MAX_OCCURRENCES,
    )

    calendar_permission_service = providers.Factory(
        CalendarPermissionService,
    )

    entity_lookup_service = providers.Factory(
        EntityLookupService,
        allowed_models=config.CALENDAR_EVENTS_ACTIVITY_TARGET_MODELS,
    )

    calendar_event_repository = providers.Factory(
        CalendarEventRepository,
    )

    change_tracker = providers.Factory(
        ChangeTracker,
    )

    event_edit_policy = providers.Factory(
        EventEditPolicy,
        calendar_permission_service=calendar_permission_service,
    )

    invitation_status_manager = providers.Factory(
        InvitationStatusManager,
        occurrence_generator=occurrence_generator,
    )

    calendar_event_service = providers.Factory(
        CalendarEventService,
        calendar_event_repository=calendar_event_repository,
        event_edit_policy=event_edit_policy,
        invitation_status_manager=invitation_status_manager,
        change_tracker=change_tracker,
        occurrence_generator=occurrence_generator,
        entity_lookup_service=entity_lookup_service,
    )


container: AppContainer | None = None  # set during app startup
