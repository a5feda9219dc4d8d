from typing import Annotated

from dependency_injector.wiring import Provide, inject
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from calendar_events.exceptions import EventValidationError
from calendar_events.filtersets import (
    CalendarEventActivityFilterSet,
    CalendarEventOccurrenceFilterSet,
)
from calendar_events.models import CalendarEvent
from calendar_events.permissions import CalendarEventPermission
from calendar_events.serializers import (
    ActivityTargetSerializer,
    CalendarEventOccurrenceSerializer,
    CalendarEventSerializer,
    CalendarEventViewSerializer,
    CleanupExceptionsResultSerializer,
    InvitationStatusSerializer,
    OccurrenceCancelSerializer,
    OccurrenceModifySerializer,
)
from calendar_events.services.calendar_event_service import CalendarEventService


TRUE_VALUES = ("true", "1", "yes")


class CalendarEventViewSet(viewsets.ViewSet):
    """
    ViewSet for managing calendar events, their occurrences and invitations.
    """

    permission_classes = (CalendarEventPermission,)
    lookup_value_converter = "int"

    def get_serializer_context(self):
        return {"request": self.request, "format": self.format_kwarg, "view": self}

    def _validate(self, serializer: serializers.Serializer) -> dict:
        if not serializer.is_valid():
            raise EventValidationError(serializer.errors)
        return serializer.validated_data

    def _view_response(
        self,
        calendar_event_service: CalendarEventService,
        event_id: int,
        status_code: int = status.HTTP_200_OK,
    ) -> Response:
        return Response(
            CalendarEventViewSerializer(
                calendar_event_service.view(event_id), context=self.get_serializer_context()
            ).data,
            status=status_code,
        )

    @extend_schema(
        request=CalendarEventSerializer,
        responses={201: CalendarEventViewSerializer},
    )
    @inject
    def create(
        self,
        request,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        serializer = CalendarEventSerializer(
            data=request.data,
            context=self.get_serializer_context(),
            calendar_event_service=calendar_event_service,
        )
        self._validate(serializer)
        event = serializer.save()

        return self._view_response(calendar_event_service, event.id, status.HTTP_201_CREATED)

    @extend_schema(responses={200: CalendarEventViewSerializer})
    @inject
    def retrieve(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        calendar_event_service.initialize_with_user(request.user)
        return self._view_response(calendar_event_service, pk)

    @extend_schema(
        request=CalendarEventSerializer,
        responses={200: CalendarEventViewSerializer},
    )
    @inject
    def update(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
        partial: bool = False,
    ):
        calendar_event_service.initialize_with_user(request.user)
        event = calendar_event_service.view(pk).event

        serializer = CalendarEventSerializer(
            instance=event,
            data=request.data,
            partial=partial,
            context=self.get_serializer_context(),
            calendar_event_service=calendar_event_service,
        )
        self._validate(serializer)
        serializer.save()

        return self._view_response(calendar_event_service, pk)

    @extend_schema(
        request=CalendarEventSerializer,
        responses={200: CalendarEventViewSerializer},
    )
    def partial_update(self, request, pk: int):
        return self.update(request, pk, partial=True)

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="cancelInsteadOfDelete",
                type=bool,
                location=OpenApiParameter.QUERY,
                description="Cancel the event instead of removing it",
                required=False,
            ),
        ],
        responses={204: None},
    )
    @inject
    def destroy(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        cancel_instead_of_delete = (
            request.query_params.get("cancelInsteadOfDelete", "").lower() in TRUE_VALUES
        )

        calendar_event_service.initialize_with_user(request.user)
        calendar_event_service.delete(pk, cancel_instead_of_delete=cancel_instead_of_delete)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="List occurrences",
        description=(
            "List everything happening in a calendar within a time range: single events, "
            "occurrences of recurring events and their modified occurrences."
        ),
        parameters=[
            OpenApiParameter(
                name="calendar",
                type=int,
                location=OpenApiParameter.QUERY,
                description="Calendar ID",
                required=True,
            ),
            OpenApiParameter(
                name="start",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Range start in ISO format (YYYY-MM-DDTHH:MM:SSZ)",
                required=True,
            ),
            OpenApiParameter(
                name="end",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Range end in ISO format (YYYY-MM-DDTHH:MM:SSZ)",
                required=True,
            ),
        ],
        responses={200: CalendarEventOccurrenceSerializer(many=True)},
    )
    @action(
        methods=["GET"],
        detail=False,
        url_path="occurrences",
        url_name="occurrences",
    )
    @inject
    def occurrences(
        self,
        request,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        query = CalendarEventOccurrenceFilterSet(
            request.query_params, queryset=CalendarEvent.objects.none(), request=request
        ).get_cleaned_data()

        calendar_event_service.initialize_with_user(request.user)
        occurrences = calendar_event_service.list_occurrences(
            int(query["calendar"]), query["start"], query["end"]
        )

        return Response(
            CalendarEventOccurrenceSerializer(
                occurrences, many=True, context=self.get_serializer_context()
            ).data
        )

    @extend_schema(
        summary="Cancel an occurrence",
        request=OccurrenceCancelSerializer,
        responses={200: CalendarEventSerializer},
    )
    @action(
        methods=["POST"],
        detail=True,
        url_path="cancel-occurrence",
        url_name="cancel-occurrence",
    )
    @inject
    def cancel_occurrence(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        data = self._validate(OccurrenceCancelSerializer(data=request.data))

        calendar_event_service.initialize_with_user(request.user)
        exception = calendar_event_service.cancel_occurrence(pk, data["original_start"])

        return Response(
            CalendarEventSerializer(exception, context=self.get_serializer_context()).data
        )

    @extend_schema(
        summary="Modify an occurrence",
        request=OccurrenceModifySerializer,
        responses={200: CalendarEventSerializer},
    )
    @action(
        methods=["POST"],
        detail=True,
        url_path="modify-occurrence",
        url_name="modify-occurrence",
    )
    @inject
    def modify_occurrence(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        serializer = OccurrenceModifySerializer(data=request.data)
        data = self._validate(serializer)

        calendar_event_service.initialize_with_user(request.user)
        exception = calendar_event_service.modify_occurrence(
            pk, data["original_start"], serializer.get_patch()
        )

        return Response(
            CalendarEventSerializer(exception, context=self.get_serializer_context()).data
        )

    @extend_schema(
        summary="Answer an invitation",
        request=InvitationStatusSerializer,
        responses={200: CalendarEventSerializer},
    )
    @action(
        methods=["POST"],
        detail=True,
        url_path="invitation-status",
        url_name="invitation-status",
    )
    @inject
    def invitation_status(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        data = self._validate(InvitationStatusSerializer(data=request.data))

        calendar_event_service.initialize_with_user(request.user)
        event = calendar_event_service.change_invitation_status(pk, data["status"])

        return Response(CalendarEventSerializer(event, context=self.get_serializer_context()).data)

    @extend_schema(
        summary="Delete orphaned occurrence exceptions",
        description=(
            "Delete the modified or cancelled occurrences whose original start is no longer "
            "generated by the recurrence of the event."
        ),
        request=None,
        responses={200: CleanupExceptionsResultSerializer},
    )
    @action(
        methods=["POST"],
        detail=True,
        url_path="cleanup-exceptions",
        url_name="cleanup-exceptions",
    )
    @inject
    def cleanup_exceptions(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        calendar_event_service.initialize_with_user(request.user)
        deleted = calendar_event_service.cleanup_orphaned_exceptions(pk)

        return Response(CleanupExceptionsResultSerializer({"deleted": deleted}).data)

    @extend_schema(
        summary="Link an entity",
        request=ActivityTargetSerializer,
        responses={204: None},
    )
    @action(
        methods=["POST"],
        detail=True,
        url_path="activity-targets",
        url_name="activity-targets",
    )
    @inject
    def activity_targets(
        self,
        request,
        pk: int,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        data = self._validate(ActivityTargetSerializer(data=request.data))

        calendar_event_service.initialize_with_user(request.user)
        calendar_event_service.link_activity_target(pk, data["entity_class"], data["entity_id"])

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="List events linked to an entity",
        parameters=[
            OpenApiParameter(
                name="entityClass",
                type=str,
                location=OpenApiParameter.QUERY,
                description='Model of the entity, as "app_label.ModelName"',
                required=True,
            ),
            OpenApiParameter(
                name="entityId",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Primary key of the entity",
                required=True,
            ),
        ],
        responses={200: CalendarEventSerializer(many=True)},
    )
    @action(
        methods=["GET"],
        detail=False,
        url_path="activity",
        url_name="activity",
    )
    @inject
    def activity(
        self,
        request,
        calendar_event_service: Annotated[
            CalendarEventService, Provide["calendar_event_service"]
        ] = None,
    ):
        query = CalendarEventActivityFilterSet(
            request.query_params, queryset=CalendarEvent.objects.none(), request=request
        ).get_cleaned_data()

        calendar_event_service.initialize_with_user(request.user)
        events = calendar_event_service.list_activity_events(
            query["entityClass"], query["entityId"]
        )

        return Response(
            CalendarEventSerializer(events, many=True, context=self.get_serializer_context()).data
        )
