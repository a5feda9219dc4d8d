from typing import TYPE_CHECKING, Annotated

from dependency_injector.wiring import Provide, inject
from rest_framework import serializers

from calendar_events.constants import (
    WEEKDAY_INDEXES,
    AttendeeStatus,
    AttendeeType,
    RecurrenceType,
    RecurrenceWeekday,
)
from calendar_events.recurrence import RecurrencePattern
from calendar_events.services.dataclasses import (
    AttendeeData,
    CalendarEventData,
    CalendarEventInputData,
    CalendarEventPatch,
    CalendarEventViewData,
)


if TYPE_CHECKING:
    from calendar_events.services.calendar_event_service import CalendarEventService


class RecurrenceSerializer(serializers.Serializer):
    """Validates a recurrence payload into a ``RecurrencePattern``."""

    type = serializers.ChoiceField(  # noqa: A003
        choices=RecurrenceType.choices, source="recurrence_type"
    )
    interval = serializers.IntegerField(default=1)
    daysOfWeek = serializers.ListField(  # noqa: N815
        child=serializers.ChoiceField(choices=RecurrenceWeekday.choices),
        source="days_of_week",
        required=False,
        default=list,
    )
    dayOfMonth = serializers.IntegerField(  # noqa: N815
        source="day_of_month", required=False, allow_null=True, default=None
    )
    monthOfYear = serializers.IntegerField(  # noqa: N815
        source="month_of_year", required=False, allow_null=True, default=None
    )
    instance = serializers.IntegerField(required=False, allow_null=True, default=None)
    startTime = serializers.DateTimeField(source="start_time")  # noqa: N815
    timeZone = serializers.CharField(  # noqa: N815
        source="time_zone", required=False, default="UTC", max_length=64
    )
    occurrenceCount = serializers.IntegerField(  # noqa: N815
        source="occurrence_count", required=False, allow_null=True, default=None
    )
    endTime = serializers.DateTimeField(  # noqa: N815
        source="end_time", required=False, allow_null=True, default=None
    )

    def validate(self, attrs) -> RecurrencePattern:
        # InvalidRecurrenceRuleError is answered with a 400 by the exception handler
        return RecurrencePattern(**attrs)

    def to_representation(self, instance):
        representation = super().to_representation(instance)
        representation["daysOfWeek"] = sorted(
            representation["daysOfWeek"], key=lambda day: WEEKDAY_INDEXES[RecurrenceWeekday(day)]
        )
        return representation


class AttendeeSerializer(serializers.Serializer):
    displayName = serializers.CharField(  # noqa: N815
        source="display_name", required=False, allow_blank=True, default="", max_length=255
    )
    email = serializers.EmailField()
    status = serializers.ChoiceField(
        choices=AttendeeStatus.choices, required=False, default=AttendeeStatus.NONE
    )
    type = serializers.ChoiceField(  # noqa: A003
        choices=AttendeeType.choices,
        source="attendee_type",
        required=False,
        default=AttendeeType.REQUIRED,
    )

    def validate(self, attrs) -> AttendeeData:
        return AttendeeData(**attrs)


class CalendarEventSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)  # noqa: A003
    calendar = serializers.IntegerField(source="calendar_id")
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, default=None
    )
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    allDay = serializers.BooleanField(source="all_day", required=False, default=False)  # noqa: N815
    backgroundColor = serializers.RegexField(  # noqa: N815
        r"^#[0-9A-Fa-f]{6}$",
        source="background_color",
        required=False,
        allow_null=True,
        default=None,
        max_length=7,
    )
    recurrence = RecurrenceSerializer(required=False, allow_null=True, default=None)
    recurringEventId = serializers.IntegerField(  # noqa: N815
        source="recurring_event_id", read_only=True
    )
    originalStart = serializers.DateTimeField(source="original_start", read_only=True)  # noqa: N815
    isCancelled = serializers.BooleanField(source="is_cancelled", read_only=True)  # noqa: N815
    attendees = AttendeeSerializer(many=True, required=False, default=list)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)  # noqa: N815

    @inject
    def __init__(
        self,
        *args,
        calendar_event_service: Annotated[
            "CalendarEventService | None", Provide["calendar_event_service"]
        ] = None,
        **kwargs,
    ):
        self.calendar_event_service = calendar_event_service
        super().__init__(*args, **kwargs)

    def _get_initialized_service(self) -> "CalendarEventService":
        if not self.calendar_event_service:
            raise ValueError(
                "calendar_event_service is not defined, "
                "please configure your DI container correctly"
            )
        self.calendar_event_service.initialize_with_user(self.context["request"].user)
        return self.calendar_event_service

    def create(self, validated_data) -> CalendarEventData:
        return self._get_initialized_service().create(CalendarEventInputData(**validated_data))

    def update(self, instance: CalendarEventData, validated_data) -> CalendarEventData:
        if "attendees" in validated_data:
            validated_data["attendees"] = tuple(validated_data["attendees"])
        return self._get_initialized_service().update(
            instance.id, CalendarEventPatch(**validated_data)
        )


class CalendarEventViewSerializer(CalendarEventSerializer):
    """A calendar event as seen by the current user."""

    invitationStatus = serializers.ChoiceField(  # noqa: N815
        choices=AttendeeStatus.choices, source="invitation_status", read_only=True
    )
    editableInvitationStatus = serializers.BooleanField(  # noqa: N815
        source="can_change_invitation_status", read_only=True
    )
    editable = serializers.BooleanField(read_only=True)
    removable = serializers.BooleanField(read_only=True)
    aggregateStatus = serializers.ChoiceField(  # noqa: N815
        choices=AttendeeStatus.choices, source="aggregate_status", read_only=True
    )

    def to_representation(self, instance: CalendarEventViewData):
        representation = CalendarEventSerializer(instance.event, context=self.context).data
        for field_name, field in self.fields.items():
            if field_name not in representation:
                representation[field_name] = field.to_representation(field.get_attribute(instance))
        return representation


class CalendarEventOccurrenceSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)  # noqa: A003
    calendar = serializers.IntegerField(source="calendar_id", read_only=True)
    title = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True, allow_null=True)
    start = serializers.DateTimeField(read_only=True)
    end = serializers.DateTimeField(read_only=True)
    allDay = serializers.BooleanField(source="all_day", read_only=True)  # noqa: N815
    backgroundColor = serializers.CharField(  # noqa: N815
        source="background_color", read_only=True, allow_null=True
    )
    recurringEventId = serializers.IntegerField(  # noqa: N815
        source="recurring_event_id", read_only=True
    )
    originalStart = serializers.DateTimeField(source="original_start", read_only=True)  # noqa: N815
    isCancelled = serializers.BooleanField(source="is_cancelled", read_only=True)  # noqa: N815
    attendees = AttendeeSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)  # noqa: N815


class OccurrenceCancelSerializer(serializers.Serializer):
    originalStart = serializers.DateTimeField(  # noqa: N815
        source="original_start",
        help_text="Start of the generated occurrence to cancel",
    )


class OccurrenceModifySerializer(serializers.Serializer):
    """Fields overriding a single occurrence. Omitted fields keep the series values."""

    originalStart = serializers.DateTimeField(  # noqa: N815
        source="original_start",
        help_text="Start of the generated occurrence to modify",
    )
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    allDay = serializers.BooleanField(source="all_day", required=False)  # noqa: N815
    backgroundColor = serializers.RegexField(  # noqa: N815
        r"^#[0-9A-Fa-f]{6}$",
        source="background_color",
        required=False,
        allow_null=True,
        max_length=7,
    )
    attendees = AttendeeSerializer(many=True, required=False)

    def get_patch(self) -> CalendarEventPatch:
        changes = {
            key: value for key, value in self.validated_data.items() if key != "original_start"
        }
        if "attendees" in changes:
            changes["attendees"] = tuple(changes["attendees"])
        return CalendarEventPatch(**changes)


class InvitationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AttendeeStatus.choices)


class ActivityTargetSerializer(serializers.Serializer):
    entityClass = serializers.CharField(  # noqa: N815
        source="entity_class", help_text='Model of the entity, as "app_label.ModelName"'
    )
    entityId = serializers.CharField(source="entity_id")  # noqa: N815


class CleanupExceptionsResultSerializer(serializers.Serializer):
    deleted = serializers.IntegerField(read_only=True)
