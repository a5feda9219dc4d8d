from django_filters import rest_framework as filters

from calendar_events.exceptions import EventValidationError
from calendar_events.models import CalendarEvent


class QueryParamsFilterSet(filters.FilterSet):
    """
    FilterSet used to validate query parameters of non-list endpoints.
    """

    def get_cleaned_data(self) -> dict:
        if not self.is_valid():
            raise EventValidationError(
                {field: [str(error) for error in errors] for field, errors in self.errors.items()}
            )
        return self.form.cleaned_data

    def filter_noop(self, queryset, name, value):
        return queryset


class CalendarEventOccurrenceFilterSet(QueryParamsFilterSet):
    """
    Query parameters of the occurrences listing of a calendar.
    """

    calendar = filters.NumberFilter(
        label="Calendar ID",
        required=True,
        method="filter_noop",
    )
    start = filters.IsoDateTimeFilter(
        label="Range start (inclusive)",
        required=True,
        method="filter_noop",
    )
    end = filters.IsoDateTimeFilter(
        label="Range end (inclusive)",
        required=True,
        method="filter_noop",
    )

    class Meta:
        model = CalendarEvent
        fields = ("calendar", "start", "end")

    def get_cleaned_data(self) -> dict:
        cleaned_data = super().get_cleaned_data()
        if cleaned_data["end"] < cleaned_data["start"]:
            raise EventValidationError({"end": ["End must not be before start."]})
        return cleaned_data


class CalendarEventActivityFilterSet(QueryParamsFilterSet):
    """
    Query parameters of the listing of events linked to an entity.
    """

    entityClass = filters.CharFilter(  # noqa: N815
        label='Model of the entity, as "app_label.ModelName"',
        required=True,
        method="filter_noop",
    )
    entityId = filters.CharFilter(  # noqa: N815
        label="Primary key of the entity",
        required=True,
        method="filter_noop",
    )

    class Meta:
        model = CalendarEvent
        fields = ("entityClass", "entityId")
