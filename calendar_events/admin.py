from django.contrib import admin

from calendar_events.models import (
    Attendee,
    Calendar,
    CalendarEvent,
    CalendarEventActivityTarget,
    CalendarOwnership,
    Recurrence,
)


class CalendarOwnershipInline(admin.TabularInline):
    model = CalendarOwnership
    extra = 0
    raw_id_fields = ("user",)


class RecurrenceInline(admin.StackedInline):
    model = Recurrence
    extra = 0
    max_num = 1


class AttendeeInline(admin.TabularInline):
    model = Attendee
    fields = ("email", "display_name", "attendee_type", "status", "user")
    raw_id_fields = ("user",)
    extra = 0


class ActivityTargetInline(admin.TabularInline):
    model = CalendarEventActivityTarget
    fields = ("content_type", "object_id")
    extra = 0


@admin.register(Calendar)
class CalendarAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "created")
    search_fields = ("name",)
    inlines = (CalendarOwnershipInline,)


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "calendar",
        "start",
        "end",
        "recurring_event",
        "original_start",
        "is_cancelled",
        "updated_at",
    )
    list_filter = ("is_cancelled", "all_day")
    search_fields = ("title", "attendees__email")
    raw_id_fields = ("calendar", "recurring_event")
    readonly_fields = ("created", "updated_at")
    inlines = (RecurrenceInline, AttendeeInline, ActivityTargetInline)
