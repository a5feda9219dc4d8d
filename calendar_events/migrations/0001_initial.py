import django.db.models.deletion
import django.db.models.functions.text
import django.utils.timezone
import model_utils.fields
from django.conf import settings
from django.db import migrations, models


def base_model_fields():
    return [
        (
            "id",
            models.BigAutoField(
                auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
            ),
        ),
        (
            "created",
            model_utils.fields.AutoCreatedField(
                db_index=True,
                default=django.utils.timezone.now,
                editable=False,
                verbose_name="created",
            ),
        ),
        (
            "modified",
            model_utils.fields.AutoLastModifiedField(
                db_index=True,
                default=django.utils.timezone.now,
                editable=False,
                verbose_name="modified",
            ),
        ),
        ("meta", models.JSONField(blank=True, default=dict, verbose_name="meta")),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("contenttypes", "0002_remove_content_type_name"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Calendar",
            fields=[
                *base_model_fields(),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="CalendarOwnership",
            fields=[
                *base_model_fields(),
                (
                    "calendar",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ownerships",
                        to="calendar_events.calendar",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="calendar_ownerships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("calendar", "user"),
                        name="calendar_events_unique_calendar_ownership",
                    )
                ],
            },
        ),
        migrations.AddField(
            model_name="calendar",
            name="users",
            field=models.ManyToManyField(
                blank=True,
                related_name="calendars",
                through="calendar_events.CalendarOwnership",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.CreateModel(
            name="CalendarEvent",
            fields=[
                *base_model_fields(),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("start", models.DateTimeField(db_index=True)),
                ("end", models.DateTimeField(db_index=True)),
                ("all_day", models.BooleanField(default=False)),
                ("background_color", models.CharField(blank=True, max_length=7, null=True)),
                (
                    "original_start",
                    models.DateTimeField(
                        blank=True,
                        help_text="Start of the generated occurrence this exception replaces",
                        null=True,
                    ),
                ),
                ("is_cancelled", models.BooleanField(default=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "calendar",
                    models.ForeignKey(
                        blank=True,
                        help_text=(
                            "Owning calendar. Events without a calendar are system calendar events."
                        ),
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="calendar_events.calendar",
                    ),
                ),
                (
                    "recurring_event",
                    models.ForeignKey(
                        blank=True,
                        help_text="Recurrence root this event is an exception of",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="exceptions",
                        to="calendar_events.calendarevent",
                    ),
                ),
            ],
            options={
                "ordering": ("start", "id"),
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("recurring_event__isnull", False)),
                        fields=("recurring_event", "original_start"),
                        name="calendar_events_unique_exception_per_occurrence",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Recurrence",
            fields=[
                *base_model_fields(),
                (
                    "recurrence_type",
                    models.CharField(
                        choices=[
                            ("daily", "Daily"),
                            ("weekly", "Weekly"),
                            ("monthly", "Monthly (day of month)"),
                            ("monthnth", "Monthly (nth weekday)"),
                            ("yearly", "Yearly (day of month)"),
                            ("yearnth", "Yearly (nth weekday)"),
                        ],
                        max_length=10,
                    ),
                ),
                ("interval", models.PositiveIntegerField(default=1)),
                ("days_of_week", models.JSONField(blank=True, default=list)),
                ("day_of_month", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("month_of_year", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "instance",
                    models.SmallIntegerField(
                        blank=True,
                        help_text="Nth ordinal for nth weekday recurrences, -1 for last",
                        null=True,
                    ),
                ),
                ("start_time", models.DateTimeField()),
                ("time_zone", models.CharField(default="UTC", max_length=64)),
                ("occurrence_count", models.PositiveIntegerField(blank=True, null=True)),
                ("end_time", models.DateTimeField(blank=True, null=True)),
                (
                    "event",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="recurrence",
                        to="calendar_events.calendarevent",
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Attendee",
            fields=[
                *base_model_fields(),
                ("display_name", models.CharField(blank=True, max_length=255)),
                ("email", models.EmailField(max_length=254)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("accepted", "Accepted"),
                            ("declined", "Declined"),
                            ("tentative", "Tentative"),
                        ],
                        default="none",
                        max_length=20,
                    ),
                ),
                (
                    "attendee_type",
                    models.CharField(
                        choices=[
                            ("organizer", "Organizer"),
                            ("required", "Required"),
                            ("optional", "Optional"),
                        ],
                        default="required",
                        max_length=20,
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attendees",
                        to="calendar_events.calendarevent",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="calendar_event_attendances",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("id",),
                "constraints": [
                    models.UniqueConstraint(
                        django.db.models.functions.text.Lower("email"),
                        models.F("event"),
                        name="calendar_events_unique_attendee_email_per_event",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CalendarEventActivityTarget",
            fields=[
                *base_model_fields(),
                ("object_id", models.CharField(max_length=64)),
                (
                    "content_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        to="contenttypes.contenttype",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="activity_targets",
                        to="calendar_events.calendarevent",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(
                        fields=["content_type", "object_id"],
                        name="calendar_events_activity_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("event", "content_type", "object_id"),
                        name="calendar_events_unique_activity_target",
                    )
                ],
            },
        ),
    ]
