from django.db.models import TextChoices


class RecurrenceType(TextChoices):
    DAILY = "daily", "Daily"
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly (day of month)"
    MONTH_NTH = "monthnth", "Monthly (nth weekday)"
    YEARLY = "yearly", "Yearly (day of month)"
    YEARLY_NTH = "yearnth", "Yearly (nth weekday)"


class RecurrenceWeekday(TextChoices):
    MONDAY = "monday", "Monday"
    TUESDAY = "tuesday", "Tuesday"
    WEDNESDAY = "wednesday", "Wednesday"
    THURSDAY = "thursday", "Thursday"
    FRIDAY = "friday", "Friday"
    SATURDAY = "saturday", "Saturday"
    SUNDAY = "sunday", "Sunday"


# Python's datetime.weekday() index for each RecurrenceWeekday value
WEEKDAY_INDEXES = {
    RecurrenceWeekday.MONDAY: 0,
    RecurrenceWeekday.TUESDAY: 1,
    RecurrenceWeekday.WEDNESDAY: 2,
    RecurrenceWeekday.THURSDAY: 3,
    RecurrenceWeekday.FRIDAY: 4,
    RecurrenceWeekday.SATURDAY: 5,
    RecurrenceWeekday.SUNDAY: 6,
}

LAST_INSTANCE = -1
MAX_INSTANCE = 5


class AttendeeStatus(TextChoices):
    NONE = "none", "None"
    ACCEPTED = "accepted", "Accepted"
    DECLINED = "declined", "Declined"
    TENTATIVE = "tentative", "Tentative"


class AttendeeType(TextChoices):
    ORGANIZER = "organizer", "Organizer"
    REQUIRED = "required", "Required"
    OPTIONAL = "optional", "Optional"


class EventAction(TextChoices):
    VIEW = "view", "View Event"
    EDIT = "edit", "Edit Event"
    DELETE = "delete", "Delete Event"
