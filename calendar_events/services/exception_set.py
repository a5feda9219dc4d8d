import datetime
from collections.abc import Iterable, Iterator

from calendar_events.recurrence import OccurrenceGenerator, RecurrencePattern
from calendar_events.services.dataclasses import CalendarEventData, CalendarEventOccurrenceData


class ExceptionSet:
    """
    Materialized exceptions of one recurrence root, keyed by the start of the generated
    occurrence they replace.

    An exception is either a cancellation (``is_cancelled``) or a modification carrying its
    own title, times and attendees. Exceptions whose ``original_start`` is no longer produced
    by the root's pattern are orphans: they are not rendered, but are kept until
    ``orphans`` are explicitly cleaned up.
    """

    def __init__(self, root: CalendarEventData, exceptions: Iterable[CalendarEventData] = ()):
        self.root = root
        self._by_original_start: dict[datetime.datetime, CalendarEventData] = {
            exception.original_start: exception for exception in exceptions
        }

    def __len__(self):
        return len(self._by_original_start)

    def __iter__(self) -> Iterator[CalendarEventData]:
        return iter(self._by_original_start.values())

    def __contains__(self, original_start: datetime.datetime) -> bool:
        return original_start in self._by_original_start

    def get(self, original_start: datetime.datetime) -> CalendarEventData | None:
        return self._by_original_start.get(original_start)

    def orphans(
        self, generator: OccurrenceGenerator, pattern: RecurrencePattern | None = None
    ) -> list[CalendarEventData]:
        """Exceptions whose original start is not an occurrence of ``pattern`` anymore."""
        pattern = pattern or self.root.recurrence
        if pattern is None:
            return list(self)
        return [
            exception
            for original_start, exception in self._by_original_start.items()
            if not generator.is_occurrence(pattern, original_start)
        ]

    def apply(
        self,
        generator: OccurrenceGenerator,
        range_start: datetime.datetime,
        range_end: datetime.datetime,
    ) -> list[CalendarEventOccurrenceData]:
        """
        Render the root's occurrences in ``[range_start, range_end]`` with exceptions applied.

        Generated instants with an exception are suppressed. Modified exceptions are rendered
        when their own time span overlaps the range, even if the occurrence they replace is
        outside of it.
        """
        pattern = self.root.recurrence
        if pattern is None:
            return []

        # occurrences starting before the range still show up while they are running
        lookbehind = max(self.root.end - self.root.start, datetime.timedelta(0))

        occurrences = []
        for occurrence_start in generator.generate(pattern, range_start - lookbehind, range_end):
            if occurrence_start in self:
                continue
            occurrence_end = generator.occurrence_end(
                pattern, occurrence_start, self.root.start, self.root.end
            )
            if occurrence_end < range_start:
                continue
            occurrences.append(
                CalendarEventOccurrenceData.from_event(
                    self.root,
                    start=occurrence_start,
                    end=occurrence_end,
                    recurring_event_id=self.root.id,
                    original_start=occurrence_start,
                )
            )

        orphan_ids = {orphan.id for orphan in self.orphans(generator, pattern)}
        for exception in self:
            if exception.is_cancelled or exception.id in orphan_ids:
                continue
            if exception.start <= range_end and exception.end >= range_start:
                occurrences.append(CalendarEventOccurrenceData.from_event(exception))

        return sorted(occurrences, key=lambda occurrence: (occurrence.start, occurrence.id))
