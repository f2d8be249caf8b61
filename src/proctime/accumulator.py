"""Per-process usage accounting for proctime."""

import logging
from collections.abc import Callable, Iterable
from datetime import timedelta

from proctime.models import ZERO, ProcessUsageRecord, matches_filter, parse_filter_terms

logger = logging.getLogger(__name__)

UsageListener = Callable[[list[ProcessUsageRecord]], None]


class UsageAccumulator:
    """
    Accumulates total and session time for every process name ever seen.

    Names are case-insensitive: "Foo" and "foo" share one record, displayed
    with the spelling seen first. Records are never removed. Session time is
    reset whenever a name goes from absent to present between two ticks.

    The accumulator does no I/O and is not thread-safe; it is meant to be
    driven from a single event loop.
    """

    def __init__(self, tick_interval: timedelta = timedelta(seconds=1)) -> None:
        """
        Initialize the UsageAccumulator.

        Args:
            tick_interval: Time credited to each running process per tick.
        """
        if tick_interval <= ZERO:
            raise ValueError("tick_interval must be positive")
        self._tick_interval = tick_interval
        self._records: dict[str, ProcessUsageRecord] = {}
        self._running: set[str] = set()
        self._listeners: list[UsageListener] = []

    @property
    def tick_interval(self) -> timedelta:
        """Get the time credited per tick."""
        return self._tick_interval

    @property
    def running_names(self) -> frozenset[str]:
        """Lower-cased names seen at the previous tick."""
        return frozenset(self._running)

    def __len__(self) -> int:
        """Number of process names ever recorded."""
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        """Check if a name has a record, ignoring case."""
        return isinstance(name, str) and name.lower() in self._records

    def get(self, name: str) -> ProcessUsageRecord | None:
        """Get the record for a name, ignoring case."""
        return self._records.get(name.lower())

    def tick(self, current_names: Iterable[str]) -> list[ProcessUsageRecord]:
        """
        Credit one tick interval to every currently running process.

        Args:
            current_names: Names of the processes running right now. Duplicates
                and case variants collapse into one entry.

        Returns:
            The records that were updated, in name order.
        """
        current: dict[str, str] = {}
        for name in current_names:
            if name:
                current.setdefault(name.lower(), name)

        for key in current.keys() - self._running:
            record = self._records.get(key)
            if record is None:
                self._records[key] = ProcessUsageRecord(current[key])
            else:
                record.session_time = ZERO
            logger.debug("Session started for %s", current[key])

        touched = []
        for key in current:
            record = self._records[key]
            record.total_time += self._tick_interval
            record.session_time += self._tick_interval
            touched.append(record)

        self._running = set(current)

        touched.sort(key=_sort_key)
        self._notify(touched)
        return touched

    def restore(self, total_times: dict[str, timedelta]) -> None:
        """
        Replace all records with persisted totals; session times start at zero.

        Spellings that differ only in case are merged by summing their totals.
        """
        records: dict[str, ProcessUsageRecord] = {}
        for name, total in total_times.items():
            if not name:
                continue
            record = records.get(name.lower())
            if record is None:
                records[name.lower()] = ProcessUsageRecord(name, total_time=total)
            else:
                record.total_time += total

        self._records = records
        self._running = set()
        logger.debug("Restored %d records", len(records))
        self._notify(self.records())

    def total_times(self) -> dict[str, timedelta]:
        """Snapshot of total time per process name, for persistence."""
        return {record.name: record.total_time for record in self._records.values()}

    def records(self) -> list[ProcessUsageRecord]:
        """All records ordered by name, case-insensitive."""
        return sorted(self._records.values(), key=_sort_key)

    def visible_records(self, filter_text: str | None) -> list[ProcessUsageRecord]:
        """Records whose name passes the comma-separated filter."""
        terms = parse_filter_terms(filter_text)
        return [record for record in self.records() if matches_filter(record.name, terms)]

    def subscribe(self, listener: UsageListener) -> Callable[[], None]:
        """
        Register a listener called with the records touched by each change.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            """Remove the listener; safe to call more than once."""
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, records: list[ProcessUsageRecord]) -> None:
        """Call every listener, logging any that fail."""
        for listener in list(self._listeners):
            try:
                listener(records)
            except Exception:
                logger.exception("Usage listener %r failed", listener)


def _sort_key(record: ProcessUsageRecord) -> tuple[str, str]:
    """Order by folded name, then spelling."""
    return (record.key, record.name)
