"""Process sampling and the tracker core for proctime."""

import logging
import sys
from collections.abc import Callable

import psutil

from proctime.accumulator import UsageAccumulator, UsageListener
from proctime.config import TrackerSettings
from proctime.exceptions import EnumerationError
from proctime.models import PersistedState, ProcessUsageRecord
from proctime.store import LoadResult, PersistenceStore

logger = logging.getLogger(__name__)


class ProcessEnumerator:
    """
    Lists the names of the running processes using psutil.

    Processes that exit mid-query, deny access or are zombies are skipped one
    at a time; they never abort the whole listing.
    """

    def __init__(self, strip_exe_suffix: bool | None = None) -> None:
        """
        Initialize the ProcessEnumerator.

        Args:
            strip_exe_suffix: Drop a trailing ".exe" from names. Defaults to
                True on Windows so names look like "chrome", not "chrome.exe".
        """
        if strip_exe_suffix is None:
            strip_exe_suffix = sys.platform == "win32"
        self._strip_exe_suffix = strip_exe_suffix

    def list_running_process_names(self) -> list[str]:
        """
        Return the names of all running processes.

        Raises:
            EnumerationError: If the process table itself cannot be read.
        """
        names: list[str] = []
        try:
            for proc in psutil.process_iter(attrs=["name"]):
                try:
                    name = proc.info.get("name") or proc.name()
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as exc:
                    # Process exited mid-poll or is off-limits; skip just this one
                    logger.debug("Skipping process %s: %s", proc.pid, exc)
                    continue
                if name:
                    names.append(self._normalize(name))
        except (psutil.Error, OSError) as exc:
            # A partial list would look like mass exits and reset sessions, so drop it
            raise EnumerationError(f"Could not list running processes: {exc}") from exc

        return names

    def _normalize(self, name: str) -> str:
        """Strip the .exe suffix if configured to."""
        if self._strip_exe_suffix and name.lower().endswith(".exe"):
            return name[:-4]
        return name


class UsageTracker:
    """
    Owns the accumulated usage state and its persistence.

    The tracker has no timers of its own. Whatever drives it (the Textual app,
    or a test) calls sample() once per check interval, save() once per save
    interval and shutdown() exactly when the program really exits.
    """

    def __init__(
        self,
        settings: TrackerSettings | None = None,
        enumerator: ProcessEnumerator | None = None,
        store: PersistenceStore | None = None,
    ) -> None:
        """
        Initialize the UsageTracker.

        Args:
            settings: Intervals and file paths. Defaults to TrackerSettings().
            enumerator: Source of running process names.
            store: Where totals are persisted. Defaults to settings.data_file.
        """
        self._settings = settings or TrackerSettings()
        self._enumerator = enumerator or ProcessEnumerator()
        self._store = store or PersistenceStore(self._settings.data_file)
        self._accumulator = UsageAccumulator(self._settings.check_interval)
        self._filter_text = ""
        self._shut_down = False

    @property
    def settings(self) -> TrackerSettings:
        """Get the tracker settings."""
        return self._settings

    @property
    def accumulator(self) -> UsageAccumulator:
        """Get the accumulator holding the usage records."""
        return self._accumulator

    @property
    def filter_text(self) -> str:
        """Get the current filter text."""
        return self._filter_text

    @filter_text.setter
    def filter_text(self, value: str | None) -> None:
        """Set the filter text; None means no filter."""
        self._filter_text = value or ""

    @property
    def is_shut_down(self) -> bool:
        """Check if shutdown() has run."""
        return self._shut_down

    def start(self) -> LoadResult:
        """
        Load persisted totals and filter text.

        Returns:
            The load result; its warning, if any, is for the caller to show.
        """
        result = self._store.load()
        self._accumulator.restore(result.state.total_times)
        self._filter_text = result.state.filter_text
        return result

    def sample(self) -> bool:
        """
        Run one tick: read the process list and credit the running processes.

        Returns:
            False if the tick was skipped because the process list could not be
            read (or the tracker is shut down), True otherwise.
        """
        if self._shut_down:
            return False

        try:
            names = self._enumerator.list_running_process_names()
        except EnumerationError as exc:
            logger.warning("Skipping tick: %s", exc)
            return False

        self._accumulator.tick(names)
        return True

    def save(self) -> bool:
        """Persist the current totals and filter text."""
        state = PersistedState(
            total_times=self._accumulator.total_times(),
            filter_text=self._filter_text,
        )
        return self._store.save(state)

    def shutdown(self) -> bool:
        """
        Write the final save. Only the first call does anything.

        Callers must stop their timers before calling this.
        """
        if self._shut_down:
            return False
        self._shut_down = True
        logger.info("Shutting down, writing final save")
        return self.save()

    def records(self) -> list[ProcessUsageRecord]:
        """All records ordered by name."""
        return self._accumulator.records()

    def visible_records(self) -> list[ProcessUsageRecord]:
        """Records passing the current filter, ordered by name."""
        return self._accumulator.visible_records(self._filter_text)

    def subscribe(self, listener: UsageListener) -> Callable[[], None]:
        """Register a listener for record changes; returns an unsubscribe callable."""
        return self._accumulator.subscribe(listener)
