"""JSON persistence of accumulated process totals."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from proctime.config import DATA_FILE_NAME
from proctime.models import PersistedState, format_duration, parse_duration

logger = logging.getLogger(__name__)

TOTALS_FIELD = "ProcessTotalTimes"
FILTER_FIELD = "FilterText"


@dataclass(slots=True, frozen=True)
class LoadResult:
    """Outcome of PersistenceStore.load()."""

    state: PersistedState
    warning: str | None = None  # User-facing message when the file was unusable


class MalformedDataError(ValueError):
    """The data file parsed as JSON but does not have the expected shape."""


class PersistenceStore:
    """
    Reads and writes the proctime data file.

    Neither load() nor save() raises: failures are logged and reported through
    the return value so the sampling loop keeps running.
    """

    def __init__(self, path: Path | str = DATA_FILE_NAME) -> None:
        """
        Initialize the PersistenceStore.

        Args:
            path: Data file location, relative to the working directory by default.
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Get the data file path."""
        return self._path

    def load(self) -> LoadResult:
        """Load the persisted state, falling back to an empty state on any error."""
        if not self._path.exists():
            logger.info("Data file '%s' not found. Starting fresh.", self._path)
            return LoadResult(PersistedState())

        try:
            raw = self._path.read_text(encoding="utf-8")
            state = decode_state(json.loads(raw))
        except (ValueError, RecursionError) as exc:
            # RecursionError comes from json.loads on absurdly nested documents
            logger.warning("Data file '%s' is empty or corrupt: %s", self._path, exc)
            return LoadResult(
                PersistedState(),
                f"Could not load previous data from {self._path}. Starting with empty data.\n"
                "File may be empty or corrupt.",
            )
        except OSError as exc:
            logger.warning("Error loading data from '%s': %s", self._path, exc)
            return LoadResult(
                PersistedState(),
                f"Could not load previous data from {self._path}. Starting with empty data.\n"
                f"Error: {exc}",
            )

        logger.info(
            "Data loaded from '%s'. Tracking %d processes, filter %r.",
            self._path,
            len(state.total_times),
            state.filter_text,
        )
        return LoadResult(state)

    def save(self, state: PersistedState) -> bool:
        """
        Overwrite the data file with the given state.

        The JSON is written to a temporary file next to the target and then
        renamed over it, so readers never see a half-written file.

        Returns:
            True if the file was written.
        """
        tmp_name = None
        try:
            text = json.dumps(encode_state(state), indent=2, ensure_ascii=False)
            directory = self._path.parent
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(text)
            os.replace(tmp_name, self._path)
        except (OSError, ValueError) as exc:
            logger.error("Error saving data to '%s': %s", self._path, exc)
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

        logger.info("Data saved to '%s' (%d processes).", self._path, len(state.total_times))
        return True


def encode_state(state: PersistedState) -> dict[str, Any]:
    """Convert a PersistedState to its JSON document."""
    return {
        TOTALS_FIELD: {name: format_duration(total) for name, total in state.total_times.items()},
        FILTER_FIELD: state.filter_text,
    }


def decode_state(data: Any) -> PersistedState:
    """
    Build a PersistedState from a parsed JSON document.

    Top-level field names are matched case-insensitively. Missing or null
    fields default to empty.

    Raises:
        MalformedDataError: If the document or one of its values has the wrong type.
        ValueError: If a duration cannot be parsed.
    """
    if not isinstance(data, dict):
        raise MalformedDataError(f"Expected a JSON object, got {type(data).__name__}")

    fields = {str(key).lower(): value for key, value in data.items()}

    totals = fields.get(TOTALS_FIELD.lower()) or {}
    if not isinstance(totals, dict):
        raise MalformedDataError(f"{TOTALS_FIELD} must be an object")

    filter_text = fields.get(FILTER_FIELD.lower()) or ""
    if not isinstance(filter_text, str):
        raise MalformedDataError(f"{FILTER_FIELD} must be a string")

    return PersistedState(
        total_times={str(name): parse_duration(value) for name, value in totals.items()},
        filter_text=filter_text,
    )
