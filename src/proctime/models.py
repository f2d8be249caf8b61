"""Data models for proctime."""

import re
from dataclasses import dataclass, field
from datetime import timedelta

ZERO = timedelta(0)

# [d.]hh:mm:ss[.fffffff] -- the day part and fraction are optional so files
# written by .NET TimeSpan ("00:00:05", "1.02:03:04.5") still parse.
_DURATION_RE = re.compile(
    r"^(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{2}):(?P<seconds>\d{2})"
    r"(?:\.(?P<fraction>\d{1,7}))?$"
)


def format_duration(value: timedelta) -> str:
    """Format a duration as ``dd.hh:mm:ss`` (``.ffffff`` only if needed)."""
    if value < ZERO:
        raise ValueError(f"Negative duration: {value!r}")
    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f"{value.days:02d}.{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.microseconds:
        text += f".{value.microseconds:06d}"
    return text


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration written by format_duration.

    Raises:
        ValueError: If the text is not a valid non-negative duration.
    """
    match = _DURATION_RE.match(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"Invalid duration: {text!r}")

    hours = int(match["hours"])
    minutes = int(match["minutes"])
    seconds = int(match["seconds"])
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValueError(f"Duration component out of range: {text!r}")

    # Pad to 7 digits (100ns units) then truncate to microseconds
    fraction = match["fraction"] or ""
    microseconds = int(fraction.ljust(7, "0")[:6]) if fraction else 0

    try:
        return timedelta(
            days=int(match["days"] or 0),
            hours=hours,
            minutes=minutes,
            seconds=seconds,
            microseconds=microseconds,
        )
    except OverflowError as exc:
        raise ValueError(f"Duration out of range: {text!r}") from exc


def parse_filter_terms(text: str | None) -> list[str]:
    """Split a filter string on commas into trimmed, non-empty terms."""
    terms = [term.strip() for term in (text or "").split(",")]
    return [term for term in terms if term]


def matches_filter(name: str, terms: list[str]) -> bool:
    """Return True if no terms are given or any term is a substring of name."""
    if not terms:
        return True
    lowered = name.lower()
    return any(term.lower() in lowered for term in terms)


@dataclass(slots=True)
class ProcessUsageRecord:
    """Accumulated running time of one process name."""

    name: str
    total_time: timedelta = ZERO
    session_time: timedelta = ZERO

    @property
    def key(self) -> str:
        """Case-insensitive identity of the record."""
        return self.name.lower()

    @property
    def formatted_total(self) -> str:
        """Total time as dd.hh:mm:ss."""
        return format_duration(self.total_time)

    @property
    def formatted_session(self) -> str:
        """Session time as dd.hh:mm:ss."""
        return format_duration(self.session_time)


@dataclass(slots=True)
class PersistedState:
    """Everything written to the data file. Session times are not included."""

    total_times: dict[str, timedelta] = field(default_factory=dict)
    filter_text: str = ""
