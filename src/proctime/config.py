"""Configuration defaults for proctime."""

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

APP_TITLE = "proctime"
APP_SUBTITLE = "Process Time Tracker"

CHECK_INTERVAL = timedelta(seconds=1)
SAVE_INTERVAL = timedelta(minutes=1)

# Resolved relative to the working directory
DATA_FILE_NAME = "process_times.json"
LOG_FILE_NAME = "proctime.log"


@dataclass(slots=True, frozen=True)
class TrackerSettings:
    """Intervals and file locations used by the tracker and the app."""

    check_interval: timedelta = CHECK_INTERVAL
    save_interval: timedelta = SAVE_INTERVAL
    data_file: Path = Path(DATA_FILE_NAME)
    log_file: Path = Path(LOG_FILE_NAME)
