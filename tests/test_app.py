"""Tests for proctime application."""

import json
from datetime import timedelta

import pytest
from textual.widgets import Input

from proctime.app import ProcTimeApp, UsageTable
from proctime.config import TrackerSettings


class StaticEnumerator:
    """Enumerator that always reports the same processes."""

    def __init__(self, *names):
        self.names = list(names)
        self.calls = 0

    def list_running_process_names(self):
        self.calls += 1
        return list(self.names)


def record_notices(app, monkeypatch):
    """Replace app.notify with a recorder of (severity, message) pairs."""
    notices = []

    def notify(message, **kwargs):
        notices.append((kwargs.get("severity", "information"), message))

    monkeypatch.setattr(app, "notify", notify)
    return notices


@pytest.fixture
def settings(tmp_path):
    """Fast timers and files in a temporary directory."""
    return TrackerSettings(
        check_interval=timedelta(milliseconds=100),
        save_interval=timedelta(minutes=1),
        data_file=tmp_path / "process_times.json",
        log_file=tmp_path / "proctime.log",
    )


@pytest.mark.asyncio
async def test_app_creation(settings):
    """Test ProcTimeApp can be instantiated."""
    app = ProcTimeApp(settings, StaticEnumerator())
    assert app.title == "proctime"
    assert app.sub_title == "Process Time Tracker"
    assert app.tracker is not None


@pytest.mark.asyncio
async def test_app_compose(settings):
    """Test ProcTimeApp composes the filter box and the table."""
    app = ProcTimeApp(settings, StaticEnumerator())
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#filter") is not None
        assert pilot.app.query_one("#usage-table") is not None


@pytest.mark.asyncio
async def test_app_samples_on_timer(settings):
    """Test the check timer drives the tracker and fills the table."""
    enumerator = StaticEnumerator("bash", "Code")
    app = ProcTimeApp(settings, enumerator)
    async with app.run_test() as pilot:
        await pilot.pause(0.5)

        assert enumerator.calls > 0
        table = pilot.app.query_one(UsageTable)
        assert table.row_keys == ["bash", "code"]
        assert app.tracker.accumulator.get("bash").total_time > timedelta(0)


@pytest.mark.asyncio
async def test_app_restores_saved_state(settings):
    """Test saved totals and filter are shown at startup."""
    settings.data_file.write_text(
        json.dumps(
            {
                "ProcessTotalTimes": {"chrome": "00.01:00:00", "notepad": "00.00:00:05"},
                "FilterText": "chrome",
            }
        ),
        encoding="utf-8",
    )
    app = ProcTimeApp(settings, StaticEnumerator())
    async with app.run_test() as pilot:
        await pilot.pause(0.2)

        assert pilot.app.query_one("#filter", Input).value == "chrome"
        assert pilot.app.query_one(UsageTable).row_keys == ["chrome"]


@pytest.mark.asyncio
async def test_app_corrupt_file_still_starts(settings, monkeypatch):
    """Test a corrupt data file leaves the app running with empty state and one warning."""
    settings.data_file.write_text("{broken", encoding="utf-8")
    app = ProcTimeApp(settings, StaticEnumerator())
    notices = record_notices(app, monkeypatch)
    async with app.run_test() as pilot:
        await pilot.pause(0.2)

        assert app.tracker.records() == []
        assert pilot.app.query_one(UsageTable).row_keys == []

    assert [severity for severity, _ in notices] == ["warning"]
    assert str(settings.data_file) in notices[0][1]


@pytest.mark.asyncio
async def test_app_missing_file_no_warning(settings, monkeypatch):
    """Test starting without a data file raises no notice."""
    app = ProcTimeApp(settings, StaticEnumerator())
    notices = record_notices(app, monkeypatch)
    async with app.run_test() as pilot:
        await pilot.pause(0.2)

    assert notices == []


@pytest.mark.asyncio
async def test_filter_updates_table(settings):
    """Test typing a filter narrows the displayed rows."""
    app = ProcTimeApp(settings, StaticEnumerator("GoogleChrome", "Firefox64", "Notepad"))
    async with app.run_test() as pilot:
        await pilot.pause(0.3)
        table = pilot.app.query_one(UsageTable)
        assert len(table.row_keys) == 3

        pilot.app.query_one("#filter", Input).value = "chrome, firefox"
        await pilot.pause(0.2)

        assert app.tracker.filter_text == "chrome, firefox"
        assert table.row_keys == ["firefox64", "googlechrome"]

        pilot.app.action_clear_filter()
        await pilot.pause(0.2)

        assert table.row_keys == ["firefox64", "googlechrome", "notepad"]


@pytest.mark.asyncio
async def test_save_action_writes_file(settings):
    """Test the save action writes the data file immediately."""
    app = ProcTimeApp(settings, StaticEnumerator("bash"))
    async with app.run_test() as pilot:
        await pilot.pause(0.3)
        pilot.app.action_save()

        data = json.loads(settings.data_file.read_text(encoding="utf-8"))
        assert "bash" in data["ProcessTotalTimes"]


@pytest.mark.asyncio
async def test_quit_saves_once_and_stops_sampling(settings):
    """Test quitting stops the timers and writes the final save."""
    enumerator = StaticEnumerator("bash")
    app = ProcTimeApp(settings, enumerator)
    async with app.run_test() as pilot:
        await pilot.pause(0.3)
        pilot.app.query_one("#filter", Input).value = "ba"
        await pilot.pause(0.2)

        pilot.app.action_quit()
        calls = enumerator.calls

        assert app.tracker.is_shut_down
        data = json.loads(settings.data_file.read_text(encoding="utf-8"))
        assert data["FilterText"] == "ba"
        assert "bash" in data["ProcessTotalTimes"]
        assert enumerator.calls == calls
