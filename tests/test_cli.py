"""
Tests for the command line interface.
"""

import json

import pendulum
import pytest
from typer.testing import CliRunner

from showingslots import __version__
from showingslots.adapters.json_store import JsonShowingStore
from showingslots.cli.app import app, build_store
from showingslots.config import AppConfig
from showingslots.domain.timezones import short_timezone_name
from showingslots.services.booking import BookingService

runner = CliRunner(env={"COLUMNS": "200"})

CONFIG = """
store:
  path: showings.json
agent:
  defaultShowingDuration: 30
  bufferTime: 15
  bookingWindow: 5
  workingHours:
    monday:    {start: "09:00", end: "17:00", enabled: true}
    tuesday:   {start: "09:00", end: "17:00", enabled: true}
    wednesday: {start: "09:00", end: "17:00", enabled: true}
    thursday:  {start: "09:00", end: "17:00", enabled: true}
    friday:    {start: "09:00", end: "17:00", enabled: true}
    saturday:  {start: "09:00", end: "17:00", enabled: true}
    sunday:    {start: "09:00", end: "17:00", enabled: true}
properties:
  - id: p1
    agentId: agent-1
    timezone: America/New_York
  - id: closed
    timezone: America/New_York
    isBookingEnabled: false
"""


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def _showing(showing_id, scheduled_at):
    return {
        "id": showing_id,
        "propertyId": "p1",
        "scheduledAt": scheduled_at,
        "duration": 30,
        "status": "confirmed",
    }


class TestCli:
    """Tests for the showingslots commands."""

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_build_store_uses_json_file(self, config_path):
        store = build_store(AppConfig.load_from_yaml(config_path))

        assert isinstance(store, JsonShowingStore)
        assert store.path == config_path.parent / "showings.json"

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["slots", "p1", "-c", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Config file not found" in result.stdout

    def test_unknown_property(self, config_path):
        result = runner.invoke(app, ["slots", "nope", "-c", str(config_path)])

        assert result.exit_code == 1
        assert "Unknown property" in result.stdout

    def test_slots(self, config_path):
        result = runner.invoke(app, ["slots", "p1", "-c", str(config_path)])

        assert result.exit_code == 0
        assert f"Showing slots (America/New_York, {short_timezone_name('America/New_York')})" in result.stdout
        assert "0 showing(s) booked this week" in result.stdout

    def test_slots_reports_weekly_bookings(self, config_path):
        """Showings in the current week are counted, cancelled ones are not."""
        now = pendulum.now("UTC")
        cancelled = dict(_showing("x", now.to_iso8601_string()), status="cancelled")
        (config_path.parent / "showings.json").write_text(json.dumps({"showings": [
            _showing("a", now.to_iso8601_string()),
            cancelled,
        ]}), encoding="utf-8")

        result = runner.invoke(app, ["slots", "p1", "-c", str(config_path)])

        assert result.exit_code == 0, result.stdout
        assert "1 showing(s) booked this week" in result.stdout

    def test_book_and_double_book(self, config_path):
        """Booking a slot works once; the same slot is refused afterwards."""
        config = AppConfig.load_from_yaml(config_path)
        prop = config.require_property("p1")
        groups = BookingService(build_store(config)).find_slots(agent=config.agent, prop=prop)
        slot = groups[1].available_slots[0]
        start = slot.start.format("YYYY-MM-DD HH:mm")
        args = ["book", "p1", start, "--name", "Ada", "--email", "ada@example.com", "-c", str(config_path)]

        first = runner.invoke(app, args)
        second = runner.invoke(app, args)

        assert first.exit_code == 0, first.stdout
        assert "booked" in first.stdout
        assert second.exit_code == 1
        stored = json.loads((config_path.parent / "showings.json").read_text(encoding="utf-8"))
        assert len(stored["showings"]) == 1
        assert stored["showings"][0]["clientEmail"] == "ada@example.com"

    def test_book_off_grid_time(self, config_path):
        result = runner.invoke(app, [
            "book", "p1", "2099-01-01 09:07", "--name", "Ada", "--email", "ada@example.com",
            "-c", str(config_path),
        ])

        assert result.exit_code == 1
        assert "not an offered slot" in result.stdout

    def test_booking_disabled(self, config_path):
        result = runner.invoke(app, [
            "book", "closed", "2099-01-01 09:00", "--name", "Ada", "--email", "ada@example.com",
            "-c", str(config_path),
        ])

        assert result.exit_code == 1
        assert "Booking is disabled" in result.stdout

    def test_layout(self, config_path):
        (config_path.parent / "showings.json").write_text(json.dumps({"showings": [
            _showing("a", "2024-11-25T14:00:00Z"),
            _showing("b", "2024-11-25T14:30:00Z"),
            _showing("c", "2024-11-25T18:00:00Z"),
        ]}), encoding="utf-8")

        result = runner.invoke(app, ["layout", "p1", "2024-11-25", "-c", str(config_path)])

        assert result.exit_code == 0, result.stdout
        assert "1/2" in result.stdout
        assert "2/2" in result.stdout
        assert "1/1" in result.stdout

    def test_layout_empty_day(self, config_path):
        result = runner.invoke(app, ["layout", "p1", "2024-11-25", "-c", str(config_path)])

        assert result.exit_code == 0
        assert "No showings" in result.stdout

    def test_status_unknown_showing(self, config_path):
        result = runner.invoke(app, ["status", "p1", "missing", "confirmed", "-c", str(config_path)])

        assert result.exit_code == 1
        assert "not found" in result.stdout
