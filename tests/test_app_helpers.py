"""Tests for the GUI helpers that do not need Kivy."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from ruta_tool import app
from ruta_tool.errors import SensorUnavailableError
from ruta_tool.model import AccelerationSample, HistoryRecord, PositionFix
from ruta_tool.sources.replay import ReplayFeed, write_recording
from ruta_tool.storage import AppConfig
from ruta_tool.tracker import SessionTracker


def test_formatters_match_display() -> None:
    assert app.format_steps(42) == "42"
    assert app.format_distance(1234.5) == "1234.5 m"
    assert app.format_distance(0.0) == "0 m"
    assert app.format_fare(12) == "Tk. 12"
    assert app.format_calories(3.14159) == "3.14 Cal"


def test_parse_weight() -> None:
    assert app.parse_weight("82") == 82.0
    assert app.parse_weight(" 72,5 ") == 72.5
    assert app.parse_weight("abc") == 70.0
    assert app.parse_weight("-3") == 70.0
    assert app.parse_weight("-5") == 70.0
    assert app.parse_weight("nan") == 70.0
    assert app.parse_weight("inf") == 70.0


def test_format_history_newest_first() -> None:
    when = datetime(2025, 12, 15, 8, 30, tzinfo=timezone.utc)
    records = [
        HistoryRecord(1, when, 1500.0, 2000, 110.5, 12),
        HistoryRecord(2, when, 800.0, 900, 40.0, 0),
    ]
    lines = app.format_history(records).splitlines()
    assert len(lines) == 2
    assert lines[0].strip().startswith("2")
    assert "15/12/2025 08:30" in lines[1]
    assert "Tk. 12" in lines[1]
    assert app.format_history([]) == ""


def test_open_feed_falls_back_to_empty(tmp_path: Path) -> None:
    assert len(app._open_feed(AppConfig())) == 0
    assert len(app._open_feed(AppConfig(samples_path=str(tmp_path / "no.csv")))) == 0

    rec = tmp_path / "rec.csv"
    write_recording([(1.0, AccelerationSample(1.0, 2.0, 3.0))], rec)
    assert len(app._open_feed(AppConfig(samples_path=str(rec)))) == 1


class _Text:
    def __init__(self) -> None:
        self.text = ""


def test_label_display_updates_widgets() -> None:
    labels = {key: _Text() for key in ("gps", "steps", "distance", "fare", "calories")}
    statuses: list[str] = []
    display = app.LabelDisplay(labels, statuses.append)

    display.on_steps_changed(7)
    display.on_distance_changed(1500.0)
    display.on_fare_changed(12)
    display.on_calories_changed(98.766)
    display.on_sensor_unavailable("gps", SensorUnavailableError("gps", "off"))

    assert labels["steps"].text == "7"
    assert labels["distance"].text == "1500 m"
    assert labels["fare"].text == "Tk. 12"
    assert labels["calories"].text == "98.77 Cal"
    assert labels["gps"].text == app.GPS_NOT_DETECTED
    assert statuses == ["Sensor no disponible: gps: off"]


def test_label_display_tolerates_missing_widgets() -> None:
    display = app.LabelDisplay({}, lambda _text: None)
    display.on_steps_changed(1)


class _Store:
    def __init__(self) -> None:
        self.inserted: list[float] = []

    def insert(self, distance_m: float, steps: int, calories: float, fare: int) -> int:
        self.inserted.append(distance_m)
        return len(self.inserted)


def _walk_feed() -> ReplayFeed:
    events: list[tuple[float, PositionFix | AccelerationSample]] = []
    for i in range(5):
        t = 10.0 * (i + 1)
        events.append((t, PositionFix(23.78 + 0.002 * i, 90.41, 0.0, t)))
        for m in (5.0, 5.6, 4.4):
            events.append((t, AccelerationSample(m, m, m)))
    return ReplayFeed(events)


def test_start_session_keeps_finished_recording_while_running() -> None:
    feed = _walk_feed()
    store = _Store()
    tracker = SessionTracker(
        [feed.gps, feed.accelerometer], store=store, clock=feed.clock
    )

    app.start_session(feed, tracker)
    feed.pump_all()
    one_pass = tracker.distance_m
    assert one_pass > 0.0
    assert feed.exhausted

    app.start_session(feed, tracker)
    assert feed.exhausted
    assert feed.pump_all() == 0
    assert tracker.distance_m == one_pass

    tracker.stop()
    assert store.inserted == [one_pass]


def test_start_session_rewinds_finished_recording_from_idle() -> None:
    feed = _walk_feed()
    tracker = SessionTracker(
        [feed.gps, feed.accelerometer], store=_Store(), clock=feed.clock
    )
    app.start_session(feed, tracker)
    feed.pump_all()
    one_pass = tracker.distance_m
    tracker.stop()

    app.start_session(feed, tracker)
    assert not feed.exhausted
    feed.pump_all()
    assert tracker.distance_m == pytest.approx(one_pass)
