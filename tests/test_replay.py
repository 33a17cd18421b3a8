"""Tests for recorded-session replay sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from ruta_tool.errors import SensorUnavailableError
from ruta_tool.model import AccelerationSample, PositionFix
from ruta_tool.sources.replay import ReplayFeed, load_recording, write_recording


def _events() -> list[tuple[float, PositionFix | AccelerationSample]]:
    return [
        (100.0, PositionFix(23.78, 90.41, 5.0, 100.0, 4.0)),
        (100.2, AccelerationSample(5.0, 5.0, 5.0)),
        (100.4, AccelerationSample(5.5, 5.5, 5.5)),
        (101.0, PositionFix(23.79, 90.41, 5.0, 101.0, None)),
    ]


def test_write_and_load_recording(tmp_path: Path) -> None:
    path = tmp_path / "rec" / "walk.csv"
    write_recording(_events(), path)

    events = load_recording(path)

    assert [ts for ts, _ in events] == [100.0, 100.2, 100.4, 101.0]
    first = events[0][1]
    assert isinstance(first, PositionFix)
    assert first.horizontal_accuracy_m == 4.0
    last = events[3][1]
    assert isinstance(last, PositionFix)
    assert last.horizontal_accuracy_m is None
    assert events[1][1] == AccelerationSample(5.0, 5.0, 5.0)


def test_load_recording_skips_bad_rows(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "rec.csv"
    path.write_text(
        "timestamp,kind,latitude,longitude,altitude,accuracy,x,y,z\n"
        "1,fix,23.78,90.41,0,,,,\n"
        "2,accel,,,,,1,2,3\n"
        "3,accel,,,,,1,,3\n"
        "x,fix,23.78,90.41,0,,,,\n"
        "4,gyro,,,,,1,2,3\n"
        "5,fix,,90.41,0,,,,\n",
        encoding="utf-8",
    )
    events = load_recording(path)
    assert len(events) == 2
    assert "4 filas descartadas" in caplog.text


def test_load_recording_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_recording(tmp_path / "missing.csv")


def test_load_recording_requires_kind_column(tmp_path: Path) -> None:
    path = tmp_path / "rec.csv"
    path.write_text("timestamp,latitude\n1,2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="kind"):
        load_recording(path)


def test_feed_routes_samples_to_running_sources() -> None:
    feed = ReplayFeed(_events())
    fixes: list[PositionFix] = []
    accels: list[AccelerationSample] = []
    feed.gps.set_handler(fixes.append)
    feed.accelerometer.set_handler(accels.append)
    feed.gps.start()

    assert feed.pump(2) == 2
    feed.accelerometer.start()
    assert feed.pump_all() == 2

    assert len(fixes) == 2
    # The first accel sample arrived while the accelerometer was stopped.
    assert accels == [AccelerationSample(5.5, 5.5, 5.5)]
    assert feed.exhausted


def test_feed_clock_follows_delivered_timestamps() -> None:
    feed = ReplayFeed(_events())
    assert feed.clock() == 100.0
    feed.pump(3)
    assert feed.clock() == 100.4
    feed.rewind()
    assert not feed.exhausted
    assert feed.clock() == 100.0


def test_feed_without_fixes_reports_gps_unavailable() -> None:
    feed = ReplayFeed([(1.0, AccelerationSample(1.0, 1.0, 1.0))])
    with pytest.raises(SensorUnavailableError) as info:
        feed.gps.start()
    assert info.value.modality == "gps"
    feed.accelerometer.start()
    assert feed.accelerometer.running


def test_empty_feed() -> None:
    feed = ReplayFeed([])
    assert len(feed) == 0
    assert feed.exhausted
    assert feed.clock() == 0.0
    assert feed.pump() == 0
