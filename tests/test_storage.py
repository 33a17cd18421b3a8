from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ruta_tool.errors import PersistenceError
from ruta_tool.storage import AppConfig, SQLiteStore


def test_store_config_round_trip(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "nested" / "app.sqlite3")
    assert store.load_config() == AppConfig()

    store.save_config(
        AppConfig(samples_path="/data/walk.csv", export_dir="/out", replay_interval_s=0.5)
    )
    loaded = store.load_config()
    assert loaded.samples_path == "/data/walk.csv"
    assert loaded.export_dir == "/out"
    assert loaded.replay_interval_s == 0.5


def test_get_double_absent_and_set(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    assert store.get_double("weight") is None
    store.set_double("weight", 82.5)
    assert store.get_double("weight") == 82.5
    store.set_double("weight", 60)
    assert store.get_double("weight") == 60.0


def test_insert_and_get_all_in_insertion_order(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    when = datetime(2025, 12, 15, 8, 30, tzinfo=timezone.utc)
    first = store.insert(1500.0, 2000, 110.5, 12, when=when)
    second = store.insert(800.0, 900, 40.0, 0)

    records = store.get_all()

    assert [r.id for r in records] == [first, second]
    assert records[0].date == when
    assert records[0].distance_m == 1500.0
    assert records[0].steps == 2000
    assert records[0].calories == 110.5
    assert records[0].fare == 12
    assert records[1].date.tzinfo is not None
    latest = store.latest_session()
    assert latest is not None
    assert latest.id == second


def test_empty_history(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    assert store.get_all() == []
    assert store.latest_session() is None
    df = store.history_frame()
    assert df.empty
    assert list(df.columns) == [
        "id",
        "date",
        "distance_m",
        "steps",
        "calories_kcal",
        "fare",
    ]


def test_history_frame(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    store.insert(1500.0, 2000, 110.5, 12)
    store.insert(2500.0, 3100, 180.0, 17)
    df = store.history_frame()
    assert len(df) == 2
    assert df.iloc[1]["steps"] == 3100
    assert df.iloc[0]["calories_kcal"] == 110.5


def test_sqlite_errors_become_persistence_errors(tmp_path: Path) -> None:
    path = tmp_path / "app.sqlite3"
    store = SQLiteStore(path)
    with sqlite3.connect(path) as conn:
        conn.execute("DROP TABLE sessions")
    with pytest.raises(PersistenceError):
        store.insert(1.0, 1, 1.0, 0)
    with pytest.raises(PersistenceError):
        store.get_all()
