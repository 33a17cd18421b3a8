"""Persistencia SQLite para configuracion, preferencias e historial de sesiones."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd
from dateutil import parser as date_parser
from dateutil import tz

from ruta_tool.errors import PersistenceError
from ruta_tool.model import HistoryRecord

_LOCAL_TZ = tz.tzlocal()

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    distance_m REAL NOT NULL,
    steps INTEGER NOT NULL,
    calories_kcal REAL NOT NULL,
    fare INTEGER NOT NULL
);
"""

HISTORY_COLUMNS = ["id", "date", "distance_m", "steps", "calories_kcal", "fare"]


@dataclass(frozen=True)
class AppConfig:
    """Configuracion persistida de la app."""

    samples_path: str = ""
    export_dir: str = ""
    replay_interval_s: float = 0.2


class SQLiteStore:
    """Repositorio SQLite: preferencias (clave/valor) e historial de sesiones."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"{self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"{self._db_path}: {exc}") from exc
        finally:
            conn.close()

    def _get_value(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM app_config WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def _set_values(self, payload: dict[str, str]) -> None:
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO app_config(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                payload.items(),
            )

    def get_double(self, key: str) -> float | None:
        """Devuelve la preferencia numerica o None si no existe."""
        raw = self._get_value(key)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            return None

    def set_double(self, key: str, value: float) -> None:
        """Guarda una preferencia numerica."""
        self._set_values({key: repr(float(value))})

    def load_config(self) -> AppConfig:
        """Devuelve configuracion guardada o defaults."""
        defaults = AppConfig()
        samples_path = self._get_value("samples_path")
        export_dir = self._get_value("export_dir")
        interval = self.get_double("replay_interval_s")
        return AppConfig(
            samples_path=samples_path if samples_path is not None else "",
            export_dir=export_dir if export_dir is not None else "",
            replay_interval_s=(
                interval if interval and interval > 0 else defaults.replay_interval_s
            ),
        )

    def save_config(self, config: AppConfig) -> None:
        """Guarda la configuracion en tabla key/value."""
        self._set_values(
            {
                "samples_path": config.samples_path,
                "export_dir": config.export_dir,
                "replay_interval_s": repr(float(config.replay_interval_s)),
            }
        )

    def insert(
        self,
        distance_m: float,
        steps: int,
        calories: float,
        fare: int,
        *,
        when: datetime | None = None,
    ) -> int:
        """Guarda el resumen de una sesion. Devuelve su id."""
        stamp = when if when is not None else datetime.now(tz=_LOCAL_TZ)
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO sessions(date, distance_m, steps, calories_kcal, fare)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    stamp.isoformat(timespec="seconds"),
                    float(distance_m),
                    int(steps),
                    float(calories),
                    int(fare),
                ),
            )
            record_id = cur.lastrowid
        if record_id is None:
            raise PersistenceError("Insert returned no row id")
        return int(record_id)

    def get_all(self) -> list[HistoryRecord]:
        """Historial completo en orden de insercion."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {', '.join(HISTORY_COLUMNS)} FROM sessions ORDER BY id"
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def latest_session(self) -> HistoryRecord | None:
        """Sesion mas reciente o None."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {', '.join(HISTORY_COLUMNS)} FROM sessions "
                "ORDER BY id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    def history_frame(self) -> pd.DataFrame:
        """Carga el historial como DataFrame."""
        records = self.get_all()
        if not records:
            return pd.DataFrame(columns=HISTORY_COLUMNS)
        out = pd.DataFrame(
            [
                {
                    "id": r.id,
                    "date": r.date,
                    "distance_m": r.distance_m,
                    "steps": r.steps,
                    "calories_kcal": r.calories,
                    "fare": r.fare,
                }
                for r in records
            ]
        )
        out["date"] = pd.to_datetime(out["date"], utc=True).dt.tz_convert(_LOCAL_TZ)
        return out


def _row_to_record(row: sqlite3.Row) -> HistoryRecord:
    stamp = date_parser.isoparse(row["date"])
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=_LOCAL_TZ)
    return HistoryRecord(
        id=int(row["id"]),
        date=stamp,
        distance_m=float(row["distance_m"]),
        steps=int(row["steps"]),
        calories=float(row["calories_kcal"]),
        fare=int(row["fare"]),
    )
