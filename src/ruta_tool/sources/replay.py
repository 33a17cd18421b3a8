"""Reproducción de sesiones grabadas (CSV) como fuentes de sensores."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from ruta_tool.errors import SensorUnavailableError
from ruta_tool.model import AccelerationSample, PositionFix
from ruta_tool.sources.base import ACCELEROMETER, GPS, SampleSource, SampleT

logger = logging.getLogger(__name__)

RECORDING_COLUMNS = [
    "timestamp",
    "kind",
    "latitude",
    "longitude",
    "altitude",
    "accuracy",
    "x",
    "y",
    "z",
]

Event = tuple[float, PositionFix | AccelerationSample]


class ReplaySource(SampleSource[SampleT]):
    """Source fed by a ReplayFeed instead of a device driver."""

    def __init__(self, modality: str, available: bool) -> None:
        """Create a replay source.

        Args:
            modality: ``"gps"`` or ``"accelerometer"``.
            available: Whether the recording holds samples of this modality.
        """
        super().__init__()
        self.modality = modality
        self._available = available

    def start(self) -> None:
        """Start delivering; fails when the recording has no such samples."""
        if not self._available:
            raise SensorUnavailableError(self.modality, "no samples in recording")
        self._running = True

    def stop(self) -> None:
        """Stop delivering; later samples are discarded."""
        self._running = False

    def deliver(self, sample: SampleT) -> None:
        """Hand one sample to the handler if the source is running."""
        self._emit(sample)


class ReplayFeed:
    """Ordered recording split into a GPS and an accelerometer source."""

    def __init__(self, events: Sequence[Event]) -> None:
        """Create a feed.

        Args:
            events: ``(timestamp, sample)`` pairs in delivery order.
        """
        self._events = list(events)
        self._cursor = 0
        self._now: float | None = None
        has_fix = any(isinstance(s, PositionFix) for _, s in self._events)
        has_accel = any(isinstance(s, AccelerationSample) for _, s in self._events)
        self.gps: ReplaySource[PositionFix] = ReplaySource(GPS, has_fix)
        self.accelerometer: ReplaySource[AccelerationSample] = ReplaySource(
            ACCELEROMETER, has_accel
        )

    @classmethod
    def from_csv(cls, path: Path) -> ReplayFeed:
        """Build a feed from a recording file."""
        return cls(load_recording(path))

    def __len__(self) -> int:
        return len(self._events)

    @property
    def exhausted(self) -> bool:
        """Whether every event has been delivered."""
        return self._cursor >= len(self._events)

    def clock(self) -> float:
        """Timestamp of the last delivered event (first event before any)."""
        if self._now is not None:
            return self._now
        if self._events:
            return self._events[0][0]
        return 0.0

    def pump(self, count: int = 1) -> int:
        """Deliver up to ``count`` events; return how many were consumed."""
        consumed = 0
        while consumed < count and not self.exhausted:
            timestamp, sample = self._events[self._cursor]
            self._cursor += 1
            self._now = timestamp
            consumed += 1
            if isinstance(sample, PositionFix):
                self.gps.deliver(sample)
            else:
                self.accelerometer.deliver(sample)
        return consumed

    def pump_all(self) -> int:
        """Deliver every remaining event."""
        return self.pump(len(self._events) - self._cursor)

    def rewind(self) -> None:
        """Restart the recording from its first event."""
        self._cursor = 0
        self._now = None


def load_recording(path: Path) -> list[Event]:
    """Parse a recording CSV into ordered events.

    Rows with an unknown ``kind`` or missing numeric values are skipped.

    Args:
        path: CSV file with the RECORDING_COLUMNS header.

    Returns:
        ``(timestamp, sample)`` pairs in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    if not path.exists():
        raise FileNotFoundError(str(path))

    df = pd.read_csv(path)
    df = df.rename(columns={c: c.strip().lower() for c in df.columns})
    missing = [c for c in ("timestamp", "kind") if c not in df.columns]
    if missing:
        raise ValueError(f"Recording without columns: {', '.join(missing)}")

    events: list[Event] = []
    skipped = 0
    for _, row in df.iterrows():
        event = _row_to_event(row)
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        logger.warning("Grabacion %s: %s filas descartadas", path, skipped)
    return events


def _number(row: pd.Series, column: str) -> float | None:
    raw = row.get(column)
    if raw is None:
        return None
    value = pd.to_numeric(raw, errors="coerce")
    if pd.isna(value):
        return None
    return float(value)


def _row_to_event(row: pd.Series) -> Event | None:
    timestamp = _number(row, "timestamp")
    if timestamp is None:
        return None
    kind = str(row.get("kind", "")).strip().lower()

    if kind == "fix":
        lat = _number(row, "latitude")
        lon = _number(row, "longitude")
        if lat is None or lon is None:
            return None
        fix = PositionFix(
            latitude=lat,
            longitude=lon,
            altitude=_number(row, "altitude") or 0.0,
            timestamp=timestamp,
            horizontal_accuracy_m=_number(row, "accuracy"),
        )
        return timestamp, fix

    if kind == "accel":
        axes = [_number(row, axis) for axis in ("x", "y", "z")]
        if any(v is None for v in axes):
            return None
        x, y, z = (float(v) for v in axes if v is not None)
        return timestamp, AccelerationSample(x=x, y=y, z=z)

    return None


def write_recording(events: Sequence[Event], path: Path) -> None:
    """Write events in the recording CSV format."""
    rows: list[dict[str, object]] = []
    for timestamp, sample in events:
        if isinstance(sample, PositionFix):
            rows.append(
                {
                    "timestamp": timestamp,
                    "kind": "fix",
                    "latitude": sample.latitude,
                    "longitude": sample.longitude,
                    "altitude": sample.altitude,
                    "accuracy": sample.horizontal_accuracy_m,
                }
            )
        else:
            rows.append(
                {
                    "timestamp": timestamp,
                    "kind": "accel",
                    "x": sample.x,
                    "y": sample.y,
                    "z": sample.z,
                }
            )
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows, columns=RECORDING_COLUMNS).to_csv(path, index=False)
