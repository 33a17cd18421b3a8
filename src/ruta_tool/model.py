"""Modelos tipados para muestras de sensores, sesiones e historial."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PositionFix:
    """One GPS position reading."""

    latitude: float
    longitude: float
    altitude: float
    timestamp: float
    horizontal_accuracy_m: float | None = None


@dataclass(frozen=True)
class AccelerationSample:
    """One triaxial accelerometer reading (m/s^2)."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the current session metrics."""

    distance_m: float
    steps: int
    fare: int
    calories: float
    start_time: float | None
    running: bool


@dataclass(frozen=True)
class HistoryRecord:
    """Persisted summary of one completed session."""

    id: int
    date: datetime
    distance_m: float
    steps: int
    calories: float
    fare: int
