"""Jerarquía de errores del núcleo de seguimiento."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for every tracking error."""


class SensorUnavailableError(TrackerError):
    """A sensor is missing, disabled or failed to start."""

    def __init__(self, modality: str, reason: str = "not available") -> None:
        """Create the error.

        Args:
            modality: Sensor kind, ``"gps"`` or ``"accelerometer"``.
            reason: Human readable cause.
        """
        super().__init__(f"{modality}: {reason}")
        self.modality = modality
        self.reason = reason


class TransientSampleError(TrackerError):
    """A single sample could not be processed and was dropped."""


class PersistenceError(TrackerError):
    """The session store failed to read or write."""
