"""Clases base para fuentes de muestras de sensores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Generic, TypeVar

from ruta_tool.model import AccelerationSample, PositionFix

GPS = "gps"
ACCELEROMETER = "accelerometer"

SampleT = TypeVar("SampleT", PositionFix, AccelerationSample)


class SampleSource(ABC, Generic[SampleT]):
    """Abstract start/stop source of samples of one modality."""

    modality: str = ""

    def __init__(self) -> None:
        """Create a source with no handler attached."""
        self._handler: Callable[[SampleT], None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        """Whether the source is delivering samples."""
        return self._running

    def set_handler(self, handler: Callable[[SampleT], None] | None) -> None:
        """Attach the callback that receives every delivered sample."""
        self._handler = handler

    @abstractmethod
    def start(self) -> None:
        """Start delivering samples.

        Raises:
            SensorUnavailableError: If the sensor cannot be started.
        """

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering samples."""

    def _emit(self, sample: SampleT) -> None:
        if self._running and self._handler is not None:
            self._handler(sample)
