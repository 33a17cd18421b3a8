"""Orquestación de una sesión de seguimiento (inicio, muestras, cierre)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Protocol

from ruta_tool.distance import DistanceAccumulator
from ruta_tool.errors import PersistenceError, SensorUnavailableError
from ruta_tool.metrics import (
    DEFAULT_WEIGHT_KG,
    compute_calories,
    compute_fare,
    is_valid_weight,
)
from ruta_tool.model import AccelerationSample, PositionFix, SessionSnapshot
from ruta_tool.sources.base import SampleSource
from ruta_tool.steps import StepDetector

logger = logging.getLogger(__name__)

WEIGHT_KEY = "weight"


class Preferences(Protocol):
    """Key/value preference store."""

    def get_double(self, key: str) -> float | None: ...

    def set_double(self, key: str, value: float) -> None: ...


class SessionStore(Protocol):
    """Append-only store of completed sessions."""

    def insert(
        self, distance_m: float, steps: int, calories: float, fare: int
    ) -> int: ...


class SessionObserver:
    """Receives metric changes; every method defaults to a no-op."""

    def on_distance_changed(self, distance_m: float) -> None:
        """Total distance in meters changed."""

    def on_steps_changed(self, steps: int) -> None:
        """Step count changed."""

    def on_fare_changed(self, fare: int) -> None:
        """Fare units changed."""

    def on_calories_changed(self, calories: float) -> None:
        """Calorie estimate changed."""

    def on_sensor_unavailable(self, modality: str, error: Exception) -> None:
        """A sensor could not be started."""


class SessionTracker:
    """Owns one tracking session and derives its metrics from samples.

    Samples are only consumed while running. On stop, a session that
    detected both steps and distance is written to the store, and the
    metrics go back to zero.
    """

    def __init__(
        self,
        sources: Sequence[SampleSource],
        store: SessionStore,
        preferences: Preferences | None = None,
        clock: Callable[[], float] = time.time,
        step_detector: StepDetector | None = None,
        accumulator: DistanceAccumulator | None = None,
    ) -> None:
        """Create a tracker and attach it to its sources.

        Args:
            sources: GPS and/or accelerometer sources.
            store: Destination of completed sessions.
            preferences: Source of the ``weight`` setting.
            clock: Wall-clock in seconds.
            step_detector: Custom detector (default threshold otherwise).
            accumulator: Custom distance accumulator.
        """
        self._sources = list(sources)
        self._store = store
        self._preferences = preferences
        self._clock = clock
        self._detector = step_detector or StepDetector()
        self._accumulator = accumulator or DistanceAccumulator()
        self._observers: list[SessionObserver] = []

        self._running = False
        self._steps = 0
        self._calories = 0.0
        self._start_time: float | None = None

        for source in self._sources:
            source.set_handler(self._handler_for(source))

    def _handler_for(self, source: SampleSource) -> Callable[[object], None]:
        def handle(sample: object) -> None:
            if isinstance(sample, PositionFix):
                self.on_position(sample)
            elif isinstance(sample, AccelerationSample):
                self.on_acceleration(sample)
            else:
                logger.warning(
                    "Muestra desconocida de %s: %r", source.modality, sample
                )

        return handle

    @property
    def running(self) -> bool:
        """Whether a session is in progress."""
        return self._running

    @property
    def distance_m(self) -> float:
        """Accumulated distance in meters."""
        return self._accumulator.total_m

    @property
    def steps(self) -> int:
        """Detected steps."""
        return self._steps

    @property
    def fare(self) -> int:
        """Fare for the accumulated distance."""
        return compute_fare(self._accumulator.total_m)

    @property
    def calories(self) -> float:
        """Calories at the last distance update."""
        return self._calories

    def add_observer(self, observer: SessionObserver) -> None:
        """Register an observer; notifications follow registration order."""
        self._observers.append(observer)

    def remove_observer(self, observer: SessionObserver) -> None:
        """Unregister an observer if present."""
        if observer in self._observers:
            self._observers.remove(observer)

    def snapshot(self) -> SessionSnapshot:
        """Current metrics and lifecycle state."""
        return SessionSnapshot(
            distance_m=self.distance_m,
            steps=self._steps,
            fare=self.fare,
            calories=self._calories,
            start_time=self._start_time,
            running=self._running,
        )

    def weight_kg(self) -> float:
        """User weight preference, 70 kg when unset or unusable."""
        if self._preferences is None:
            return DEFAULT_WEIGHT_KG
        try:
            weight = self._preferences.get_double(WEIGHT_KEY)
        except PersistenceError as exc:
            logger.error("No se pudo leer el peso: %s", exc)
            return DEFAULT_WEIGHT_KG
        if weight is None:
            return DEFAULT_WEIGHT_KG
        if not is_valid_weight(weight):
            logger.warning(
                "Peso guardado invalido (%s), se usa %s kg", weight, DEFAULT_WEIGHT_KG
            )
            return DEFAULT_WEIGHT_KG
        return weight

    def start(self) -> list[str]:
        """Start (or re-arm) the session.

        Returns:
            Modalities whose sensors started.
        """
        started = self._start_sources()
        if self._running:
            return started

        self._accumulator.clear_reference()
        self._start_time = self._clock()
        self._running = True
        logger.info("Sesion iniciada (sensores: %s)", ", ".join(started) or "-")

        # Fresh session: put the display back to zero.
        if not self._steps:
            self._notify_steps()
            self._each("on_distance_changed", self._accumulator.total_m)
            self._each("on_fare_changed", 0)
        return started

    def stop(self) -> int | None:
        """Stop the session, persist it when it recorded movement, reset.

        Returns:
            Id of the stored history record, or None when nothing was saved.
        """
        if not self._running:
            return None

        for source in self._sources:
            try:
                source.stop()
            except SensorUnavailableError as exc:
                logger.error("No se pudo detener %s: %s", source.modality, exc)
        self._detector.reset()
        self._running = False

        record_id = self._save()

        self._accumulator.reset()
        self._steps = 0
        self._calories = 0.0
        logger.info("Sesion detenida")
        return record_id

    def on_position(self, fix: PositionFix) -> None:
        """Handle a GPS fix."""
        if not self._running:
            return
        if self._accumulator.on_fix(fix) is None:
            return

        fare = compute_fare(self._accumulator.total_m)
        self._calories = self._estimate_calories()
        self._each("on_distance_changed", self._accumulator.total_m)
        self._each("on_fare_changed", fare)
        self._each("on_calories_changed", self._calories)

    def on_acceleration(self, sample: AccelerationSample) -> None:
        """Handle an accelerometer sample."""
        if not self._running:
            return
        if self._detector.on_acceleration(sample):
            self._steps += 1
            self._notify_steps()

    def _start_sources(self) -> list[str]:
        started: list[str] = []
        for source in self._sources:
            try:
                source.start()
            except SensorUnavailableError as exc:
                logger.warning("Sensor no disponible: %s", exc)
                self._each("on_sensor_unavailable", source.modality, exc)
                continue
            started.append(source.modality)
        return started

    def _estimate_calories(self) -> float:
        start = self._start_time if self._start_time is not None else self._clock()
        elapsed_hours = (self._clock() - start) / 3600
        logger.debug("elapsed time: %f h", elapsed_hours)
        return compute_calories(
            self._accumulator.total_m, elapsed_hours, self.weight_kg()
        )

    def _save(self) -> int | None:
        distance = self._accumulator.total_m
        if not (self._steps > 0 and distance > 0):
            logger.info("Sesion sin movimiento, no se guarda")
            return None
        try:
            record_id = self._store.insert(
                distance, self._steps, self._calories, compute_fare(distance)
            )
        except PersistenceError as exc:
            logger.error("No se pudo guardar la sesion: %s", exc)
            return None
        logger.info("Sesion guardada con id %s", record_id)
        return record_id

    def _notify_steps(self) -> None:
        self._each("on_steps_changed", self._steps)

    def _each(self, method: str, *args: object) -> None:
        for observer in list(self._observers):
            getattr(observer, method)(*args)
