"""Detector de pasos por caída de la aceleración media."""

from __future__ import annotations

from ruta_tool.model import AccelerationSample

STEP_THRESHOLD = 0.2


def mean_abs_magnitude(sample: AccelerationSample) -> float:
    """Mean absolute value across the three axes (not the vector norm)."""
    return (abs(sample.x) + abs(sample.y) + abs(sample.z)) / 3


class StepDetector:
    """Rise-then-drop footfall detector against a fixed baseline.

    The first sample after a reset becomes the baseline for the rest of the
    session. A step is registered when the previous magnitude was above the
    baseline and the current one falls more than ``threshold`` below it.
    """

    def __init__(self, threshold: float = STEP_THRESHOLD) -> None:
        self.threshold = threshold
        self.initial_average: float | None = None
        self.previous_average: float | None = None

    def on_acceleration(self, sample: AccelerationSample) -> bool:
        """Consume one sample; return True when it completes a step."""
        current = mean_abs_magnitude(sample)
        if self.initial_average is None or self.previous_average is None:
            self.initial_average = current
            self.previous_average = current
            return False

        step = (
            self.previous_average > self.initial_average
            and self.initial_average - current > self.threshold
        )
        self.previous_average = current
        return step

    def reset(self) -> None:
        """Drop the baseline so the next sample recalibrates it."""
        self.initial_average = None
        self.previous_average = None
