"""Acumulación de distancia entre fijaciones GPS consecutivas."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

from ruta_tool.errors import TransientSampleError
from ruta_tool.model import PositionFix

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0

DistanceFn = Callable[[float, float, float, float], float]


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute the great-circle distance in meters between two points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.

    Raises:
        TransientSampleError: If any coordinate is not a finite number.
    """
    if not all(math.isfinite(v) for v in (lat1, lon1, lat2, lon2)):
        raise TransientSampleError(
            f"non-finite coordinates: {lat1}, {lon1} -> {lat2}, {lon2}"
        )

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    # Rounding can push a slightly above 1.0 for antipodal points.
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, a)))


class DistanceAccumulator:
    """Running total of haversine distance over a stream of fixes.

    The first fix after a reset only calibrates the reference point. Every
    later fix adds its distance to the previous one, with no accuracy
    filtering, and becomes the new reference point.
    """

    def __init__(self, distance_fn: DistanceFn = haversine_m) -> None:
        self._distance_fn = distance_fn
        self._previous: tuple[float, float] | None = None
        self.total_m = 0.0

    @property
    def calibrated(self) -> bool:
        """Whether a reference point is set."""
        return self._previous is not None

    def on_fix(self, fix: PositionFix) -> float | None:
        """Consume one fix.

        Returns:
            The distance added in meters, or None when nothing was added
            (calibration fix or dropped sample).
        """
        logger.debug(
            "fix lat=%f lon=%f accuracy=%s",
            fix.latitude,
            fix.longitude,
            fix.horizontal_accuracy_m,
        )
        if self._previous is None:
            if not (math.isfinite(fix.latitude) and math.isfinite(fix.longitude)):
                logger.warning("Fix de calibracion descartado: %s", fix)
                return None
            self._previous = (fix.latitude, fix.longitude)
            return None

        prev_lat, prev_lon = self._previous
        try:
            delta = self._distance_fn(
                prev_lat, prev_lon, fix.latitude, fix.longitude
            )
        except (TransientSampleError, ValueError) as exc:
            logger.warning("Fix descartado: %s", exc)
            return None
        if not math.isfinite(delta) or delta < 0:
            logger.warning("Fix descartado: distancia invalida %r", delta)
            return None

        self.total_m += delta
        self._previous = (fix.latitude, fix.longitude)
        logger.debug("total distance: %f meters", self.total_m)
        return delta

    def clear_reference(self) -> None:
        """Forget the reference point so the next fix calibrates again."""
        self._previous = None

    def reset(self) -> None:
        """Zero the total and forget the reference point."""
        self.total_m = 0.0
        self._previous = None
