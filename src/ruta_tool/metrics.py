"""Tarifa y calorías derivadas de la distancia recorrida."""

from __future__ import annotations

import math

BASE_FARE = 10
FARE_PER_KM = 5
BASE_DISTANCE_KM = 1.0
DEFAULT_WEIGHT_KG = 70.0


def is_valid_weight(weight_kg: float) -> bool:
    """Whether a body weight can feed the calorie estimate (finite and > 0)."""
    return math.isfinite(weight_kg) and weight_kg > 0


def compute_fare(distance_m: float) -> int:
    """Fare units for a distance: flat base fare plus a rate per extra km.

    Args:
        distance_m: Accumulated distance in meters.

    Returns:
        0 up to the first kilometer, otherwise the truncated fare.
    """
    if distance_m > 1000.0:
        return int(BASE_FARE + (distance_m / 1000 - BASE_DISTANCE_KM) * FARE_PER_KM)
    return 0


def compute_calories(
    distance_m: float, elapsed_hours: float, weight_kg: float
) -> float:
    """Heuristic calorie estimate from distance, time and body weight.

    Args:
        distance_m: Accumulated distance in meters.
        elapsed_hours: Session wall-clock time in hours.
        weight_kg: User weight in kilograms.

    Returns:
        Estimated kcal.
    """
    d = distance_m / 1000
    return (
        0.0215 * d**3
        - 0.1765 * d**2
        + 0.8710 * d
        + 1.4577 * weight_kg * elapsed_hours
    )
