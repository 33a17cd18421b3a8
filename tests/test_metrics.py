from __future__ import annotations

import pytest

from ruta_tool.metrics import compute_calories, compute_fare


@pytest.mark.parametrize(
    ("distance_m", "expected"),
    [(0.0, 0), (999.9, 0), (1000.0, 0), (1500.0, 12), (2000.0, 15), (3250.0, 21)],
)
def test_compute_fare(distance_m: float, expected: int) -> None:
    assert compute_fare(distance_m) == expected


def test_compute_fare_just_above_first_km_is_base_fare() -> None:
    assert compute_fare(1000.5) == 10


def test_compute_calories_distance_polynomial_only() -> None:
    # d = 2 km, no elapsed time
    expected = 0.0215 * 8 - 0.1765 * 4 + 0.8710 * 2
    assert compute_calories(2000.0, 0.0, 70.0) == pytest.approx(expected)


def test_compute_calories_weight_time_term() -> None:
    assert compute_calories(0.0, 0.5, 80.0) == pytest.approx(1.4577 * 80.0 * 0.5)


def test_compute_calories_monotonic_in_elapsed_time() -> None:
    values = [compute_calories(1500.0, h / 10, 70.0) for h in range(0, 30)]
    assert all(a < b for a, b in zip(values, values[1:]))
