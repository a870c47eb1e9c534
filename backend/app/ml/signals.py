"""
Signal analysis primitives shared by the model runners, the forecast
decorations and the diagnostics views.

All functions are pure and deterministic: they take an ordered demand
series (any sequence of numbers) and never draw random numbers.
"""
from datetime import date, timedelta
from typing import List, Sequence, Tuple

import numpy as np

from ..models.forecast import TrendDirection


TREND_THRESHOLD = 0.01
CHANGE_POINT_THRESHOLD = 0.2
ANOMALY_Z_THRESHOLD = 2.5
SEASONALITY_THRESHOLD = 0.1
WEEKLY_PERIOD = 7


def _as_array(series: Sequence[float]) -> np.ndarray:
    return np.asarray(series, dtype="float64")


def round_half_up(values) -> np.ndarray:
    """Round to non-negative integers, halves away from zero."""
    arr = np.floor(np.asarray(values, dtype="float64") + 0.5)
    return np.maximum(arr, 0.0).astype("int64")


def calculate_trend(series: Sequence[float]) -> float:
    """OLS slope against the index, as a fraction of the series mean."""
    y = _as_array(series)
    n = y.size
    if n < 2:
        return 0.0

    x = np.arange(n, dtype="float64")
    sum_x = x.sum()
    sum_y = y.sum()
    denominator = n * np.dot(x, x) - sum_x * sum_x
    mean = sum_y / n
    if abs(denominator) < 1e-10 or mean == 0:
        return 0.0

    slope = (n * np.dot(x, y) - sum_x * sum_y) / denominator
    return float(slope / mean)


def classify_trend(slope: float) -> TrendDirection:
    if slope > TREND_THRESHOLD:
        return TrendDirection.increasing
    if slope < -TREND_THRESHOLD:
        return TrendDirection.decreasing
    return TrendDirection.stable


def trend_strength(slope: float) -> float:
    return float(min(abs(slope) * 100.0, 1.0))


def extract_seasonal_pattern(series: Sequence[float], period: int = WEEKLY_PERIOD) -> np.ndarray:
    """Bucket means by position modulo ``period``, normalised to average 1.0.

    Buckets without observations (series shorter than the period) take the
    series mean so they stay neutral.
    """
    y = _as_array(series)
    if y.size == 0:
        return np.ones(period, dtype="float64")

    overall = y.mean()
    pattern = np.array(
        [y[i::period].mean() if y[i::period].size else overall for i in range(period)],
        dtype="float64",
    )
    avg = pattern.mean()
    if avg == 0:
        return np.ones(period, dtype="float64")
    return pattern / avg


def seasonal_strength(series: Sequence[float], period: int = WEEKLY_PERIOD) -> float:
    """Share of the series variance explained by its periodic bucket means."""
    y = _as_array(series)
    if y.size < 2 * period:
        return 0.0

    total_var = y.var()
    if total_var == 0:
        return 0.0

    bucket_means = np.array([y[i::period].mean() for i in range(period)])
    fitted = bucket_means[np.arange(y.size) % period]
    return float(np.clip(fitted.var() / total_var, 0.0, 1.0))


def find_change_points(series: Sequence[float], threshold: float = CHANGE_POINT_THRESHOLD) -> List[int]:
    y = _as_array(series)
    points: List[int] = []
    for i in range(1, y.size):
        previous = y[i - 1]
        if previous == 0:
            if y[i] != 0:
                points.append(i)
            continue
        if abs(y[i] - previous) / abs(previous) > threshold:
            points.append(i)
    return points


def detect_anomalies(
    series: Sequence[float],
    threshold: float = ANOMALY_Z_THRESHOLD,
) -> Tuple[List[int], List[float]]:
    """Return indices whose population z-score exceeds ``threshold`` and their severities."""
    y = _as_array(series)
    if y.size == 0:
        return [], []

    std = y.std()
    if std == 0:
        return [], []

    z = np.abs((y - y.mean()) / std)
    indices = np.flatnonzero(z > threshold)
    return indices.tolist(), [float(z[i]) for i in indices]


def index_to_date(index: int, length: int, as_of: date) -> date:
    """Map a position in a series that ends the day before ``as_of`` to its calendar date."""
    return as_of - timedelta(days=length - index)


def r_squared(series: Sequence[float]) -> float:
    """Coefficient of determination of a straight-line fit against the index."""
    y = _as_array(series)
    if y.size < 2:
        return 0.0
    total = float(((y - y.mean()) ** 2).sum())
    if total == 0:
        return 0.0
    x = np.arange(y.size, dtype="float64")
    slope, intercept = np.polyfit(x, y, 1)
    residual = float(((y - (slope * x + intercept)) ** 2).sum())
    return max(0.0, 1.0 - residual / total)
