"""
Read-only diagnostic views over a (product, plant) history: a one-step
backtest per algorithm, per-season demand statistics and multi-horizon
trend summaries.
"""
from datetime import date
from typing import Dict, List, Sequence

import logging
import numpy as np
import pandas as pd

from ..models.diagnostics import (
    ForecastComparison,
    Season,
    SeasonalAnalysis,
    TrendAnalysis,
    TrendPeriod,
)
from ..models.forecast import ForecastAlgorithm, ForecastingConfig, TrendDirection
from ..models.history import HistoricalData
from .forecasting import RUNNERS
from .history_generator import season_for_month
from .signals import (
    SEASONALITY_THRESHOLD,
    calculate_trend,
    classify_trend,
    find_change_points,
    r_squared,
    seasonal_strength,
    trend_strength,
)


logger = logging.getLogger(__name__)


COMPARISON_ALGORITHMS = (
    ForecastAlgorithm.lstm,
    ForecastAlgorithm.arima,
    ForecastAlgorithm.prophet,
    ForecastAlgorithm.ensemble,
)

TREND_WINDOWS = {
    TrendPeriod.short: 30,
    TrendPeriod.medium: 90,
    TrendPeriod.long: 365,
}

_DIRECTION_LABELS = {
    TrendDirection.increasing: "upward",
    TrendDirection.decreasing: "downward",
    TrendDirection.stable: "stable",
}


async def forecast_comparison(
    product_id: str,
    plant_id: str,
    history: Sequence[HistoricalData],
    configs: Dict[ForecastAlgorithm, ForecastingConfig],
    rng: np.random.Generator,
    *,
    days: int = 30,
    window: int = 90,
) -> List[ForecastComparison]:
    """One-step-ahead backtest: each of the last ``days`` observations is predicted
    from the ``window`` observations before it."""
    demand = [r.demand for r in history]
    comparisons: List[ForecastComparison] = []

    for position in range(max(1, len(history) - days), len(history)):
        record = history[position]
        training = demand[max(0, position - window):position]
        for algorithm in COMPARISON_ALGORITHMS:
            config = configs[algorithm].model_copy(update={"horizon": 1})
            result = await RUNNERS[algorithm].run(training, config, rng)
            predicted = result.predicted_demand[0]
            error = abs(record.demand - predicted)
            percentage = round(error / record.demand * 100) if record.demand else 0
            comparisons.append(
                ForecastComparison(
                    id=f"comp_{product_id}_{plant_id}_{record.date.isoformat()}_{algorithm.value}",
                    product_id=product_id,
                    plant_id=plant_id,
                    date=record.date,
                    actual=record.demand,
                    predicted=predicted,
                    algorithm=algorithm.value,
                    error=error,
                    percentage_error=percentage,
                )
            )

    logger.info(
        "Backtest for %s-%s: %d comparisons over %d days",
        product_id,
        plant_id,
        len(comparisons),
        days,
    )
    return comparisons


def seasonal_analysis(
    product_id: str,
    plant_id: str,
    frame: pd.DataFrame,
    *,
    as_of: date,
    days: int = 365,
) -> List[SeasonalAnalysis]:
    """Per-season demand statistics over the last ``days`` rows of a history frame."""
    recent = frame.tail(days)
    if recent.empty:
        return []

    # Plain string labels; enum members do not compare reliably against a pandas column
    seasons = np.array([season_for_month(ts.month - 1).value for ts in recent["date"]], dtype=object)
    demand = recent["demand"].to_numpy(dtype="float64")
    overall = float(demand.mean())

    results: List[SeasonalAnalysis] = []
    for season in Season:
        values = pd.Series(demand[seasons == season.value])
        if values.empty:
            continue
        results.append(
            SeasonalAnalysis(
                id=f"seasonal_{product_id}_{plant_id}_{season.value}_{as_of.year}",
                product_id=product_id,
                plant_id=plant_id,
                season=season,
                year=as_of.year,
                average_demand=round(float(values.mean())),
                peak_demand=int(values.max()),
                low_demand=int(values.min()),
                seasonality_factor=float(values.mean()) / overall if overall else 1.0,
                trend=calculate_trend(values.to_numpy()),
            )
        )
    return results


def trend_analysis(
    product_id: str,
    plant_id: str,
    history: Sequence[HistoricalData],
) -> List[TrendAnalysis]:
    results: List[TrendAnalysis] = []
    for period, days in TREND_WINDOWS.items():
        window = history[-days:]
        if not window:
            continue
        demand = [r.demand for r in window]
        slope = calculate_trend(demand)
        results.append(
            TrendAnalysis(
                id=f"trend_{product_id}_{plant_id}_{period.value}",
                product_id=product_id,
                plant_id=plant_id,
                period=period,
                start_date=window[0].date,
                end_date=window[-1].date,
                direction=_DIRECTION_LABELS[classify_trend(slope)],
                slope=slope,
                strength=trend_strength(slope),
                confidence=round(r_squared(demand) * 100.0, 1),
                change_points=[window[i].date for i in find_change_points(demand)],
                seasonality=seasonal_strength(demand) >= SEASONALITY_THRESHOLD,
            )
        )
    return results
