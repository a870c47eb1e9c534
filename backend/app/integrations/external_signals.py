from __future__ import annotations

from typing import Sequence

import pandas as pd

from ..models.forecast import ExternalFactors
from ..models.history import HistoricalData


def signals_frame(records: Sequence[HistoricalData]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "date": [r.date for r in records],
            "temperature": [r.weather.temperature if r.weather else 0.0 for r in records],
            "is_holiday": [bool(r.holidays) for r in records],
            "has_event": [bool(r.events) for r in records],
            "gdp": [r.economic_indicators.gdp if r.economic_indicators else 0.0 for r in records],
        }
    )


def summarize_external_factors(records: Sequence[HistoricalData], days: int = 30) -> ExternalFactors:
    """Scalar weather, holiday, event and economic signals over the most recent ``days`` records.

    Weather and economic signals are means scaled by 1/100; holiday and event
    signals are the share of days carrying at least one entry.
    """
    recent = signals_frame(records[-days:]) if days > 0 else signals_frame([])
    if recent.empty:
        return ExternalFactors(weather=0.0, holidays=0.0, events=0.0, economic=0.0)

    return ExternalFactors(
        weather=float(recent["temperature"].mean()) / 100.0,
        holidays=float(recent["is_holiday"].mean()),
        events=float(recent["has_event"].mean()),
        economic=float(recent["gdp"].mean()) / 100.0,
    )
