from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import numpy as np
import pytest

from backend.app.core.config import Settings
from backend.app.feature_store.registry import HistoricalDataStore
from backend.app.models.forecast import (
    ConfidenceInterval,
    Forecast,
    ForecastAlgorithm,
    ModelMetrics,
    TrendDirection,
    TrendInfo,
)
from backend.app.models.history import HistoricalData
from backend.app.services.forecasting_service import ForecastService
from backend.app.services.store import ConfigRepository


END_DATE = date(2025, 6, 30)
PRODUCTS = ["Aluminium-Sheets-001", "Hardware-Screws-001"]
PLANT = "plant001"


def make_records(
    product_id: str,
    plant_id: str,
    demand: List[int],
    stock: Optional[List[int]] = None,
    end_date: date = END_DATE,
) -> List[HistoricalData]:
    stock = stock if stock is not None else [d * 2 for d in demand]
    start = end_date - timedelta(days=len(demand) - 1)
    return [
        HistoricalData(
            id=f"hist_{product_id}-{plant_id}_{i}",
            product_id=product_id,
            plant_id=plant_id,
            date=start + timedelta(days=i),
            demand=d,
            supply=d,
            stock=s,
            price=2.5,
        )
        for i, (d, s) in enumerate(zip(demand, stock))
    ]


def make_forecast(
    predicted: List[int],
    product_id: str = "Steel-Beams-001",
    direction: TrendDirection = TrendDirection.stable,
    accuracy: float = 90.0,
) -> Forecast:
    now = datetime.now(timezone.utc)
    return Forecast(
        id="forecast_test",
        product_id=product_id,
        plant_id=PLANT,
        config_id="construction_ensemble",
        start_date=now,
        end_date=now + timedelta(days=len(predicted)),
        predicted_demand=predicted,
        confidence_interval=ConfidenceInterval(lower=predicted, upper=predicted),
        accuracy=accuracy,
        algorithm=ForecastAlgorithm.ensemble,
        last_updated=now,
        trend=TrendInfo(direction=direction, slope=0.0, strength=0.0),
        model_metrics=ModelMetrics(mape=4.1, rmse=9.8, mae=6.5, r2=0.92),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(random_seed=42)


@pytest.fixture
def history_store() -> HistoricalDataStore:
    store = HistoricalDataStore()
    store.populate(PRODUCTS, [PLANT], end_date=END_DATE, rng=np.random.default_rng(42))
    return store


@pytest.fixture
def service(history_store: HistoricalDataStore, settings: Settings) -> ForecastService:
    return ForecastService(
        configs=ConfigRepository(),
        history=history_store,
        settings=settings,
        rng=np.random.default_rng(7),
    )
