from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..models.forecast import Forecast, ForecastingConfig


def default_configs() -> List[ForecastingConfig]:
    now = datetime.now(timezone.utc)
    return [
        ForecastingConfig(
            id="aluminium_config",
            name="Aluminium Industry LSTM",
            algorithm="lstm",
            parameters={
                "layers": [64, 32, 16],
                "epochs": 150,
                "batchSize": 32,
                "lookback": 60,
                "constructionFactors": True,
                "commodityPrices": True,
            },
            horizon=90,
            confidence_level=92,
            seasonality_detection=True,
            anomaly_detection=True,
            external_factors=True,
            auto_retrain=True,
            retrain_interval=7,
            last_retrain=now,
            accuracy=91.5,
            is_active=True,
        ),
        ForecastingConfig(
            id="hardware_config",
            name="Hardware Supply Chain ARIMA",
            algorithm="arima",
            parameters={
                "p": 2,
                "d": 1,
                "q": 2,
                "seasonal": True,
                "seasonalPeriod": 12,
                "constructionDemand": True,
            },
            horizon=60,
            confidence_level=88,
            seasonality_detection=True,
            anomaly_detection=True,
            external_factors=True,
            auto_retrain=True,
            retrain_interval=14,
            last_retrain=now,
            accuracy=87.3,
            is_active=True,
        ),
        ForecastingConfig(
            id="construction_ensemble",
            name="Construction Materials Ensemble",
            algorithm="ensemble",
            parameters={
                "models": ["lstm", "arima", "prophet"],
                "weights": [0.45, 0.35, 0.20],
                "voting": "weighted",
                "constructionIndex": True,
                "weatherImpact": True,
                "permitData": True,
            },
            horizon=120,
            confidence_level=95,
            seasonality_detection=True,
            anomaly_detection=True,
            external_factors=True,
            auto_retrain=True,
            retrain_interval=7,
            last_retrain=now,
            accuracy=94.2,
            is_active=True,
        ),
    ]


def forecast_key(product_id: str, plant_id: str, config_id: str) -> str:
    return f"{product_id}-{plant_id}-{config_id}"


class ConfigRepository:
    def __init__(self, configs: Optional[List[ForecastingConfig]] = None) -> None:
        self._configs: Dict[str, ForecastingConfig] = {}
        for config in configs if configs is not None else default_configs():
            self._configs[config.id] = config

    def list(self) -> List[ForecastingConfig]:
        return list(self._configs.values())

    def get(self, config_id: str) -> Optional[ForecastingConfig]:
        return self._configs.get(config_id)

    def upsert(self, config: ForecastingConfig) -> None:
        self._configs[config.id] = config


class ForecastCache:
    """Forecasts keyed by ``productId-plantId-configId``; written only by the forecast service."""

    def __init__(self) -> None:
        self.forecasts: Dict[str, Forecast] = {}

    def get(self, key: str) -> Optional[Forecast]:
        return self.forecasts.get(key)

    def put(self, key: str, forecast: Forecast) -> None:
        self.forecasts[key] = forecast

    def invalidate_config(self, config_id: str) -> int:
        stale = [key for key, f in self.forecasts.items() if f.config_id == config_id]
        for key in stale:
            del self.forecasts[key]
        return len(stale)
