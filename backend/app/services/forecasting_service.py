import asyncio
import logging
import uuid
from functools import lru_cache
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from ..core.config import Settings, get_settings
from ..core.errors import ConfigNotFound, NoHistoricalData
from ..feature_store.registry import HistoricalDataStore
from ..integrations.external_signals import summarize_external_factors
from ..ml.diagnostics import COMPARISON_ALGORITHMS, forecast_comparison, seasonal_analysis, trend_analysis
from ..ml.forecasting import resolve_runner
from ..ml.history_generator import catalog_products
from ..ml.recommendations import generate_recommendations
from ..ml.signals import (
    SEASONALITY_THRESHOLD,
    WEEKLY_PERIOD,
    calculate_trend,
    classify_trend,
    detect_anomalies,
    find_change_points,
    index_to_date,
    seasonal_strength,
    trend_strength,
)
from ..models.diagnostics import ForecastComparison, SeasonalAnalysis, TrendAnalysis
from ..models.forecast import (
    AnomalyInfo,
    Forecast,
    ForecastAlgorithm,
    ForecastingConfig,
    SeasonalityInfo,
    TrendInfo,
)
from ..models.history import HistoricalData
from .store import ConfigRepository, ForecastCache, forecast_key


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ForecastService:
    """Builds, caches and serves demand forecasts per (product, plant, config).

    The service owns the forecast cache; the history store and config
    catalog are shared collaborators handed in at construction.
    """

    def __init__(
        self,
        configs: ConfigRepository,
        history: HistoricalDataStore,
        cache: Optional[ForecastCache] = None,
        settings: Optional[Settings] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.configs = configs
        self.history = history
        self.cache = cache if cache is not None else ForecastCache()
        self.settings = settings or get_settings()
        self.rng = rng if rng is not None else np.random.default_rng(self.settings.random_seed)
        self.clock = clock
        self._in_flight: Dict[Tuple[str, str, str], asyncio.Future] = {}

    async def get_forecast(
        self,
        product_id: str,
        plant_id: str,
        config_id: Optional[str] = None,
    ) -> Forecast:
        config_id = config_id or self.settings.default_config_id
        key = forecast_key(product_id, plant_id, config_id)
        existing = self.cache.get(key)
        if existing is not None and self.clock() - existing.last_updated < self._ttl():
            logger.info("Forecast cache hit for %s (id=%s)", key, existing.id)
            return existing

        logger.info("Forecast cache %s for %s", "stale" if existing else "miss", key)
        return await self.generate_forecast(product_id, plant_id, config_id)

    async def generate_forecast(
        self,
        product_id: str,
        plant_id: str,
        config_id: Optional[str] = None,
    ) -> Forecast:
        config_id = config_id or self.settings.default_config_id
        key = (product_id, plant_id, config_id)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._generate(product_id, plant_id, config_id))
            self._in_flight[key] = task
            task.add_done_callback(lambda done, k=key: self._release(k, done))
        else:
            logger.info("Joining in-flight generation for %s", forecast_key(*key))

        return await asyncio.shield(task)

    def _release(self, key: Tuple[str, str, str], task: asyncio.Future) -> None:
        # A detached task must not evict the generation that replaced it
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _generate(self, product_id: str, plant_id: str, config_id: str) -> Forecast:
        config = self.configs.get(config_id)
        if config is None:
            raise ConfigNotFound(config_id)

        records = self.history.get(product_id, plant_id)
        if not records:
            logger.warning("No history loaded for %s-%s", product_id, plant_id)
            raise NoHistoricalData(product_id, plant_id)

        runner = resolve_runner(config.algorithm)
        recent = records[-self.settings.analysis_window_days:]
        demand = [r.demand for r in recent]

        result = await runner.run(demand, config, self.rng)

        now = self.clock()
        today = now.date()
        slope = calculate_trend(demand)
        trend = TrendInfo(
            direction=classify_trend(slope),
            slope=slope,
            strength=trend_strength(slope),
            change_points=[index_to_date(i, len(demand), today) for i in find_change_points(demand)],
        )

        forecast = Forecast(
            id=f"forecast_{uuid.uuid4().hex}",
            product_id=product_id,
            plant_id=plant_id,
            config_id=config.id,
            start_date=now,
            end_date=now + timedelta(days=config.horizon),
            predicted_demand=result.predicted_demand,
            confidence_interval=result.confidence_interval,
            accuracy=config.accuracy,
            algorithm=runner.algorithm,
            last_updated=now,
            seasonality=self._seasonality(demand) if config.seasonality_detection else None,
            trend=trend,
            anomalies=self._anomalies(demand, today) if config.anomaly_detection else None,
            model_metrics=result.model_metrics,
            external_factors=(
                summarize_external_factors(records, self.settings.external_factor_window_days)
                if config.external_factors
                else None
            ),
        )
        forecast.recommendations = generate_recommendations(forecast, records, today=today)

        if self.configs.get(config_id) is not config:
            logger.info("Config %s changed during generation; not caching forecast %s", config_id, forecast.id)
            return forecast

        self.cache.put(forecast_key(product_id, plant_id, config_id), forecast)
        logger.info(
            "Generated forecast %s for %s-%s with %s: horizon=%d trend=%s recommendations=%d",
            forecast.id,
            product_id,
            plant_id,
            config.algorithm,
            config.horizon,
            trend.direction.value,
            len(forecast.recommendations),
        )
        return forecast

    def _seasonality(self, demand: List[int]) -> SeasonalityInfo:
        strength = seasonal_strength(demand, WEEKLY_PERIOD)
        return SeasonalityInfo(
            detected=strength >= SEASONALITY_THRESHOLD,
            period=WEEKLY_PERIOD,
            strength=strength,
        )

    def _anomalies(self, demand: List[int], today: date) -> AnomalyInfo:
        indices, severity = detect_anomalies(demand)
        points = [index_to_date(i, len(demand), today) for i in indices]
        return AnomalyInfo(detected=bool(indices), points=points, severity=severity)

    def _ttl(self) -> timedelta:
        return timedelta(hours=self.settings.forecast_ttl_hours)

    async def get_forecasting_configs(self) -> List[ForecastingConfig]:
        return self.configs.list()

    async def update_forecasting_config(self, config: ForecastingConfig) -> ForecastingConfig:
        self.configs.upsert(config)
        dropped = self.cache.invalidate_config(config.id)
        detached = [key for key in self._in_flight if key[2] == config.id]
        for key in detached:
            del self._in_flight[key]
        logger.info(
            "Updated config %s; dropped %d cached forecasts, detached %d in-flight generations",
            config.id,
            dropped,
            len(detached),
        )
        return config

    async def get_historical_data(self, product_id: str, plant_id: str) -> List[HistoricalData]:
        return list(self.history.get(product_id, plant_id) or ())

    def _require_history(self, product_id: str, plant_id: str):
        records = self.history.get(product_id, plant_id)
        if not records:
            raise NoHistoricalData(product_id, plant_id)
        return records

    async def get_forecast_comparison(self, product_id: str, plant_id: str) -> List[ForecastComparison]:
        records = self._require_history(product_id, plant_id)
        configs: Dict[ForecastAlgorithm, ForecastingConfig] = {}
        for algorithm in COMPARISON_ALGORITHMS:
            configured = next((c for c in self.configs.list() if c.algorithm == algorithm.value), None)
            configs[algorithm] = configured or ForecastingConfig(
                id=f"backtest_{algorithm.value}",
                name=f"Backtest {algorithm.value}",
                algorithm=algorithm.value,
                horizon=1,
            )
        return await forecast_comparison(
            product_id,
            plant_id,
            records,
            configs,
            self.rng,
            days=self.settings.comparison_days,
            window=self.settings.analysis_window_days,
        )

    async def get_seasonal_analysis(self, product_id: str, plant_id: str) -> List[SeasonalAnalysis]:
        self._require_history(product_id, plant_id)
        frame = self.history.frame(product_id, plant_id)
        return seasonal_analysis(product_id, plant_id, frame, as_of=self.clock().date())

    async def get_trend_analysis(self, product_id: str, plant_id: str) -> List[TrendAnalysis]:
        records = self._require_history(product_id, plant_id)
        return trend_analysis(product_id, plant_id, records)


def build_forecast_service(settings: Optional[Settings] = None) -> ForecastService:
    settings = settings or get_settings()
    rng = np.random.default_rng(settings.random_seed)
    history = HistoricalDataStore()
    history.populate(catalog_products(), settings.plants, days=settings.history_days, rng=rng)
    return ForecastService(
        configs=ConfigRepository(),
        history=history,
        settings=settings,
        rng=rng,
    )


@lru_cache(maxsize=1)
def get_forecast_service() -> ForecastService:
    return build_forecast_service()
