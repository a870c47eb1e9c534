from typing import Any, Dict, List, Sequence, Tuple

import asyncio
import logging
import numpy as np

from ..core.errors import InvalidParameter, InvalidWeights, UnsupportedAlgorithm
from ..models.forecast import (
    ConfidenceInterval,
    ForecastAlgorithm,
    ForecastingConfig,
    ModelMetrics,
    ModelRunResult,
)
from .signals import calculate_trend, extract_seasonal_pattern, round_half_up


logger = logging.getLogger(__name__)


DEFAULT_ENSEMBLE_MODELS = (ForecastAlgorithm.lstm, ForecastAlgorithm.arima, ForecastAlgorithm.prophet)
DEFAULT_ENSEMBLE_WEIGHTS = (0.45, 0.35, 0.20)
WEIGHT_TOLERANCE = 0.01


def _prepare_series(series: Sequence[float]) -> np.ndarray:
    values = np.asarray(series, dtype="float64")
    if values.size == 0:
        raise ValueError("Demand series must contain at least one observation")
    return values


def _fraction(config: ForecastingConfig, name: str, default: float, *, allow_one: bool = True) -> float:
    raw = config.parameters.get(name, default)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidParameter(name, raw, "must be a number")
    if not (value >= 0.0 and (value <= 1.0 if allow_one else value < 1.0)):
        raise InvalidParameter(name, raw, "must be within [0, 1]" if allow_one else "must be within [0, 1)")
    return value


class ModelRunner:
    """Base class for the forecasting strategies.

    Subclasses supply ``_project`` returning the raw (unrounded) prediction
    vector. Band width, jitter amplitude and the reported fit metrics are
    illustrative defaults that a config can override through its
    ``confidenceBand``, ``noise`` and ``modelMetrics`` parameters.
    """

    algorithm: ForecastAlgorithm
    band: float
    noise: float
    metrics: Dict[str, float]

    async def run(
        self,
        series: Sequence[float],
        config: ForecastingConfig,
        rng: np.random.Generator,
    ) -> ModelRunResult:
        values = _prepare_series(series)
        raw = self._project(values, config, rng)
        result = self._package(raw, config, self._metrics(config))
        logger.info(
            "%s run: history=%d horizon=%d mean=%.1f",
            self.algorithm.value,
            values.size,
            config.horizon,
            float(np.mean(result.predicted_demand)),
        )
        return result

    def _project(self, values: np.ndarray, config: ForecastingConfig, rng: np.random.Generator) -> np.ndarray:
        raise NotImplementedError

    def _band(self, config: ForecastingConfig) -> float:
        return _fraction(config, "confidenceBand", self.band)

    def _jitter(self, config: ForecastingConfig, rng: np.random.Generator, size: int) -> np.ndarray:
        noise = _fraction(config, "noise", self.noise, allow_one=False)
        if noise == 0:
            return np.ones(size, dtype="float64")
        return rng.uniform(1.0 - noise, 1.0 + noise, size)

    def _metrics(self, config: ForecastingConfig) -> ModelMetrics:
        overrides = config.parameters.get("modelMetrics") or {}
        return ModelMetrics(**{**self.metrics, **overrides})

    def _package(self, raw: np.ndarray, config: ForecastingConfig, metrics: ModelMetrics) -> ModelRunResult:
        projected = np.maximum(np.asarray(raw, dtype="float64"), 0.0)
        band = self._band(config)
        return ModelRunResult(
            predicted_demand=round_half_up(projected).tolist(),
            confidence_interval=ConfidenceInterval(
                lower=round_half_up(projected * (1.0 - band)).tolist(),
                upper=round_half_up(projected * (1.0 + band)).tolist(),
            ),
            model_metrics=metrics,
        )


class LSTMRunner(ModelRunner):
    """Last value projected along the trend, scaled by step/30, with the weekly index."""

    algorithm = ForecastAlgorithm.lstm
    band = 0.15
    noise = 0.10
    metrics = {"mape": 5.2, "rmse": 12.3, "mae": 8.7, "r2": 0.89}

    def _project(self, values, config, rng):
        trend = calculate_trend(values)
        pattern = extract_seasonal_pattern(values)
        steps = np.arange(config.horizon)
        base = values[-1] * (1.0 + trend * (steps + 1) / 30.0)
        return base * pattern[steps % pattern.size] * self._jitter(config, rng, config.horizon)


class ARIMARunner(ModelRunner):
    algorithm = ForecastAlgorithm.arima
    band = 0.20
    noise = 0.05
    metrics = {"mape": 7.8, "rmse": 15.6, "mae": 11.2, "r2": 0.82}
    trend_damping = 1.0

    def _project(self, values, config, rng):
        trend = calculate_trend(values) * self.trend_damping
        pattern = extract_seasonal_pattern(values)
        steps = np.arange(config.horizon)
        return values[-1] * (1.0 + trend) * pattern[steps % 7] * self._jitter(config, rng, config.horizon)


class ProphetRunner(ARIMARunner):
    """ARIMA-style projection with the trend dampened to 80%."""

    algorithm = ForecastAlgorithm.prophet
    band = 0.13
    noise = 0.03
    metrics = {"mape": 6.3, "rmse": 13.1, "mae": 9.4, "r2": 0.86}
    trend_damping = 0.8


class ExponentialSmoothingRunner(ModelRunner):
    algorithm = ForecastAlgorithm.exponential_smoothing
    band = 0.18
    noise = 0.02
    metrics = {"mape": 8.9, "rmse": 16.7, "mae": 12.8, "r2": 0.79}
    alpha = 0.3

    def _project(self, values, config, rng):
        alpha = _fraction(config, "alpha", self.alpha)
        jitter = self._jitter(config, rng, config.horizon)
        smoothed = float(values[-1])
        predictions: List[float] = []
        for step in range(config.horizon):
            prediction = smoothed * jitter[step]
            predictions.append(prediction)
            smoothed = alpha * prediction + (1.0 - alpha) * smoothed
        return np.asarray(predictions, dtype="float64")


class EnsembleRunner(ModelRunner):
    """Weighted combination of member runners, awaited concurrently."""

    algorithm = ForecastAlgorithm.ensemble
    band = 0.12
    noise = 0.0
    metrics = {"mape": 4.1, "rmse": 9.8, "mae": 6.5, "r2": 0.92}

    def members(self, config: ForecastingConfig) -> Tuple[List[ForecastAlgorithm], List[float]]:
        names = config.parameters.get("models") or [m.value for m in DEFAULT_ENSEMBLE_MODELS]
        models: List[ForecastAlgorithm] = []
        for name in names:
            runner = resolve_runner(name)
            if runner.algorithm == ForecastAlgorithm.ensemble:
                raise UnsupportedAlgorithm(f"{name} (nested ensemble)")
            models.append(runner.algorithm)

        raw_weights: Any = config.parameters.get("weights")
        if raw_weights is None:
            raw_weights = list(DEFAULT_ENSEMBLE_WEIGHTS)
        try:
            weights = [float(w) for w in raw_weights]
        except (TypeError, ValueError):
            raise InvalidWeights(raw_weights, "weights must be numbers")

        if len(weights) != len(models):
            raise InvalidWeights(weights, f"expected {len(models)} weights, got {len(weights)}")
        if any(w < 0 for w in weights):
            raise InvalidWeights(weights, "weights must be non-negative")
        if abs(sum(weights) - 1.0) > WEIGHT_TOLERANCE:
            logger.warning("Rejecting ensemble weights %s for config %s", weights, config.id)
            raise InvalidWeights(weights, f"weights sum to {sum(weights):.3f}, expected 1.0")
        return models, weights

    async def run(self, series, config, rng):
        values = _prepare_series(series)
        models, weights = self.members(config)

        results = await asyncio.gather(*(RUNNERS[m].run(values, config, rng) for m in models))

        stacked = np.asarray([r.predicted_demand for r in results], dtype="float64")
        combined = np.asarray(weights, dtype="float64") @ stacked

        result = self._package(combined, config, self._best_metrics(config, results))
        logger.info(
            "ensemble run: members=%s weights=%s horizon=%d mean=%.1f",
            [m.value for m in models],
            weights,
            config.horizon,
            float(np.mean(result.predicted_demand)),
        )
        return result

    def _best_metrics(self, config: ForecastingConfig, results: Sequence[ModelRunResult]) -> ModelMetrics:
        candidates = [self._metrics(config)] + [r.model_metrics for r in results]
        return ModelMetrics(
            mape=min(m.mape for m in candidates),
            rmse=min(m.rmse for m in candidates),
            mae=min(m.mae for m in candidates),
            r2=max(m.r2 for m in candidates),
        )


RUNNERS: Dict[ForecastAlgorithm, ModelRunner] = {
    ForecastAlgorithm.lstm: LSTMRunner(),
    ForecastAlgorithm.arima: ARIMARunner(),
    ForecastAlgorithm.prophet: ProphetRunner(),
    ForecastAlgorithm.exponential_smoothing: ExponentialSmoothingRunner(),
    ForecastAlgorithm.ensemble: EnsembleRunner(),
}


def resolve_runner(algorithm: str) -> ModelRunner:
    try:
        return RUNNERS[ForecastAlgorithm(algorithm)]
    except (ValueError, KeyError):
        raise UnsupportedAlgorithm(str(algorithm))
