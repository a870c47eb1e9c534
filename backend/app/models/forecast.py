from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ForecastAlgorithm(str, Enum):
    lstm = "lstm"
    arima = "arima"
    prophet = "prophet"
    ensemble = "ensemble"
    exponential_smoothing = "exponential_smoothing"


class TrendDirection(str, Enum):
    increasing = "increasing"
    decreasing = "decreasing"
    stable = "stable"


class RecommendationType(str, Enum):
    production = "production"
    procurement = "procurement"
    inventory = "inventory"
    pricing = "pricing"


class Impact(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class ForecastingConfig(CamelModel):
    id: str
    name: str = ""
    # Kept as a plain string so an unknown algorithm surfaces as
    # UnsupportedAlgorithm when the config is run, not when it is stored.
    algorithm: str
    parameters: Dict[str, Any] = {}
    horizon: int = Field(..., gt=0)
    confidence_level: float = Field(90.0, ge=0, le=100)
    seasonality_detection: bool = True
    anomaly_detection: bool = True
    external_factors: bool = True
    auto_retrain: bool = False
    retrain_interval: int = 7
    last_retrain: Optional[datetime] = None
    accuracy: float = Field(0.0, ge=0, le=100)
    is_active: bool = True


class ConfidenceInterval(CamelModel):
    lower: List[int]
    upper: List[int]


class ModelMetrics(CamelModel):
    mape: float
    rmse: float
    mae: float
    r2: float


class ModelRunResult(CamelModel):
    predicted_demand: List[int]
    confidence_interval: ConfidenceInterval
    model_metrics: ModelMetrics


class SeasonalityInfo(CamelModel):
    detected: bool
    period: int
    strength: float = Field(..., ge=0, le=1)
    type: str = "multiplicative"


class TrendInfo(CamelModel):
    direction: TrendDirection
    slope: float
    strength: float = Field(..., ge=0, le=1)
    change_points: List[date] = []


class AnomalyInfo(CamelModel):
    detected: bool
    points: List[date] = []
    severity: List[float] = []


class ExternalFactors(CamelModel):
    weather: float
    holidays: float
    events: float
    economic: float


class CostBenefit(CamelModel):
    cost: float
    benefit: float
    roi: float

    @classmethod
    def from_amounts(cls, cost: float, benefit: float) -> "CostBenefit":
        roi = round((benefit - cost) / cost * 100) if cost else 0.0
        return cls(cost=cost, benefit=benefit, roi=roi)


class ForecastRecommendation(CamelModel):
    id: str
    type: RecommendationType
    title: str
    description: str
    impact: Impact
    confidence: float
    suggested_action: str
    expected_outcome: str
    cost_benefit: Optional[CostBenefit] = None


class Forecast(CamelModel):
    id: str
    product_id: str
    plant_id: str
    config_id: str
    period: str = "daily"
    start_date: datetime
    end_date: datetime
    predicted_demand: List[int]
    confidence_interval: ConfidenceInterval
    accuracy: float
    algorithm: ForecastAlgorithm
    last_updated: datetime
    seasonality: Optional[SeasonalityInfo] = None
    trend: TrendInfo
    anomalies: Optional[AnomalyInfo] = None
    model_metrics: ModelMetrics
    external_factors: Optional[ExternalFactors] = None
    recommendations: List[ForecastRecommendation] = []

    @model_validator(mode="after")
    def _check_interval(self) -> "Forecast":
        lower = self.confidence_interval.lower
        upper = self.confidence_interval.upper
        if not len(self.predicted_demand) == len(lower) == len(upper):
            raise ValueError("predictedDemand and confidence bounds must have equal length")
        for lo, value, hi in zip(lower, self.predicted_demand, upper):
            if not lo <= value <= hi:
                raise ValueError(f"confidence bounds {lo}..{hi} do not contain {value}")
        return self


class ForecastRequest(CamelModel):
    product_id: str = Field(..., description="Product identifier, e.g. Aluminium-Sheets-001")
    plant_id: str = Field(..., description="Plant identifier, e.g. plant001")
    config_id: Optional[str] = None
    # Optional caller-side deadline for the whole request
    timeout_seconds: Optional[float] = Field(None, gt=0)
