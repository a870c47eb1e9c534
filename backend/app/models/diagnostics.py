from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Season(str, Enum):
    spring = "spring"
    summer = "summer"
    fall = "fall"
    winter = "winter"


class TrendPeriod(str, Enum):
    short = "short"
    medium = "medium"
    long = "long"


class DiagnosticModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ForecastComparison(DiagnosticModel):
    id: str
    product_id: str
    plant_id: str
    date: date
    actual: int
    predicted: int
    algorithm: str
    error: int
    percentage_error: int


class SeasonalAnalysis(DiagnosticModel):
    id: str
    product_id: str
    plant_id: str
    season: Season
    year: int
    average_demand: int
    peak_demand: int
    low_demand: int
    seasonality_factor: float
    trend: float


class TrendAnalysis(DiagnosticModel):
    id: str
    product_id: str
    plant_id: str
    period: TrendPeriod
    start_date: date
    end_date: date
    direction: str
    slope: float
    strength: float
    confidence: float
    change_points: List[date] = []
    seasonality: bool
