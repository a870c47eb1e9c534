from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WeatherObservation(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float
    humidity: float
    precipitation: float


class EconomicIndicators(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    gdp: float
    inflation: float
    unemployment: float
    construction_index: Optional[int] = None
    housing_starts: Optional[int] = None
    building_permits: Optional[int] = None


class HistoricalData(BaseModel):
    """One daily observation for a (product, plant) pair."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    product_id: str
    plant_id: str
    date: date
    demand: int = Field(..., ge=0)
    supply: int = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    price: float
    weather: Optional[WeatherObservation] = None
    events: List[str] = []
    holidays: List[str] = []
    economic_indicators: Optional[EconomicIndicators] = None
