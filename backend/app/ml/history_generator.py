"""
Synthetic daily history for building-materials products.

Demand for each (product, plant) pair combines a per-product base level with
category seasonality, a construction-season boost, weekday and weather
effects on site activity, and slow economic drift. Supply, stock, price,
weather, calendar events and economic indicators are generated alongside.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

import logging
import numpy as np
import pandas as pd

from ..models.diagnostics import Season
from ..models.history import EconomicIndicators, HistoricalData, WeatherObservation
from .signals import round_half_up


logger = logging.getLogger(__name__)


HISTORY_DAYS = 730
BASE_YEAR = 2020
DEFAULT_BASE_DEMAND = 500
DEFAULT_BASE_PRICE = 5.00


@dataclass(frozen=True)
class CategoryProfile:
    products: Tuple[str, ...]
    seasonal_factors: Dict[Season, float]
    # Construction window as 1-based calendar months, inclusive
    season_start: int
    season_end: int
    price_volatility: float


CATEGORY_PROFILES: Dict[str, CategoryProfile] = {
    "aluminium": CategoryProfile(
        products=("Aluminium-Sheets-001", "Aluminium-Profiles-002", "Aluminium-Coils-003"),
        seasonal_factors={Season.spring: 1.3, Season.summer: 1.1, Season.fall: 0.9, Season.winter: 0.7},
        season_start=3,
        season_end=10,
        price_volatility=0.15,
    ),
    "hardware": CategoryProfile(
        products=("Hardware-Screws-001", "Hardware-Bolts-002", "Hardware-Hinges-003"),
        seasonal_factors={Season.spring: 1.2, Season.summer: 1.0, Season.fall: 0.8, Season.winter: 0.6},
        season_start=2,
        season_end=11,
        price_volatility=0.08,
    ),
    "construction": CategoryProfile(
        products=("Steel-Beams-001", "Concrete-Mix-002", "Lumber-2x4-003"),
        seasonal_factors={Season.spring: 1.4, Season.summer: 1.2, Season.fall: 0.9, Season.winter: 0.5},
        season_start=3,
        season_end=10,
        price_volatility=0.12,
    ),
}

BASE_DEMAND: Dict[str, int] = {
    "Aluminium-Sheets-001": 500,
    "Aluminium-Profiles-002": 300,
    "Aluminium-Coils-003": 800,
    "Hardware-Screws-001": 2000,
    "Hardware-Bolts-002": 1500,
    "Hardware-Hinges-003": 800,
    "Steel-Beams-001": 200,
    "Concrete-Mix-002": 1000,
    "Lumber-2x4-003": 1500,
}

BASE_PRICES: Dict[str, float] = {
    "Aluminium-Sheets-001": 2.50,
    "Aluminium-Profiles-002": 3.20,
    "Aluminium-Coils-003": 1.80,
    "Hardware-Screws-001": 0.15,
    "Hardware-Bolts-002": 0.25,
    "Hardware-Hinges-003": 1.20,
    "Steel-Beams-001": 45.00,
    "Concrete-Mix-002": 8.50,
    "Lumber-2x4-003": 3.75,
}

# (month, first day, last day, name)
INDUSTRY_EVENTS: List[Tuple[int, int, int, str]] = [
    (3, 15, 20, "International Building Materials Expo"),
    (6, 10, 15, "Construction Industry Conference"),
    (10, 20, 25, "Hardware Manufacturers Show"),
    (7, 1, 7, "Summer Construction Sale"),
    (12, 20, 30, "Year-End Inventory Clearance"),
]

HOLIDAYS: Dict[Tuple[int, int], str] = {
    (12, 25): "Christmas",
    (1, 1): "New Year",
    (7, 4): "Independence Day",
    (9, 5): "Labor Day",
    (11, 24): "Thanksgiving",
}


def catalog_products() -> List[str]:
    return [p for profile in CATEGORY_PROFILES.values() for p in profile.products]


def product_category(product_id: str) -> str:
    if "Aluminium" in product_id:
        return "aluminium"
    if "Hardware" in product_id:
        return "hardware"
    return "construction"


def season_for_month(month0: int) -> Season:
    """Season for a 0-based month index."""
    if 2 <= month0 <= 4:
        return Season.spring
    if 5 <= month0 <= 7:
        return Season.summer
    if 8 <= month0 <= 10:
        return Season.fall
    return Season.winter


def events_on(day: date) -> List[str]:
    return [
        name
        for month, first, last, name in INDUSTRY_EVENTS
        if day.month == month and first <= day.day <= last
    ]


def holidays_on(day: date) -> List[str]:
    name = HOLIDAYS.get((day.month, day.day))
    return [name] if name else []


def weather_factor(temperature: np.ndarray, precipitation: np.ndarray) -> np.ndarray:
    return np.select(
        [(temperature < 0) | (temperature > 35), precipitation > 10, precipitation > 5],
        [0.6, 0.7, 0.85],
        default=1.0,
    )


def generate_history(
    product_id: str,
    plant_id: str,
    *,
    end_date: Optional[date] = None,
    days: int = HISTORY_DAYS,
    rng: Optional[np.random.Generator] = None,
) -> List[HistoricalData]:
    """Generate ``days`` consecutive daily records ending at ``end_date`` (default yesterday)."""
    if days <= 0:
        return []

    rng = rng if rng is not None else np.random.default_rng()
    end = end_date or (date.today() - timedelta(days=1))
    dates = pd.date_range(end=pd.Timestamp(end), periods=days, freq="D")
    n = len(dates)

    category = product_category(product_id)
    profile = CATEGORY_PROFILES[category]
    base_demand = BASE_DEMAND.get(product_id, DEFAULT_BASE_DEMAND)
    base_price = BASE_PRICES.get(product_id, DEFAULT_BASE_PRICE)

    month0 = dates.month.to_numpy() - 1
    years_since_base = dates.year.to_numpy() - BASE_YEAR
    phase = 2.0 * np.pi * month0 / 12.0
    annual = np.sin(phase)

    temperature = 15.0 + 20.0 * annual + rng.uniform(-5.0, 5.0, n)
    precipitation = np.maximum(0.0, 5.0 + 3.0 * np.sin(phase + np.pi) + rng.uniform(-2.5, 2.5, n))
    humidity = rng.uniform(40.0, 80.0, n)
    weather = weather_factor(temperature, precipitation)

    category_seasonal = np.array([profile.seasonal_factors[season_for_month(m)] for m in month0])
    in_construction_season = (month0 >= profile.season_start - 1) & (month0 <= profile.season_end - 1)
    seasonal = category_seasonal * np.where(in_construction_season, 1.2, 0.8) * (1.0 + 0.1 * annual)

    # Site conditions are sampled independently of the recorded weather
    site_temperature = 15.0 + 20.0 * annual + rng.uniform(-5.0, 5.0, n)
    site_precipitation = np.maximum(0.0, 5.0 + 3.0 * np.sin(phase + np.pi) + rng.uniform(-2.5, 2.5, n))
    weekend = dates.dayofweek.to_numpy() >= 5
    construction = np.where(weekend, 0.7, 1.0) * (1.0 + 0.3 * annual) * weather_factor(site_temperature, site_precipitation)

    economic = 1.0 + 0.02 * years_since_base + rng.uniform(-0.05, 0.05, n)

    demand = round_half_up(base_demand * seasonal * construction * economic * weather)
    supply = round_half_up(demand * rng.uniform(0.85, 1.15, n))
    stock = round_half_up(demand * rng.uniform(1.2, 2.0, n))

    commodity = 1.0 + rng.uniform(-0.5, 0.5, n) * profile.price_volatility
    price = np.round(
        base_price * commodity * (1.0 + 0.05 * annual) * (1.0 + 0.03 * years_since_base),
        2,
    )

    gdp = rng.uniform(2.0, 5.0, n)
    inflation = rng.uniform(2.0, 6.0, n)
    unemployment = rng.uniform(3.5, 7.5, n)
    construction_index = round_half_up(100 * (1.0 + 0.2 * annual) * (1.0 + 0.02 * years_since_base))
    housing_starts = round_half_up(1500 * (1.0 + 0.4 * annual) * (1.0 + 0.03 * years_since_base))
    building_permits = round_half_up(
        1800 * (1.0 + 0.3 * np.sin(2.0 * np.pi * (month0 + 1) / 12.0)) * (1.0 + 0.025 * years_since_base)
    )

    key = f"{product_id}-{plant_id}"
    records: List[HistoricalData] = []
    for i, ts in enumerate(dates):
        day = ts.date()
        records.append(
            HistoricalData(
                id=f"hist_{key}_{i}",
                product_id=product_id,
                plant_id=plant_id,
                date=day,
                demand=int(demand[i]),
                supply=int(supply[i]),
                stock=int(stock[i]),
                price=float(price[i]),
                weather=WeatherObservation(
                    temperature=float(temperature[i]),
                    humidity=float(humidity[i]),
                    precipitation=float(precipitation[i]),
                ),
                events=events_on(day),
                holidays=holidays_on(day),
                economic_indicators=EconomicIndicators(
                    gdp=float(gdp[i]),
                    inflation=float(inflation[i]),
                    unemployment=float(unemployment[i]),
                    construction_index=int(construction_index[i]),
                    housing_starts=int(housing_starts[i]),
                    building_permits=int(building_permits[i]),
                ),
            )
        )

    logger.info(
        "Generated history for %s: %d days from %s to %s, mean demand=%.1f",
        key,
        n,
        records[0].date,
        records[-1].date,
        float(demand.mean()),
    )
    return records
