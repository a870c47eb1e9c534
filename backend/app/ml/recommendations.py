from datetime import date
from typing import List, Optional, Sequence

import uuid

import numpy as np

from ..models.forecast import (
    CostBenefit,
    Forecast,
    ForecastRecommendation,
    Impact,
    RecommendationType,
    TrendDirection,
)
from ..models.history import HistoricalData
from .history_generator import product_category


CONSTRUCTION_LEAD_MONTHS = {2, 3}
SEASON_SURGE_RATIO = 1.3
LOW_STOCK_RATIO = 0.4
EXCESS_STOCK_RATIO = 2.5


def _recommendation_id(rule: int) -> str:
    return f"rec_{uuid.uuid4().hex[:12]}_{rule}"


def generate_recommendations(
    forecast: Forecast,
    history: Sequence[HistoricalData],
    *,
    today: Optional[date] = None,
) -> List[ForecastRecommendation]:
    """Rule-based production, procurement, inventory and pricing advice for a forecast.

    Each rule is evaluated independently against the mean predicted demand
    and the latest observed stock and demand; every recommendation inherits
    the forecast accuracy as its confidence.
    """
    if not history or not forecast.predicted_demand:
        return []

    today = today or date.today()
    avg_predicted = float(np.mean(forecast.predicted_demand))
    latest = history[-1]
    current_stock = latest.stock
    current_demand = latest.demand

    recommendations: List[ForecastRecommendation] = []

    if today.month in CONSTRUCTION_LEAD_MONTHS and avg_predicted > current_demand * SEASON_SURGE_RATIO:
        if current_demand > 0:
            increase = f"{round((avg_predicted / current_demand - 1) * 100)}% demand increase"
        else:
            increase = "demand rising from a zero baseline"
        recommendations.append(
            ForecastRecommendation(
                id=_recommendation_id(1),
                type=RecommendationType.production,
                title="Prepare for Construction Season",
                description=f"Construction season approaching - predicted {increase}",
                impact=Impact.high,
                confidence=forecast.accuracy,
                suggested_action="Increase production capacity and stockpile inventory",
                expected_outcome="Meet seasonal construction demand and capture market share",
                cost_benefit=CostBenefit.from_amounts(75000, 250000),
            )
        )

    if current_stock < avg_predicted * LOW_STOCK_RATIO:
        recommendations.append(
            ForecastRecommendation(
                id=_recommendation_id(2),
                type=RecommendationType.procurement,
                title="Urgent Material Procurement",
                description="Insufficient stock for upcoming construction demand",
                impact=Impact.high,
                confidence=forecast.accuracy,
                suggested_action="Place bulk orders with suppliers and secure delivery commitments",
                expected_outcome="Prevent project delays and maintain customer relationships",
                cost_benefit=CostBenefit.from_amounts(50000, 180000),
            )
        )

    if current_stock > avg_predicted * EXCESS_STOCK_RATIO:
        recommendations.append(
            ForecastRecommendation(
                id=_recommendation_id(3),
                type=RecommendationType.inventory,
                title="Optimize Seasonal Inventory",
                description="Excess inventory detected - consider promotional pricing",
                impact=Impact.medium,
                confidence=forecast.accuracy,
                suggested_action="Implement promotional pricing and bulk discounts",
                expected_outcome="Reduce carrying costs and improve cash flow",
                cost_benefit=CostBenefit.from_amounts(15000, 60000),
            )
        )

    if product_category(forecast.product_id) == "aluminium" and forecast.trend.direction == TrendDirection.increasing:
        recommendations.append(
            ForecastRecommendation(
                id=_recommendation_id(4),
                type=RecommendationType.pricing,
                title="Aluminium Price Hedging",
                description="Rising aluminium demand detected - consider forward contracts",
                impact=Impact.medium,
                confidence=forecast.accuracy,
                suggested_action="Negotiate forward contracts with suppliers",
                expected_outcome="Lock in favorable prices and reduce cost volatility",
                cost_benefit=CostBenefit.from_amounts(25000, 80000),
            )
        )

    return recommendations
