from typing import List

from fastapi import APIRouter, Depends

from ...models.diagnostics import ForecastComparison, SeasonalAnalysis, TrendAnalysis
from ...services.forecasting_service import ForecastService, get_forecast_service


router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])


@router.get("/{product_id}/{plant_id}/comparison", response_model=List[ForecastComparison])
async def forecast_comparison(
    product_id: str,
    plant_id: str,
    service: ForecastService = Depends(get_forecast_service),
) -> List[ForecastComparison]:
    return await service.get_forecast_comparison(product_id, plant_id)


@router.get("/{product_id}/{plant_id}/seasonal", response_model=List[SeasonalAnalysis])
async def seasonal_analysis(
    product_id: str,
    plant_id: str,
    service: ForecastService = Depends(get_forecast_service),
) -> List[SeasonalAnalysis]:
    return await service.get_seasonal_analysis(product_id, plant_id)


@router.get("/{product_id}/{plant_id}/trend", response_model=List[TrendAnalysis])
async def trend_analysis(
    product_id: str,
    plant_id: str,
    service: ForecastService = Depends(get_forecast_service),
) -> List[TrendAnalysis]:
    return await service.get_trend_analysis(product_id, plant_id)
