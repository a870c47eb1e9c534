from typing import List

from fastapi import APIRouter, Depends

from ...models.history import HistoricalData
from ...services.forecasting_service import ForecastService, get_forecast_service


router = APIRouter(tags=["data"])


@router.get("/history/{product_id}/{plant_id}", response_model=List[HistoricalData])
async def historical_data(
    product_id: str,
    plant_id: str,
    service: ForecastService = Depends(get_forecast_service),
) -> List[HistoricalData]:
    # Unknown pairs return an empty series rather than an error
    return await service.get_historical_data(product_id, plant_id)
