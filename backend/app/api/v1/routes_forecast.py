import asyncio
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.forecast import Forecast, ForecastingConfig, ForecastRequest
from ...services.forecasting_service import ForecastService, get_forecast_service


router = APIRouter(tags=["forecast"])


@router.post("/forecast", response_model=Forecast)
async def get_forecast(
    payload: ForecastRequest,
    service: ForecastService = Depends(get_forecast_service),
) -> Forecast:
    call = service.get_forecast(payload.product_id, payload.plant_id, payload.config_id)
    if payload.timeout_seconds is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout=payload.timeout_seconds)
    except asyncio.TimeoutError:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Forecast generation timed out",
        )


@router.post("/forecast/generate", response_model=Forecast)
async def generate_forecast(
    payload: ForecastRequest,
    service: ForecastService = Depends(get_forecast_service),
) -> Forecast:
    return await service.generate_forecast(payload.product_id, payload.plant_id, payload.config_id)


@router.get("/forecast/configs", response_model=List[ForecastingConfig])
async def list_configs(
    service: ForecastService = Depends(get_forecast_service),
) -> List[ForecastingConfig]:
    return await service.get_forecasting_configs()


@router.put("/forecast/configs/{config_id}", response_model=ForecastingConfig)
async def update_config(
    config_id: str,
    config: ForecastingConfig,
    service: ForecastService = Depends(get_forecast_service),
) -> ForecastingConfig:
    if config.id != config_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Config id in path and body differ",
        )
    return await service.update_forecasting_config(config)
