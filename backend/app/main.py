import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.errors import ForecastingError
from .api.v1.routes_forecast import router as forecast_router
from .api.v1.routes_data import router as data_router
from .api.v1.routes_diagnostics import router as diagnostics_router


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ForecastingError)
async def forecasting_error_handler(request: Request, exc: ForecastingError) -> JSONResponse:
    logger.warning("%s on %s: %s", exc.__class__.__name__, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": jsonable_encoder(exc.to_dict())},
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/")
async def root() -> dict:
    return {"app": settings.app_name, "api_v1_prefix": settings.api_v1_prefix}


app.include_router(forecast_router, prefix=settings.api_v1_prefix)
app.include_router(data_router, prefix=settings.api_v1_prefix)
app.include_router(diagnostics_router, prefix=settings.api_v1_prefix)
