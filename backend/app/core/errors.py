"""
Domain errors raised by the forecasting core.

Every error carries a human-readable message, a context mapping with the
identifiers involved, and the HTTP status the API layer answers with.
"""
from typing import Any, Dict, Optional

from starlette import status


class ForecastingError(Exception):
    """Base class for failures surfaced to callers of the forecasting core."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigNotFound(ForecastingError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, config_id: str):
        super().__init__(
            f"Forecasting configuration {config_id} not found",
            {"config_id": config_id},
        )


class NoHistoricalData(ForecastingError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, product_id: str, plant_id: str):
        super().__init__(
            f"No historical data found for {product_id}-{plant_id}",
            {"product_id": product_id, "plant_id": plant_id},
        )


class UnsupportedAlgorithm(ForecastingError):
    status_code = 422

    def __init__(self, algorithm: str):
        super().__init__(
            f"Unsupported algorithm: {algorithm}",
            {"algorithm": algorithm},
        )


class InvalidWeights(ForecastingError):
    status_code = 422

    def __init__(self, weights: Any, reason: str):
        super().__init__(
            f"Invalid ensemble weights {weights}: {reason}",
            {"weights": weights, "reason": reason},
        )


class InvalidParameter(ForecastingError):
    status_code = 422

    def __init__(self, parameter: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value {value!r} for parameter {parameter}: {reason}",
            {"parameter": parameter, "value": value, "reason": reason},
        )
