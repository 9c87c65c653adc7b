"""
Forecast Weather Fetcher.

Endpoint: https://api.open-meteo.com/v1/forecast

Daily fields follow the historical ones plus
`precipitation_probability_max`, which only the forecast offers.
The provider serves at most 16 forecast days.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import ValidationError

from .base_service import OpenMeteoService
from .variables import forecast_fields

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS = 16


class ForecastService(OpenMeteoService):
    """
    Fetch the short-range daily forecast for a coordinate.

    Usage:
        service = ForecastService()
        payload = await service.fetch(48.85, 2.35, ["precipitation"])
    """

    service_name = "open-meteo-forecast"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(base_url or settings.OPEN_METEO_FORECAST_URL, client, timeout)

    async def fetch(
        self,
        latitude: float,
        longitude: float,
        variables: Optional[Iterable[str]] = None,
        forecast_days: Optional[int] = None,
    ) -> Dict[str, Any]:
        days = settings.FORECAST_DAYS if forecast_days is None else forecast_days
        if not 1 <= days <= MAX_FORECAST_DAYS:
            raise ValidationError(
                f"forecast_days must be between 1 and {MAX_FORECAST_DAYS}",
                field="forecast_days", value=days,
            )

        params = {
            "latitude": latitude,
            "longitude": longitude,
            "daily": ",".join(forecast_fields(variables)),
            "timezone": "auto",
            "forecast_days": days,
        }

        data = await self._get_json(params)

        logger.info(
            "Forecast API success: %d days for lat=%.4f, lon=%.4f",
            len((data.get("daily") or {}).get("time") or []), latitude, longitude,
        )
        return data
