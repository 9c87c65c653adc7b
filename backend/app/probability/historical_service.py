"""
Historical Weather Fetcher.

═══════════════════════════════════════════════════════════════════════════
OPEN-METEO ARCHIVE API
═══════════════════════════════════════════════════════════════════════════

Endpoint: https://archive-api.open-meteo.com/v1/archive

Query:
    latitude, longitude    decimal degrees
    start_date, end_date   YYYY-MM-DD (inclusive)
    daily                  comma-separated field list
    timezone               "auto" → dates are local calendar days

The archive trails real time by several days, so the analysis window
ends ARCHIVE_LAG_DAYS before "now" and starts on Jan 1 HISTORY_YEARS
back, giving every month of the year multiple samples.
═══════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Tuple

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import EmptyPayloadError

from .base_service import OpenMeteoService
from .variables import historical_fields

logger = logging.getLogger(__name__)


def history_window(
    now: datetime,
    years: Optional[int] = None,
    lag_days: Optional[int] = None,
) -> Tuple[date, date]:
    """(start, end) of the archive request for an analysis run at `now`."""
    years = settings.HISTORY_YEARS if years is None else years
    lag_days = settings.ARCHIVE_LAG_DAYS if lag_days is None else lag_days
    today = now.date()
    return date(today.year - years, 1, 1), today - timedelta(days=lag_days)


class HistoricalWeatherService(OpenMeteoService):
    """
    Fetch multi-year daily history for a coordinate.

    Usage:
        service = HistoricalWeatherService()
        payload = await service.fetch(48.85, 2.35, date(2016, 1, 1), date(2026, 10, 9))
        await service.close()
    """

    service_name = "open-meteo-archive"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(base_url or settings.OPEN_METEO_ARCHIVE_URL, client, timeout)

    async def fetch(
        self,
        latitude: float,
        longitude: float,
        start_date: date,
        end_date: date,
        variables: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """
        Return the raw archive payload.

        Raises:
            ExternalServiceError: transport failure or non-2xx status
            EmptyPayloadError: success status but an empty `time` array
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "daily": ",".join(historical_fields(variables)),
            "timezone": "auto",
        }
        logger.debug("Archive request %s", params)

        data = await self._get_json(params)

        days = len((data.get("daily") or {}).get("time") or [])
        if days == 0:
            logger.error(
                "Historical API returned 0 days for lat=%.4f, lon=%.4f (%s → %s)",
                latitude, longitude, start_date, end_date,
            )
            raise EmptyPayloadError(
                self.service_name, payload=data,
                start_date=start_date.isoformat(), end_date=end_date.isoformat(),
            )

        logger.info(
            "Historical API success: %d days for lat=%.4f, lon=%.4f (%s → %s)",
            days, latitude, longitude, start_date, end_date,
        )
        return data
