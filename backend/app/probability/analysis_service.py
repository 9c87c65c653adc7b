"""
Weather probability analysis — orchestration.

═══════════════════════════════════════════════════════════════════════════
FLOW (one invocation)
═══════════════════════════════════════════════════════════════════════════

    Idle ─▶ Fetching ─┬─ historical ok ─▶ Analyzing ─┬─ forecast ok ─▶ Blending ─▶ Done (combined)
                      │                               └─ forecast failed ─────────▶ Done (historical)
                      └─ historical failed / empty ─▶ DefaultFallback ──────────▶ Done (default)

Historical and forecast requests are issued together and both are
awaited until settled; one failing never cancels the other. Each is
bounded by WEATHER_FETCH_TIMEOUT. There are no retries: an invocation
either uses the best data it got or falls back to DEFAULT_MONTHLY_DATA.
Fetch failures never escape `analyze()`.

═══════════════════════════════════════════════════════════════════════════
SUPERSESSION
═══════════════════════════════════════════════════════════════════════════

Every call to `analyze()` takes the next generation number. When a newer
analysis has started before an older one finishes, the older result is
stale: `is_current(result.generation)` is False and `analyze_latest()`
returns None for it.
═══════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from backend.app.core.config import settings
from backend.app.core.errors import EmptyPayloadError, WeatherOddsError

from .aggregator import aggregate_monthly, blend_forecast, select_probability
from .forecast_service import ForecastService
from .historical_service import HistoricalWeatherService, history_window
from .models import (
    AlignmentMode,
    AnalysisResult,
    DEFAULT_MONTHLY_DATA,
    DEFAULT_PROBABILITY,
    DailySeries,
    DataSource,
)

logger = logging.getLogger(__name__)


def _placeholder_payload(latitude: float, longitude: float) -> Dict[str, Any]:
    """Empty archive-shaped payload reported when the history fetch failed."""
    return {
        "latitude": latitude,
        "longitude": longitude,
        "elevation": 0,
        "timezone": "UTC",
        "timezone_abbreviation": "UTC",
        "daily": {"time": []},
        "daily_units": {},
    }


class AnalysisService:
    """
    Fetch → aggregate → blend → select.

    Usage:
        service = AnalysisService()
        result = await service.analyze(48.85, 2.35, date(2027, 7, 14), ["precipitation"])
        print(result.probability, result.data_source.value)
        await service.close()
    """

    def __init__(
        self,
        historical_service: Optional[HistoricalWeatherService] = None,
        forecast_service: Optional[ForecastService] = None,
        alignment_mode: Optional[AlignmentMode] = None,
        fetch_timeout: Optional[float] = None,
    ):
        self.historical_service = historical_service or HistoricalWeatherService()
        self.forecast_service = forecast_service or ForecastService()
        self.alignment_mode = AlignmentMode(alignment_mode or settings.ALIGNMENT_MODE)
        self.fetch_timeout = (
            settings.WEATHER_FETCH_TIMEOUT if fetch_timeout is None else fetch_timeout
        )
        self._generation = 0

    @property
    def generation(self) -> int:
        """Generation number of the most recently started analysis."""
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def close(self) -> None:
        await self.historical_service.close()
        await self.forecast_service.close()

    async def _bounded(self, awaitable: Awaitable[Dict[str, Any]]) -> Dict[str, Any]:
        if self.fetch_timeout and self.fetch_timeout > 0:
            return await asyncio.wait_for(awaitable, timeout=self.fetch_timeout)
        return await awaitable

    @staticmethod
    def _log_failure(source: str, exc: BaseException) -> None:
        if isinstance(exc, WeatherOddsError):
            logger.warning("%s fetch failed: %s", source, exc.message)
        elif isinstance(exc, asyncio.TimeoutError):
            logger.warning("%s fetch timed out", source)
        else:
            logger.error("%s fetch raised unexpectedly: %r", source, exc, exc_info=exc)

    def _default_result(
        self,
        target_date: date,
        generation: int,
        historical_payload: Dict[str, Any],
        forecast_payload: Optional[Dict[str, Any]],
    ) -> AnalysisResult:
        logger.warning("Using default monthly estimates (analysis #%d)", generation)
        return AnalysisResult(
            probability=DEFAULT_PROBABILITY,
            monthly_data=list(DEFAULT_MONTHLY_DATA),
            data_source=DataSource.DEFAULT,
            target_date=target_date,
            historical_data=historical_payload,
            forecast_data=forecast_payload,
            generation=generation,
        )

    async def analyze(
        self,
        latitude: float,
        longitude: float,
        target_date: date,
        variables: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisResult:
        """
        Run one full analysis.

        Args:
            latitude, longitude: location in decimal degrees
            target_date: date whose month yields the headline probability
            variables: user-facing variable labels (see variables.py)
            now: reference time for the fetch windows (defaults to wall clock)

        Returns:
            AnalysisResult; `data_source` is DEFAULT on any history failure.
        """
        self._generation += 1
        generation = self._generation

        now = now or datetime.now()
        labels: List[str] = list(variables or [])
        start_date, end_date = history_window(now)

        logger.info(
            "Analysis #%d for (%.4f, %.4f) target=%s window=%s→%s variables=%s",
            generation, latitude, longitude, target_date, start_date, end_date,
            ",".join(labels) or "default",
            extra={"lat": latitude, "lon": longitude, "generation": generation},
        )

        historical, forecast = await asyncio.gather(
            self._bounded(self.historical_service.fetch(
                latitude, longitude, start_date, end_date, labels,
            )),
            self._bounded(self.forecast_service.fetch(latitude, longitude, labels)),
            return_exceptions=True,
        )

        if isinstance(forecast, BaseException):
            self._log_failure("Forecast", forecast)
            forecast = None

        if isinstance(historical, EmptyPayloadError):
            self._log_failure("Historical", historical)
            return self._default_result(
                target_date, generation,
                historical.payload or _placeholder_payload(latitude, longitude), forecast,
            )

        if isinstance(historical, BaseException):
            self._log_failure("Historical", historical)
            return self._default_result(
                target_date, generation,
                _placeholder_payload(latitude, longitude), forecast,
            )

        series = DailySeries.from_payload(historical)
        if series.is_empty:
            logger.error("Historical payload has no dated records (analysis #%d)", generation)
            return self._default_result(target_date, generation, historical, forecast)

        probability, monthly = aggregate_monthly(series, target_date, self.alignment_mode)
        data_source = DataSource.HISTORICAL

        if forecast is not None:
            monthly = blend_forecast(
                monthly, DailySeries.from_payload(forecast), self.alignment_mode,
            )
            probability = select_probability(monthly, target_date)
            data_source = DataSource.COMBINED

        logger.info(
            "Analysis #%d done: %d%% for %s from %d days (%s)",
            generation, probability, target_date, len(series), data_source.value,
            extra={"probability": probability, "data_source": data_source.value},
        )

        return AnalysisResult(
            probability=probability,
            monthly_data=monthly,
            data_source=data_source,
            target_date=target_date,
            historical_data=historical,
            forecast_data=forecast,
            generation=generation,
        )

    async def analyze_latest(
        self,
        latitude: float,
        longitude: float,
        target_date: date,
        variables: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[AnalysisResult]:
        """Like `analyze()`, but None if a newer analysis started meanwhile."""
        result = await self.analyze(latitude, longitude, target_date, variables, now)
        if not self.is_current(result.generation):
            logger.info(
                "Discarding stale analysis #%d (latest is #%d)",
                result.generation, self._generation,
            )
            return None
        return result
