"""
Weather probability estimation.

This package provides:
- Historical daily weather from the Open-Meteo Archive API
- Short-range daily forecast from the Open-Meteo Forecast API
- Monthly adverse-day aggregation and 70/30 forecast blending
- Orchestration with default-series fallback
- Place-name geocoding for coordinate lookup
"""

from .models import (
    AlignmentMode,
    AnalysisResult,
    DEFAULT_MONTHLY_DATA,
    DailyRecord,
    DailySeries,
    DataSource,
    MonthBucket,
    MonthStat,
)
from .aggregator import aggregate_monthly, blend_forecast, select_probability
from .historical_service import HistoricalWeatherService, history_window
from .forecast_service import ForecastService
from .geocoding_service import GeocodingResult, GeocodingService
from .analysis_service import AnalysisService

__all__ = [
    "AlignmentMode",
    "AnalysisResult",
    "DEFAULT_MONTHLY_DATA",
    "DailyRecord",
    "DailySeries",
    "DataSource",
    "MonthBucket",
    "MonthStat",
    "aggregate_monthly",
    "blend_forecast",
    "select_probability",
    "HistoricalWeatherService",
    "history_window",
    "ForecastService",
    "GeocodingResult",
    "GeocodingService",
    "AnalysisService",
]
