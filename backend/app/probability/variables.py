"""
User-facing weather variable labels → Open-Meteo daily field names.

Labels are matched case-insensitively. Unknown labels are dropped
silently; if nothing recognisable remains the default field set is
requested so the aggregator always has temperature, precipitation and
wind to work with.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

HISTORICAL_VARIABLE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "temperature": ("temperature_2m_max", "temperature_2m_min", "temperature_2m_mean"),
    "precipitation": ("precipitation_sum", "rain_sum", "snowfall_sum", "precipitation_hours"),
    "wind": ("wind_speed_10m_max", "wind_gusts_10m_max", "wind_direction_10m_dominant"),
    "humidity": ("precipitation_hours",),
    "cloud cover": ("shortwave_radiation_sum",),
    "air quality": ("shortwave_radiation_sum",),
    "visibility": ("shortwave_radiation_sum",),
}

FORECAST_VARIABLE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "temperature": ("temperature_2m_max", "temperature_2m_min"),
    "precipitation": (
        "precipitation_sum", "rain_sum", "snowfall_sum", "precipitation_probability_max",
    ),
    "wind": ("wind_speed_10m_max", "wind_gusts_10m_max", "wind_direction_10m_dominant"),
    "humidity": ("precipitation_probability_max",),
    "cloud cover": ("precipitation_probability_max",),
    "air quality": ("uv_index_max",),
    "visibility": ("precipitation_probability_max",),
}

DEFAULT_HISTORICAL_FIELDS: Tuple[str, ...] = (
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "wind_speed_10m_max",
)

DEFAULT_FORECAST_FIELDS: Tuple[str, ...] = (
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "precipitation_probability_max",
    "wind_speed_10m_max",
)

SUPPORTED_VARIABLES: Tuple[str, ...] = tuple(HISTORICAL_VARIABLE_FIELDS)


def _resolve(
    variables: Optional[Iterable[str]],
    mapping: Dict[str, Tuple[str, ...]],
    default: Tuple[str, ...],
) -> List[str]:
    fields: List[str] = []
    for label in variables or ():
        for name in mapping.get(label.strip().lower(), ()):
            if name not in fields:
                fields.append(name)
    return fields or list(default)


def historical_fields(variables: Optional[Iterable[str]] = None) -> List[str]:
    return _resolve(variables, HISTORICAL_VARIABLE_FIELDS, DEFAULT_HISTORICAL_FIELDS)


def forecast_fields(variables: Optional[Iterable[str]] = None) -> List[str]:
    return _resolve(variables, FORECAST_VARIABLE_FIELDS, DEFAULT_FORECAST_FIELDS)


def normalize_variables(raw: Optional[Iterable[str]]) -> List[str]:
    """Split comma-joined query values and drop blanks."""
    labels: List[str] = []
    for item in raw or ():
        labels.extend(part.strip() for part in item.split(",") if part.strip())
    return labels
