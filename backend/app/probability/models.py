"""
Data model for the weather probability estimator.

═══════════════════════════════════════════════════════════════════════════
ENTITIES
═══════════════════════════════════════════════════════════════════════════

DailySeries   — provider payload as parallel arrays keyed by `time`
DailyRecord   — one calendar date, every reading optional
MonthBucket   — all records of one month-of-year (years merged)
MonthStat     — derived per-month averages + adverse-day probability
AnalysisResult — headline probability, 12 MonthStats, provenance

Open-Meteo daily payload shape:

    {
      "latitude": 48.85, "longitude": 2.35, ...,
      "daily": {
        "time": ["2016-01-01", "2016-01-02", ...],
        "temperature_2m_max": [7.1, null, ...],
        "precipitation_sum": [0.4, 3.2, ...],
        ...
      }
    }

Any field array may be absent, shorter than `time`, or contain nulls.
All of these mean "no reading" for that day.
═══════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


MONTH_LABELS: Tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# Provider keys read for each DailyRecord field, first match wins.
# Older Open-Meteo responses spell wind as "windspeed_10m_max".
_PAYLOAD_KEYS: Dict[str, Tuple[str, ...]] = {
    "temperature_max": ("temperature_2m_max",),
    "temperature_min": ("temperature_2m_min",),
    "temperature_mean": ("temperature_2m_mean",),
    "precipitation_sum": ("precipitation_sum",),
    "wind_speed_max": ("wind_speed_10m_max", "windspeed_10m_max"),
    "precipitation_probability": ("precipitation_probability_max",),
}


def month_label(month: int) -> str:
    """Short English month name for a 1-based month number."""
    return MONTH_LABELS[month - 1]


class DataSource(str, Enum):
    """Which data sources contributed to an analysis result."""
    COMBINED = "combined"       # historical + forecast blend
    HISTORICAL = "historical"   # forecast unavailable
    DEFAULT = "default"         # canned fallback series


class AlignmentMode(str, Enum):
    """
    How adverse days are counted inside a month bucket.

    POSITIONAL walks the dense per-field sequences by index, so readings
    at the same position may come from different days once a field has
    gaps. BY_DATE evaluates every threshold against one calendar day.
    """
    POSITIONAL = "positional"
    BY_DATE = "by_date"


@dataclass(frozen=True)
class DailyRecord:
    """One calendar day of readings. Units: °C, mm, km/h, %."""
    date: date
    temperature_max: Optional[float] = None
    temperature_min: Optional[float] = None
    temperature_mean: Optional[float] = None
    precipitation_sum: Optional[float] = None
    wind_speed_max: Optional[float] = None
    precipitation_probability: Optional[float] = None  # forecast only

    @property
    def month(self) -> int:
        return self.date.month


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN / ±inf count as missing readings
    return number if math.isfinite(number) else None


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


@dataclass
class DailySeries:
    """Parallel daily arrays exactly as the provider returned them."""
    time: List[str] = field(default_factory=list)
    temperature_max: List[Any] = field(default_factory=list)
    temperature_min: List[Any] = field(default_factory=list)
    temperature_mean: List[Any] = field(default_factory=list)
    precipitation_sum: List[Any] = field(default_factory=list)
    wind_speed_max: List[Any] = field(default_factory=list)
    precipitation_probability: List[Any] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "DailySeries":
        """Build a series from a provider JSON body; tolerant of missing keys."""
        daily = payload.get("daily") if isinstance(payload, dict) else None
        if not isinstance(daily, dict):
            if daily is not None:
                logger.warning("Ignoring malformed daily block of type %s", type(daily).__name__)
            return cls()

        kwargs: Dict[str, List[Any]] = {"time": _as_list(daily.get("time"))}
        for attr, keys in _PAYLOAD_KEYS.items():
            for key in keys:
                if daily.get(key) is not None:
                    kwargs[attr] = _as_list(daily[key])
                    break
        return cls(**kwargs)

    def __len__(self) -> int:
        return len(self.time)

    @property
    def is_empty(self) -> bool:
        """True when no day carries a parseable date."""
        return next(self.records(), None) is None

    def _value_at(self, attr: str, index: int) -> Optional[float]:
        """Reading for `attr` on day `index`, or None when absent."""
        values = getattr(self, attr)
        if index >= len(values):
            return None
        return _as_float(values[index])

    def records(self) -> Iterator[DailyRecord]:
        """Yield one DailyRecord per parseable date, in payload order."""
        for i, raw_date in enumerate(self.time):
            try:
                # Calendar date only; any time-of-day suffix is ignored
                day = date.fromisoformat(str(raw_date)[:10])
            except ValueError:
                logger.warning("Skipping unparseable date %r at index %d", raw_date, i)
                continue
            yield DailyRecord(
                date=day,
                **{attr: self._value_at(attr, i) for attr in _PAYLOAD_KEYS},
            )


@dataclass
class MonthBucket:
    """
    All records that fall in one month-of-year, independent of year.

    The per-field sequences are dense: each holds only the defined
    readings of that field, in day order. `days` keeps every record so
    thresholds can be evaluated per calendar day.
    """
    month: int
    temperatures: List[float] = field(default_factory=list)
    precipitation: List[float] = field(default_factory=list)
    wind_speeds: List[float] = field(default_factory=list)
    precipitation_probabilities: List[float] = field(default_factory=list)
    days: List[DailyRecord] = field(default_factory=list)

    @property
    def label(self) -> str:
        return month_label(self.month)

    def add(self, record: DailyRecord) -> None:
        self.days.append(record)
        if record.temperature_max is not None:
            self.temperatures.append(record.temperature_max)
        if record.precipitation_sum is not None:
            self.precipitation.append(record.precipitation_sum)
        if record.wind_speed_max is not None:
            self.wind_speeds.append(record.wind_speed_max)
        if record.precipitation_probability is not None:
            self.precipitation_probabilities.append(record.precipitation_probability)


@dataclass(frozen=True)
class MonthStat:
    """Per-month statistics; `probability` is an integer percent in [5, 95]."""
    month: str
    probability: int
    avg_temperature: float = 0.0
    avg_precipitation: float = 0.0
    avg_wind_speed: float = 0.0
    adverse_days: int = 0
    total_days: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Presentation-layer shape (camelCase keys)."""
        return {
            "month": self.month,
            "probability": self.probability,
            "avgTemperature": self.avg_temperature,
            "avgPrecipitation": self.avg_precipitation,
            "avgWindSpeed": self.avg_wind_speed,
        }


# Canned series reported when no usable history could be fetched.
DEFAULT_MONTHLY_DATA: Tuple[MonthStat, ...] = (
    MonthStat("Jan", 45, 5.0, 50.0, 15.0),
    MonthStat("Feb", 42, 7.0, 45.0, 16.0),
    MonthStat("Mar", 38, 12.0, 40.0, 18.0),
    MonthStat("Apr", 35, 17.0, 35.0, 17.0),
    MonthStat("May", 30, 22.0, 30.0, 15.0),
    MonthStat("Jun", 25, 27.0, 20.0, 12.0),
    MonthStat("Jul", 22, 30.0, 15.0, 10.0),
    MonthStat("Aug", 24, 29.0, 18.0, 11.0),
    MonthStat("Sep", 28, 24.0, 25.0, 13.0),
    MonthStat("Oct", 35, 18.0, 35.0, 15.0),
    MonthStat("Nov", 40, 11.0, 45.0, 16.0),
    MonthStat("Dec", 43, 6.0, 48.0, 17.0),
)

DEFAULT_PROBABILITY = 50


@dataclass
class AnalysisResult:
    """Outcome of one fetch-and-analyze cycle."""
    probability: int
    monthly_data: List[MonthStat]
    data_source: DataSource
    target_date: date
    historical_data: Optional[Dict[str, Any]] = None
    forecast_data: Optional[Dict[str, Any]] = None
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability": self.probability,
            "monthlyData": [m.to_dict() for m in self.monthly_data],
            "dataSource": self.data_source.value,
        }
