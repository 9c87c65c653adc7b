"""
Monthly adverse-weather aggregation.

═══════════════════════════════════════════════════════════════════════════
ADVERSE DAY RULES
═══════════════════════════════════════════════════════════════════════════

A day is adverse when any defined reading breaches a threshold:

    precipitation_sum          > 5 mm
    temperature_2m_max         < 5 °C  or  > 32 °C
    wind_speed_10m_max         > 25 km/h
    precipitation_probability  > 60 %      (forecast only)

A day counts toward the denominator when at least one of those readings
is defined. Days with no reading at all are ignored.

═══════════════════════════════════════════════════════════════════════════
PIPELINE
═══════════════════════════════════════════════════════════════════════════

    DailySeries ──group_by_month──▶ {month: MonthBucket}
                ──aggregate_monthly──▶ [MonthStat × 12]  (Jan → Dec)
    forecast    ──blend_forecast────▶ [MonthStat × 12]  (0.7 hist + 0.3 fc)
                ──select_probability──▶ headline int

Ratios are clamped to [5, 95] so no month is ever reported as certain
or impossible. A month with no countable day reports 50.

Everything here is pure: identical input yields identical output.
═══════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .models import (
    AlignmentMode,
    DEFAULT_PROBABILITY,
    DailySeries,
    MonthBucket,
    MonthStat,
    month_label,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ADVERSE_PRECIPITATION_MM = 5.0
COLD_TEMPERATURE_C = 5.0
HOT_TEMPERATURE_C = 32.0
ADVERSE_WIND_KMH = 25.0
ADVERSE_PRECIPITATION_PROBABILITY_PCT = 60.0

MIN_PROBABILITY = 5
MAX_PROBABILITY = 95

HISTORICAL_WEIGHT = 0.7
FORECAST_WEIGHT = 0.3


# ---------------------------------------------------------------------------
# Arithmetic helpers
# ---------------------------------------------------------------------------

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from -inf (2.5 → 3)."""
    return int(math.floor(value + 0.5))


def clamp_probability(value: int) -> int:
    return min(max(value, MIN_PROBABILITY), MAX_PROBABILITY)


def _mean_1dp(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return round_half_up(float(np.mean(values)) * 10) / 10


def is_adverse(
    temperature: Optional[float],
    precipitation: Optional[float],
    wind_speed: Optional[float],
    precipitation_probability: Optional[float] = None,
) -> bool:
    """True if any defined reading breaches its threshold."""
    if precipitation is not None and precipitation > ADVERSE_PRECIPITATION_MM:
        return True
    if temperature is not None and (
        temperature < COLD_TEMPERATURE_C or temperature > HOT_TEMPERATURE_C
    ):
        return True
    if wind_speed is not None and wind_speed > ADVERSE_WIND_KMH:
        return True
    if (
        precipitation_probability is not None
        and precipitation_probability > ADVERSE_PRECIPITATION_PROBABILITY_PCT
    ):
        return True
    return False


# ---------------------------------------------------------------------------
# Grouping & counting
# ---------------------------------------------------------------------------

def group_by_month(series: DailySeries) -> Dict[int, MonthBucket]:
    """Bucket every record by calendar month (1-12), merging years."""
    buckets: Dict[int, MonthBucket] = {}
    for record in series.records():
        bucket = buckets.get(record.month)
        if bucket is None:
            bucket = buckets[record.month] = MonthBucket(month=record.month)
        bucket.add(record)
    return buckets


def _at(values: Sequence[float], index: int) -> Optional[float]:
    return values[index] if index < len(values) else None


def count_adverse_days(
    bucket: MonthBucket,
    mode: AlignmentMode = AlignmentMode.POSITIONAL,
    use_precipitation_probability: bool = False,
) -> Tuple[int, int]:
    """
    Return (adverse, total) for one month bucket.

    POSITIONAL walks index 0..max(len(field sequences)) so the readings
    checked together share a position, not necessarily a date.
    BY_DATE checks each calendar day's own readings.
    """
    adverse = 0
    total = 0

    if mode is AlignmentMode.BY_DATE:
        rows = [
            (
                d.temperature_max,
                d.precipitation_sum,
                d.wind_speed_max,
                d.precipitation_probability if use_precipitation_probability else None,
            )
            for d in bucket.days
        ]
    else:
        probs = bucket.precipitation_probabilities if use_precipitation_probability else []
        length = max(
            len(bucket.temperatures),
            len(bucket.precipitation),
            len(bucket.wind_speeds),
            len(probs),
        )
        rows = [
            (
                _at(bucket.temperatures, i),
                _at(bucket.precipitation, i),
                _at(bucket.wind_speeds, i),
                _at(probs, i),
            )
            for i in range(length)
        ]

    for temperature, precipitation, wind, precip_prob in rows:
        if temperature is None and precipitation is None and wind is None and precip_prob is None:
            continue
        total += 1
        if is_adverse(temperature, precipitation, wind, precip_prob):
            adverse += 1

    return adverse, total


def adverse_ratio(adverse: int, total: int) -> int:
    """Clamped percent of adverse days; 50 when nothing was countable."""
    if total == 0:
        return DEFAULT_PROBABILITY
    return clamp_probability(round_half_up(adverse / total * 100))


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------

def build_monthly_stats(
    series: DailySeries,
    mode: AlignmentMode = AlignmentMode.POSITIONAL,
) -> List[MonthStat]:
    """Twelve MonthStats, Jan → Dec, from a historical daily series."""
    buckets = group_by_month(series)
    stats: List[MonthStat] = []

    for month in range(1, 13):
        bucket = buckets.get(month)
        if bucket is None:
            stats.append(MonthStat(month=month_label(month), probability=DEFAULT_PROBABILITY))
            continue

        adverse, total = count_adverse_days(bucket, mode)
        stat = MonthStat(
            month=bucket.label,
            probability=adverse_ratio(adverse, total),
            avg_temperature=_mean_1dp(bucket.temperatures),
            avg_precipitation=_mean_1dp(bucket.precipitation),
            avg_wind_speed=_mean_1dp(bucket.wind_speeds),
            adverse_days=adverse,
            total_days=total,
        )
        logger.debug(
            "%s: %d/%d adverse days = %d%%",
            stat.month, adverse, total, stat.probability,
        )
        stats.append(stat)

    return stats


def select_probability(monthly: Sequence[MonthStat], target_date: date) -> int:
    """Probability of the month containing `target_date` (50 if missing)."""
    label = month_label(target_date.month)
    for stat in monthly:
        if stat.month == label:
            return stat.probability
    return DEFAULT_PROBABILITY


def aggregate_monthly(
    series: DailySeries,
    target_date: date,
    mode: AlignmentMode = AlignmentMode.POSITIONAL,
) -> Tuple[int, List[MonthStat]]:
    """Historical MonthStats plus the probability for `target_date`'s month."""
    monthly = build_monthly_stats(series, mode)
    return select_probability(monthly, target_date), monthly


def blend_probability(historical: int, forecast: float) -> int:
    return clamp_probability(
        round_half_up(historical * HISTORICAL_WEIGHT + forecast * FORECAST_WEIGHT)
    )


def blend_forecast(
    monthly: Sequence[MonthStat],
    forecast: DailySeries,
    mode: AlignmentMode = AlignmentMode.POSITIONAL,
) -> List[MonthStat]:
    """
    Replace the probability of every month covered by the forecast with
    a 70/30 blend of historical and forecast adverse ratios.

    Months outside the forecast window, or whose forecast days carry no
    reading at all, keep the historical value. Input is not mutated.
    """
    buckets = group_by_month(forecast)
    forecast_ratios: Dict[str, float] = {}

    for bucket in buckets.values():
        adverse, total = count_adverse_days(
            bucket, mode, use_precipitation_probability=True,
        )
        if total == 0:
            continue
        forecast_ratios[bucket.label] = adverse / total * 100

    blended: List[MonthStat] = []
    for stat in monthly:
        ratio = forecast_ratios.get(stat.month)
        if ratio is None:
            blended.append(stat)
            continue
        new_probability = blend_probability(stat.probability, ratio)
        logger.debug(
            "%s: blended %d%% (hist) with %.1f%% (forecast) → %d%%",
            stat.month, stat.probability, ratio, new_probability,
        )
        blended.append(replace(stat, probability=new_probability))

    return blended
