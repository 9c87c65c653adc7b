"""
test_aggregator.py — monthly aggregation, forecast blending, selection.

Covers:
    • 12-entry Jan → Dec series for any input
    • Clamping to [5, 95] and the 50% no-data default
    • Adverse thresholds (precipitation, temperature, wind, precip probability)
    • Positional vs by-date alignment on sparse fields
    • 70/30 blending and months outside the forecast window
    • Purity (idempotent, inputs untouched)

Run with:
    pytest tests/test_aggregator.py -v
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pytest

from backend.app.probability.aggregator import (
    adverse_ratio,
    aggregate_monthly,
    blend_forecast,
    blend_probability,
    build_monthly_stats,
    clamp_probability,
    count_adverse_days,
    group_by_month,
    is_adverse,
    round_half_up,
    select_probability,
)
from backend.app.probability.models import (
    AlignmentMode,
    DailySeries,
    MONTH_LABELS,
    MonthStat,
)


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════

def _days(start: date, n: int) -> List[str]:
    return [(start + timedelta(days=i)).isoformat() for i in range(n)]


def _series(
    start: date,
    n: int,
    temp: Optional[List[Any]] = None,
    precip: Optional[List[Any]] = None,
    wind: Optional[List[Any]] = None,
    precip_prob: Optional[List[Any]] = None,
) -> DailySeries:
    daily: Dict[str, Any] = {"time": _days(start, n)}
    if temp is not None:
        daily["temperature_2m_max"] = temp
    if precip is not None:
        daily["precipitation_sum"] = precip
    if wind is not None:
        daily["wind_speed_10m_max"] = wind
    if precip_prob is not None:
        daily["precipitation_probability_max"] = precip_prob
    return DailySeries.from_payload({"daily": daily})


def _stat(months: List[MonthStat], label: str) -> MonthStat:
    return next(m for m in months if m.month == label)


JULY = date(2020, 7, 1)


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: Arithmetic helpers
# ═══════════════════════════════════════════════════════════════════════════

class TestRoundingAndClamping:

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(62.5) == 63
        assert round_half_up(62.49) == 62
        assert round_half_up(0.0) == 0

    def test_clamp_bounds(self):
        assert clamp_probability(0) == 5
        assert clamp_probability(100) == 95
        assert clamp_probability(42) == 42

    @pytest.mark.parametrize("adverse,total,expected", [
        (0, 0, 50),
        (0, 10, 5),
        (10, 10, 95),
        (3, 10, 30),
        (1, 3, 33),
        (2, 3, 67),
    ])
    def test_adverse_ratio(self, adverse, total, expected):
        assert adverse_ratio(adverse, total) == expected

    def test_blend_probability(self):
        assert blend_probability(80, 20) == 62
        assert blend_probability(5, 0) == 5
        assert blend_probability(95, 100) == 95


class TestIsAdverse:

    def test_nothing_defined_is_not_adverse(self):
        assert not is_adverse(None, None, None)

    def test_thresholds_are_strict(self):
        assert not is_adverse(5.0, 5.0, 25.0, 60.0)
        assert not is_adverse(32.0, None, None)

    def test_each_rule(self):
        assert is_adverse(None, 5.1, None)
        assert is_adverse(4.9, None, None)
        assert is_adverse(32.1, None, None)
        assert is_adverse(None, None, 25.1)
        assert is_adverse(None, None, None, 61.0)


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Monthly aggregation
# ═══════════════════════════════════════════════════════════════════════════

class TestBuildMonthlyStats:

    def test_always_twelve_months_in_order(self):
        series = _series(date(2021, 3, 10), 40, temp=[15.0] * 40)
        stats = build_monthly_stats(series)
        assert [s.month for s in stats] == list(MONTH_LABELS)

    def test_empty_series_yields_default_months(self):
        stats = build_monthly_stats(DailySeries())
        assert len(stats) == 12
        for s in stats:
            assert s.probability == 50
            assert s.avg_temperature == 0.0
            assert s.avg_precipitation == 0.0
            assert s.avg_wind_speed == 0.0

    def test_july_three_wet_days(self):
        precip = [6.0, 7.0, 8.0] + [0.0] * 7
        series = _series(JULY, 10, temp=[20.0] * 10, precip=precip, wind=[5.0] * 10)
        july = _stat(build_monthly_stats(series), "Jul")
        assert july.adverse_days == 3
        assert july.total_days == 10
        assert july.probability == 30

    def test_calm_month_clamps_to_floor(self):
        series = _series(JULY, 5, temp=[20.0] * 5, precip=[0.0] * 5, wind=[5.0] * 5)
        july = _stat(build_monthly_stats(series), "Jul")
        assert july.adverse_days == 0
        assert july.total_days == 5
        assert july.probability == 5

    def test_stormy_month_clamps_to_ceiling(self):
        series = _series(JULY, 4, wind=[40.0] * 4)
        assert _stat(build_monthly_stats(series), "Jul").probability == 95

    def test_month_without_records_is_fifty(self):
        series = _series(JULY, 3, temp=[20.0] * 3)
        aug = _stat(build_monthly_stats(series), "Aug")
        assert aug.probability == 50
        assert aug.avg_temperature == 0.0

    def test_years_are_merged(self):
        payload = {"daily": {
            "time": ["2019-07-01", "2020-07-01", "2021-07-01", "2021-08-01"],
            "precipitation_sum": [10.0, 0.0, 0.0, 0.0],
        }}
        july = _stat(build_monthly_stats(DailySeries.from_payload(payload)), "Jul")
        assert july.total_days == 3
        assert july.adverse_days == 1
        assert july.probability == 33

    def test_averages_use_each_field_independently(self):
        series = _series(
            JULY, 3,
            temp=[10.0, 20.0, 25.0],
            precip=[1.0],
            wind=[None, 12.0, 14.0],
        )
        july = _stat(build_monthly_stats(series), "Jul")
        assert july.avg_temperature == 18.3
        assert july.avg_precipitation == 1.0
        assert july.avg_wind_speed == 13.0

    def test_nulls_and_short_arrays_are_absent_readings(self):
        series = _series(JULY, 4, temp=[None, None], precip=[None])
        july = _stat(build_monthly_stats(series), "Jul")
        assert july.total_days == 0
        assert july.probability == 50

    def test_unparseable_dates_are_skipped(self):
        payload = {"daily": {
            "time": ["not-a-date", "2020-07-02"],
            "precipitation_sum": [50.0, 0.0],
        }}
        july = _stat(build_monthly_stats(DailySeries.from_payload(payload)), "Jul")
        # index alignment with the provider arrays is preserved
        assert july.total_days == 1
        assert july.adverse_days == 0

    def test_non_finite_readings_are_missing(self):
        payload = {"daily": {
            "time": ["2020-07-01", "2020-07-02", "2020-07-03"],
            "temperature_2m_max": [float("nan"), 20.0, float("inf")],
            "precipitation_sum": [float("-inf"), 0.0, 8.0],
        }}
        records = list(DailySeries.from_payload(payload).records())
        assert records[0].temperature_max is None
        assert records[0].precipitation_sum is None
        assert records[2].temperature_max is None
        july = _stat(build_monthly_stats(DailySeries.from_payload(payload)), "Jul")
        assert july.avg_temperature == 20.0
        assert 5 <= july.probability <= 95

    @pytest.mark.parametrize("payload", [
        {"daily": ["x"]},
        {"daily": "2020-07-01"},
        {"daily": {"time": "2020-07-01", "precipitation_sum": 9.0}},
        ["not", "a", "dict"],
        None,
    ])
    def test_malformed_payload_is_empty(self, payload):
        series = DailySeries.from_payload(payload)
        assert series.is_empty
        assert all(s.probability == 50 for s in build_monthly_stats(series))

    def test_all_dates_unparseable_is_empty(self):
        series = DailySeries.from_payload({"daily": {"time": ["bad", "worse"]}})
        assert len(series) == 2
        assert series.is_empty

    def test_legacy_wind_key_is_read(self):
        payload = {"daily": {"time": ["2020-07-01"], "windspeed_10m_max": [30.0]}}
        july = _stat(build_monthly_stats(DailySeries.from_payload(payload)), "Jul")
        assert july.adverse_days == 1

    def test_idempotent(self):
        series = _series(
            date(2020, 1, 1), 400,
            temp=[float(i % 40) for i in range(400)],
            precip=[float(i % 9) for i in range(400)],
            wind=[float(i % 30) for i in range(400)],
        )
        assert build_monthly_stats(series) == build_monthly_stats(series)

    def test_probabilities_always_in_range(self):
        series = _series(
            date(2020, 1, 1), 366,
            temp=[float((i * 7) % 45) - 5 for i in range(366)],
            precip=[float(i % 13) for i in range(366)],
        )
        for s in build_monthly_stats(series):
            assert 5 <= s.probability <= 95


class TestAlignmentModes:
    """Sparse fields: positional walk vs per-day evaluation."""

    def _sparse_july(self) -> DailySeries:
        # day 1: only precipitation (wet); day 2: only temperature (mild)
        return _series(JULY, 2, temp=[None, 20.0], precip=[10.0, None])

    def test_positional_pairs_readings_by_index(self):
        bucket = group_by_month(self._sparse_july())[7]
        assert count_adverse_days(bucket, AlignmentMode.POSITIONAL) == (1, 1)

    def test_by_date_keeps_days_separate(self):
        bucket = group_by_month(self._sparse_july())[7]
        assert count_adverse_days(bucket, AlignmentMode.BY_DATE) == (1, 2)

    def test_modes_agree_on_dense_data(self):
        series = _series(JULY, 6, temp=[20.0] * 6, precip=[0, 9, 0, 9, 0, 0], wind=[5.0] * 6)
        positional = build_monthly_stats(series, AlignmentMode.POSITIONAL)
        by_date = build_monthly_stats(series, AlignmentMode.BY_DATE)
        assert positional == by_date


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Blending & selection
# ═══════════════════════════════════════════════════════════════════════════

class TestBlendForecast:

    def _historical(self, july_probability: int = 80) -> List[MonthStat]:
        return [
            MonthStat(label, july_probability if label == "Jul" else 40, 20.0, 2.0, 10.0)
            for label in MONTH_LABELS
        ]

    def test_blend_eighty_with_twenty(self):
        # 1 of 5 forecast days adverse → 20%
        forecast = _series(JULY, 5, temp=[20.0] * 5, precip=[9.0, 0, 0, 0, 0])
        july = _stat(blend_forecast(self._historical(80), forecast), "Jul")
        assert july.probability == 62

    def test_months_outside_window_unchanged(self):
        historical = self._historical()
        forecast = _series(JULY, 5, precip=[9.0] * 5)
        blended = blend_forecast(historical, forecast)
        for before, after in zip(historical, blended):
            if before.month != "Jul":
                assert after == before

    def test_precipitation_probability_counts_for_forecast(self):
        forecast = _series(JULY, 2, temp=[20.0, 20.0], precip_prob=[70.0, 10.0])
        july = _stat(blend_forecast(self._historical(50), forecast), "Jul")
        # 50*0.7 + 50*0.3
        assert july.probability == 50

    def test_forecast_month_without_readings_keeps_history(self):
        forecast = _series(JULY, 3)
        july = _stat(blend_forecast(self._historical(80), forecast), "Jul")
        assert july.probability == 80

    def test_blend_formula_for_every_covered_month(self):
        historical = self._historical(70)
        # spans end of July into August
        forecast = _series(date(2026, 7, 25), 16, precip=[6.0 if i % 2 else 0.0 for i in range(16)])
        blended = blend_forecast(historical, forecast)
        for label in ("Jul", "Aug"):
            bucket = next(b for b in group_by_month(forecast).values() if b.label == label)
            adverse, total = count_adverse_days(bucket, use_precipitation_probability=True)
            expected = clamp_probability(round_half_up(
                _stat(historical, label).probability * 0.7 + adverse / total * 100 * 0.3
            ))
            assert _stat(blended, label).probability == expected

    def test_input_not_mutated_and_averages_kept(self):
        historical = self._historical(80)
        snapshot = list(historical)
        forecast = _series(JULY, 5, precip=[9.0] * 5)
        july = _stat(blend_forecast(historical, forecast), "Jul")
        assert historical == snapshot
        assert july.avg_temperature == 20.0
        assert july.avg_precipitation == 2.0


class TestSelection:

    def test_select_month_of_target(self):
        stats = [MonthStat(label, i + 10) for i, label in enumerate(MONTH_LABELS)]
        assert select_probability(stats, date(2027, 3, 31)) == 12

    def test_select_missing_month_defaults(self):
        assert select_probability([MonthStat("Jan", 20)], date(2027, 5, 1)) == 50

    def test_aggregate_monthly_returns_target_probability(self):
        precip = [6.0, 7.0, 8.0] + [0.0] * 7
        series = _series(JULY, 10, temp=[20.0] * 10, precip=precip, wind=[5.0] * 10)
        probability, monthly = aggregate_monthly(series, date(2031, 7, 20))
        assert probability == 30
        assert len(monthly) == 12
