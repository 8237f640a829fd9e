"""Tests for growing-season weighting of cached months."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from garden_planner.analysis import (
    GROWING_SEASON_WEIGHT,
    OFF_SEASON_WEIGHT,
    compute_weighted_profile,
    growing_season_months,
    month_weight,
)
from garden_planner.analysis.seasonal import weighted_mean
from garden_planner.schemas import Hemisphere, MonthlyClimateRecord

REFRESHED = datetime(2025, 3, 10, tzinfo=UTC)


def _record(month: int, **scores: int | None) -> MonthlyClimateRecord:
    year = 2024 if month >= 3 else 2025
    return MonthlyClimateRecord(
        plan_id="p", year=year, month=month, last_refreshed_at=REFRESHED, **scores
    )


def _year(**scores: int | None) -> list[MonthlyClimateRecord]:
    return [_record(m, **scores) for m in range(1, 13)]


class TestGrowingSeason:
    """Growing-season months by hemisphere."""

    def test_northern(self) -> None:
        assert growing_season_months(Hemisphere.NORTHERN) == frozenset({4, 5, 6, 7, 8, 9})

    def test_southern_is_complement(self) -> None:
        assert growing_season_months(Hemisphere.SOUTHERN) == frozenset({10, 11, 12, 1, 2, 3})

    def test_weights(self) -> None:
        assert GROWING_SEASON_WEIGHT == 2
        assert OFF_SEASON_WEIGHT == 1
        assert month_weight(6, Hemisphere.NORTHERN) == 2
        assert month_weight(12, Hemisphere.NORTHERN) == 1
        assert month_weight(12, Hemisphere.SOUTHERN) == 2
        assert month_weight(6, Hemisphere.SOUTHERN) == 1


class TestWeightedMean:
    """Weighted mean helper."""

    def test_skips_none(self) -> None:
        assert weighted_mean([(10.0, 2), (None, 5), (40.0, 1)]) == pytest.approx(20.0)

    def test_all_none(self) -> None:
        assert weighted_mean([(None, 1), (None, 2)]) is None

    def test_empty(self) -> None:
        assert weighted_mean([]) is None


class TestComputeWeightedProfile:
    """Weighted seasonal profile from 12 cached months."""

    def test_uniform_months(self) -> None:
        records = _year(sunlight=67, humidity=70, precipitation=50, temperature=56)
        profile = compute_weighted_profile(records, Hemisphere.NORTHERN)
        assert profile.sunlight == pytest.approx(67.0)
        assert profile.humidity == pytest.approx(70.0)
        assert profile.precipitation == pytest.approx(50.0)
        assert profile.temperature == pytest.approx(56.0)

    def test_northern_formula(self) -> None:
        # growing months 80, the rest 20: (6*2*80 + 6*1*20) / 18 = 60
        records = [_record(m, sunlight=80 if 4 <= m <= 9 else 20) for m in range(1, 13)]
        profile = compute_weighted_profile(records, Hemisphere.NORTHERN)
        assert profile.sunlight == pytest.approx(60.0)

    def test_southern_flips_weights(self) -> None:
        records = [_record(m, sunlight=80 if 4 <= m <= 9 else 20) for m in range(1, 13)]
        profile = compute_weighted_profile(records, Hemisphere.SOUTHERN)
        # (6*1*80 + 6*2*20) / 18 = 40
        assert profile.sunlight == pytest.approx(40.0)

    def test_null_months_excluded_from_denominator(self) -> None:
        records = [_record(m, humidity=None if m in (6, 7) else 60) for m in range(1, 13)]
        profile = compute_weighted_profile(records, Hemisphere.NORTHERN)
        assert profile.humidity == pytest.approx(60.0)

    def test_parameter_without_data_is_none(self) -> None:
        profile = compute_weighted_profile(_year(sunlight=50), Hemisphere.NORTHERN)
        assert profile.sunlight == pytest.approx(50.0)
        assert profile.precipitation is None
        assert not profile.is_empty()

    def test_no_records(self) -> None:
        profile = compute_weighted_profile([], Hemisphere.NORTHERN)
        assert profile.is_empty()
        assert profile.temperature_c is None

    def test_temperature_celsius(self) -> None:
        profile = compute_weighted_profile(_year(temperature=56), Hemisphere.NORTHERN)
        assert profile.temperature_c == pytest.approx(14.8)

    def test_rejects_more_than_twelve(self) -> None:
        records = [*_year(sunlight=1), _record(3, sunlight=1)]
        with pytest.raises(ValueError, match="at most 12"):
            compute_weighted_profile(records, Hemisphere.NORTHERN)
