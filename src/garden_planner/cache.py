"""Freshness-aware monthly climate cache per plan.

``ClimateCacheManager.ensure_fresh`` decides whether a plan's cached window
is stale, and if so fetches 12 months of daily archive data, aggregates it
per month (sum for precipitation, mean for everything else), normalizes
each month to 0-100 scores and replaces the plan's rows in one upsert.

Refreshes of one plan are serialized with a keyed lock; the staleness check
runs under that lock, so a trigger that waited on a concurrent refresh sees
the fresh rows and skips the upstream call.  A failed fetch writes nothing:
the previous rows stay readable as "stale but usable".
"""

from __future__ import annotations

import logging
import statistics
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from garden_planner.datasources.climate.archive import ClimateDataClient
from garden_planner.datasources.climate.client import DEFAULT_EMBARGO_DAYS
from garden_planner.datasources.climate.models import WINDOW_MONTHS, ClimateWindow
from garden_planner.datasources.climate.normalize import (
    PRECIP_CEILING_MM,
    normalize_humidity,
    normalize_precipitation,
    normalize_sunlight,
    normalize_temperature,
)
from garden_planner.schemas import CacheStatus, MonthlyClimateRecord, Plan, RefreshResult
from garden_planner.store import JsonPlanStore, PlanMissingLocationError

if TYPE_CHECKING:
    from garden_planner.config import Settings
    from garden_planner.datasources.climate.models import RawArchiveResponse
    from garden_planner.store import PlanStore

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS = timedelta(days=30)

_SECONDS_PER_HOUR = 3600


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class MonthlyAggregate:
    """Raw monthly aggregates; None where the month had no valid days."""

    year: int
    month: int
    sunshine_hours: float | None = None
    daylight_hours: float | None = None
    humidity_pct: float | None = None
    precipitation_mm: float | None = None
    temperature_c: float | None = None
    days: int = 0


def _mean(values: list[float]) -> float | None:
    return statistics.fmean(values) if values else None


def aggregate_months(raw: RawArchiveResponse, window: ClimateWindow) -> list[MonthlyAggregate]:
    """Fold daily archive values into one aggregate per window month.

    Days outside the window are ignored and null values are skipped, so a
    month's mean covers only the days that reported the variable.  Months
    with no data at all still get an (empty) aggregate.
    """
    buckets: dict[tuple[int, int], dict[str, list[float]]] = {
        key: {"sun": [], "day": [], "hum": [], "pre": [], "tmp": []} for key in window.months()
    }
    counts: dict[tuple[int, int], int] = dict.fromkeys(buckets, 0)

    for day in raw.days():
        key = (day.date.year, day.date.month)
        if day.date not in window or key not in buckets:
            continue
        bucket = buckets[key]
        counts[key] += 1
        for name, value in (
            ("sun", day.sunshine_s),
            ("day", day.daylight_s),
            ("hum", day.humidity_pct),
            ("pre", day.precipitation_mm),
            ("tmp", day.temperature_c),
        ):
            if value is not None:
                bucket[name].append(value)

    aggregates: list[MonthlyAggregate] = []
    for (year, month), bucket in buckets.items():
        sunshine_s = _mean(bucket["sun"])
        daylight_s = _mean(bucket["day"])
        aggregates.append(
            MonthlyAggregate(
                year=year,
                month=month,
                sunshine_hours=sunshine_s / _SECONDS_PER_HOUR if sunshine_s is not None else None,
                daylight_hours=daylight_s / _SECONDS_PER_HOUR if daylight_s is not None else None,
                humidity_pct=_mean(bucket["hum"]),
                precipitation_mm=sum(bucket["pre"]) if bucket["pre"] else None,
                temperature_c=_mean(bucket["tmp"]),
                days=counts[(year, month)],
            )
        )
    return aggregates


def normalize_month(
    plan_id: str,
    agg: MonthlyAggregate,
    refreshed_at: datetime,
    precip_ceiling_mm: float = PRECIP_CEILING_MM,
) -> MonthlyClimateRecord:
    """Turn one month of raw aggregates into a cache row."""
    sunlight = None
    if agg.sunshine_hours is not None:
        if agg.daylight_hours is not None:
            sunlight = normalize_sunlight(agg.sunshine_hours, agg.daylight_hours)
        else:
            sunlight = normalize_sunlight(agg.sunshine_hours)

    precipitation = None
    precipitation_mm = None
    precipitation_exceeded = False
    if agg.precipitation_mm is not None:
        precip = normalize_precipitation(agg.precipitation_mm, precip_ceiling_mm)
        precipitation = precip.score
        precipitation_mm = round(precip.raw_mm, 1)
        precipitation_exceeded = precip.exceeded

    return MonthlyClimateRecord(
        plan_id=plan_id,
        year=agg.year,
        month=agg.month,
        sunlight=sunlight,
        humidity=normalize_humidity(agg.humidity_pct) if agg.humidity_pct is not None else None,
        precipitation=precipitation,
        temperature=(
            normalize_temperature(agg.temperature_c) if agg.temperature_c is not None else None
        ),
        precipitation_mm=precipitation_mm,
        precipitation_exceeded=precipitation_exceeded,
        temperature_c=round(agg.temperature_c, 1) if agg.temperature_c is not None else None,
        last_refreshed_at=refreshed_at,
    )


@dataclass
class _KeyedEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class KeyedLock:
    """
    One ``threading.Lock`` per key, alive only while it is held or awaited.

    Each key counts its holders and waiters; the last one out drops the
    entry, so the map only holds keys that are in use.
    """

    def __init__(self) -> None:
        self._locks: dict[str, _KeyedEntry] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for ``key``, blocking while another thread has it."""
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyedEntry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]


class ClimateCacheManager:
    """Keeps each plan's 12-month climate window fresh in the plan store."""

    def __init__(
        self,
        store: PlanStore,
        client: ClimateDataClient,
        *,
        freshness: timedelta = DEFAULT_FRESHNESS,
        embargo_days: int = DEFAULT_EMBARGO_DAYS,
        precip_ceiling_mm: float = PRECIP_CEILING_MM,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.client = client
        self.freshness = freshness
        self.embargo_days = embargo_days
        self.precip_ceiling_mm = precip_ceiling_mm
        self.clock = clock
        self._locks = KeyedLock()

    @classmethod
    def from_settings(
        cls, settings: Settings, store: PlanStore | None = None
    ) -> ClimateCacheManager:
        """Wire a manager from application settings (JSON store under data_dir)."""
        client = ClimateDataClient(
            base_url=settings.archive_api_url, timeout_ms=settings.archive_timeout_ms
        )
        return cls(
            store if store is not None else JsonPlanStore(settings.data_dir),
            client,
            freshness=timedelta(days=settings.freshness_days),
            embargo_days=settings.embargo_days,
            precip_ceiling_mm=settings.precip_ceiling_mm,
        )

    def get_monthly_records(self, plan_id: str) -> list[MonthlyClimateRecord]:
        """Cached months for a plan, oldest first (at most 12)."""
        return self.store.get_monthly_records(plan_id)

    def status(self, plan_id: str) -> CacheStatus:
        """Report how many months are cached and whether a refresh is due."""
        records = self.get_monthly_records(plan_id)
        newest = max((r.last_refreshed_at for r in records), default=None)
        return CacheStatus(
            plan_id=plan_id,
            months=len(records),
            last_refreshed_at=newest,
            stale=self._is_stale(records, self.clock()),
        )

    def ensure_fresh(self, plan: Plan, force: bool = False) -> RefreshResult:
        """
        Refresh the plan's climate window if it is stale (or ``force`` is set).

        Args:
            plan: Plan with coordinates.
            force: Refresh even when the cached window is still fresh.

        Returns:
            ``RefreshResult(refreshed=True, months=12)`` after a refresh,
            ``RefreshResult(refreshed=False, months=0)`` when the cache was fresh.

        Raises:
            PlanMissingLocationError: The plan has no coordinates.
            ClimateUpstreamError / ClimateTimeoutError: The fetch failed; the
                cached rows are left untouched.
        """
        if plan.latitude is None or plan.longitude is None:
            raise PlanMissingLocationError(plan.plan_id)

        with self._locks.hold(plan.plan_id):
            now = self.clock()
            if not force:
                cached = self.store.get_monthly_records(plan.plan_id)
                if not self._is_stale(cached, now):
                    logger.debug("Climate cache for plan %s is fresh, skipping", plan.plan_id)
                    return RefreshResult(refreshed=False, months=0)

            months = self._refresh(plan, plan.latitude, plan.longitude, now)
            return RefreshResult(refreshed=True, months=months)

    def _is_stale(self, records: list[MonthlyClimateRecord], now: datetime) -> bool:
        if len(records) < WINDOW_MONTHS:
            return True
        newest = max(r.last_refreshed_at for r in records)
        return now - newest > self.freshness

    def _refresh(self, plan: Plan, lat: float, lon: float, now: datetime) -> int:
        window = ClimateWindow.trailing(now, self.embargo_days)
        logger.info(
            "Refreshing climate for plan %s (%s, %s) over %s..%s",
            plan.plan_id,
            lat,
            lon,
            window.start,
            window.last_day,
        )
        try:
            raw = self.client.fetch_archive(lat, lon, window)
        except Exception:
            logger.warning("Climate refresh failed for plan %s; keeping cached rows", plan.plan_id)
            raise

        records = [
            normalize_month(plan.plan_id, agg, now, self.precip_ceiling_mm)
            for agg in aggregate_months(raw, window)
        ]
        for record in records:
            if record.precipitation_exceeded:
                logger.info(
                    "Plan %s %d-%02d precipitation %.1fmm exceeds %.0fmm ceiling",
                    plan.plan_id,
                    record.year,
                    record.month,
                    record.precipitation_mm,
                    self.precip_ceiling_mm,
                )
        return self.store.upsert_monthly_records(plan.plan_id, records)
