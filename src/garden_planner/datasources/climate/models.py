"""Climate archive data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

WINDOW_MONTHS = 12


def _shift_months(d: date, months: int) -> date:
    """First day of the month ``months`` away from ``d``'s month."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


@dataclass(frozen=True)
class ClimateWindow:
    """Half-open date range [start, end) covering 12 full calendar months."""

    start: date
    end: date

    @classmethod
    def trailing(cls, now: datetime | date, embargo_days: int = 5) -> ClimateWindow:
        """The 12 full months ending before the month of ``now - embargo_days``.

        The archive lags real time by a few days, so the month that contains
        the embargo cutoff is never complete and is left out.
        """
        today = now.date() if isinstance(now, datetime) else now
        cutoff = today - timedelta(days=embargo_days)
        end = date(cutoff.year, cutoff.month, 1)
        return cls(start=_shift_months(end, -WINDOW_MONTHS), end=end)

    @property
    def last_day(self) -> date:
        """Inclusive last day, as the archive API expects."""
        return self.end - timedelta(days=1)

    def months(self) -> list[tuple[int, int]]:
        """(year, month) keys in chronological order."""
        keys: list[tuple[int, int]] = []
        cursor = self.start
        while cursor < self.end:
            keys.append((cursor.year, cursor.month))
            cursor = _shift_months(cursor, 1)
        return keys

    def __contains__(self, d: object) -> bool:
        return isinstance(d, date) and self.start <= d < self.end


@dataclass
class DailyClimate:
    """One day of raw archive values; any value may be missing."""

    date: date
    sunshine_s: float | None
    daylight_s: float | None
    humidity_pct: float | None
    precipitation_mm: float | None
    temperature_c: float | None


@dataclass
class RawArchiveResponse:
    """Validated archive response with parallel daily arrays."""

    latitude: float | None
    longitude: float | None
    timezone: str | None
    time: list[date]
    sunshine_s: list[float | None] = field(default_factory=list)
    daylight_s: list[float | None] = field(default_factory=list)
    humidity_pct: list[float | None] = field(default_factory=list)
    precipitation_mm: list[float | None] = field(default_factory=list)
    temperature_c: list[float | None] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.time)

    def days(self) -> list[DailyClimate]:
        """Zip the parallel arrays into per-day rows."""
        return [
            DailyClimate(
                date=d,
                sunshine_s=self.sunshine_s[i],
                daylight_s=self.daylight_s[i],
                humidity_pct=self.humidity_pct[i],
                precipitation_mm=self.precipitation_mm[i],
                temperature_c=self.temperature_c[i],
            )
            for i, d in enumerate(self.time)
        ]
