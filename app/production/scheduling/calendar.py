"""
Business-day calendar for production scheduling.

Holidays are versioned data handed in by the caller (or loaded from a CSV
data file); nothing in this module knows any concrete holiday date.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple

import pandas as pd

from app.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_WORKING_WEEKDAYS: Tuple[int, ...] = (0, 1, 2, 3, 4)  # Monday through Friday


class HolidayCalendarError(ValueError):
    """Raised when holiday data cannot be loaded or is inconsistent."""


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class HolidaySet:
    """
    Immutable set of holiday dates with the range it is valid for.

    A set without a validity range is treated as unbounded.
    """
    dates: FrozenSet[date] = field(default_factory=frozenset)
    version: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None

    def __post_init__(self):
        object.__setattr__(self, 'dates', frozenset(_as_date(d) for d in self.dates))
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise HolidayCalendarError(
                f"Holiday set validity ends ({self.valid_to}) before it starts ({self.valid_from})"
            )
        outside = sorted(d for d in self.dates if not self.covers(d))
        if outside:
            raise HolidayCalendarError(
                f"Holiday dates outside validity range {self.valid_from}..{self.valid_to}: "
                f"{', '.join(d.isoformat() for d in outside)}"
            )

    @classmethod
    def from_dates(cls, dates: Iterable, version: Optional[str] = None) -> 'HolidaySet':
        """
        Build a year-scoped holiday set: valid from January 1st of the first
        year listed through December 31st of the last.
        """
        normalized = frozenset(_as_date(d) for d in dates)
        if not normalized:
            return cls(version=version)
        first_year = min(d.year for d in normalized)
        last_year = max(d.year for d in normalized)
        return cls(
            dates=normalized,
            version=version,
            valid_from=date(first_year, 1, 1),
            valid_to=date(last_year, 12, 31),
        )

    def __contains__(self, d) -> bool:
        return _as_date(d) in self.dates

    def __len__(self):
        return len(self.dates)

    def covers(self, d) -> bool:
        """Whether d lies within the validity range of this holiday data."""
        d = _as_date(d)
        if self.valid_from is not None and d < self.valid_from:
            return False
        if self.valid_to is not None and d > self.valid_to:
            return False
        return True


def load_holiday_set(path, version: Optional[str] = None) -> HolidaySet:
    """
    Load holidays from a CSV file with a ``date`` column (``name`` optional).

    Args:
        path: CSV file path
        version: Version label; defaults to the file name

    Returns:
        HolidaySet: Year-scoped holiday set

    Raises:
        HolidayCalendarError: If the file is missing or has unparseable dates
    """
    path = Path(path)
    if not path.exists():
        raise HolidayCalendarError(f"Holiday file not found: {path}")

    try:
        df = pd.read_csv(path, comment='#', skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise HolidayCalendarError(f"Could not read holiday file {path}: {exc}") from exc

    if 'date' not in df.columns:
        raise HolidayCalendarError(f"Holiday file {path} has no 'date' column")

    parsed = pd.to_datetime(df['date'], format='%Y-%m-%d', errors='coerce')
    if parsed.isna().any():
        bad_rows = df.loc[parsed.isna(), 'date'].astype(str).tolist()
        raise HolidayCalendarError(f"Unparseable holiday dates in {path}: {', '.join(bad_rows)}")

    holidays = HolidaySet.from_dates(
        (ts.date() for ts in parsed),
        version=version or path.stem,
    )
    logger.info(
        "Holiday calendar loaded",
        path=str(path),
        version=holidays.version,
        holidays=len(holidays),
        valid_from=holidays.valid_from.isoformat() if holidays.valid_from else None,
        valid_to=holidays.valid_to.isoformat() if holidays.valid_to else None,
    )
    return holidays


class BusinessCalendar:
    """Working-day predicates and date shifting over an injected holiday set."""

    def __init__(
        self,
        holidays: Optional[HolidaySet] = None,
        working_weekdays: Iterable[int] = DEFAULT_WORKING_WEEKDAYS,
    ):
        if holidays is not None and not isinstance(holidays, HolidaySet):
            holidays = HolidaySet.from_dates(holidays)
        self.holidays = holidays if holidays is not None else HolidaySet()
        self.working_weekdays = frozenset(working_weekdays)

    def __repr__(self):
        return (
            f"BusinessCalendar(version={self.holidays.version!r}, "
            f"holidays={len(self.holidays)}, working_weekdays={sorted(self.working_weekdays)})"
        )

    def covers(self, d) -> bool:
        return self.holidays.covers(d)

    def is_holiday(self, d) -> bool:
        return _as_date(d) in self.holidays

    def is_business_day(self, d) -> bool:
        d = _as_date(d)
        return d.weekday() in self.working_weekdays and not self.is_holiday(d)

    def next_business_day(self, d) -> date:
        """
        First business day strictly after d. Never returns d itself, even
        when d is already a business day.
        """
        current = _as_date(d)
        if not self.working_weekdays:
            return current + timedelta(days=1)
        while True:
            current += timedelta(days=1)
            if self.is_business_day(current):
                return current

    def add_business_days(self, d, business_days: int) -> date:
        """
        The n-th business day after d (d itself not counted). Zero returns d
        unchanged; negative values walk backward the same way.
        """
        current = _as_date(d)
        if business_days == 0 or not self.working_weekdays:
            return current

        step = timedelta(days=1 if business_days > 0 else -1)
        remaining = abs(business_days)
        while remaining > 0:
            current += step
            if self.is_business_day(current):
                remaining -= 1
        return current

    def count_business_days(self, start, end) -> int:
        """
        Inclusive count of business days between start and end.

        Returns 1 when start and end are the same day, 0 when end is before
        start.
        """
        start = _as_date(start)
        end = _as_date(end)
        if end < start:
            return 0
        if start == end:
            return 1

        count = 0
        current = start
        while current <= end:
            if self.is_business_day(current):
                count += 1
            current += timedelta(days=1)
        return count
