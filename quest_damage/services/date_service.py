"""
Date calculation and manipulation service.
Handles day boundaries, day iteration and weekday parsing for damage policies.
"""
from datetime import datetime, timedelta, date
from typing import Iterable, Iterator, List, Optional, Set
import json


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def to_naive(dt: datetime) -> datetime:
        """Drop timezone info so aware and naive datetimes compare safely"""
        return dt.replace(tzinfo=None) if dt.tzinfo else dt

    @staticmethod
    def normalize_to_midnight(dt: datetime) -> datetime:
        """
        Normalize datetime to midnight (remove time component).

        Args:
            dt: Datetime to normalize

        Returns:
            Datetime set to midnight
        """
        return datetime.combine(dt.date(), datetime.min.time())

    @staticmethod
    def iter_days(start: date, end: date) -> Iterator[date]:
        """Yield every calendar day in [start, end)"""
        current = start
        while current < end:
            yield current
            current += timedelta(days=1)

    @staticmethod
    def completion_days(
        completion_dates: Iterable[datetime],
        primary_completion: Optional[datetime] = None
    ) -> Set[date]:
        """Collect the calendar days on which a completion was recorded"""
        days = {DateService.to_naive(dt).date() for dt in completion_dates if dt}
        if primary_completion:
            days.add(DateService.to_naive(primary_completion).date())
        return days

    @staticmethod
    def parse_weekdays(raw: Optional[str]) -> List[int]:
        """
        Parse a JSON weekday array like "[0,2,4]" (Mon, Wed, Fri).

        Invalid JSON or out-of-range values are dropped.
        """
        if not raw:
            return []
        try:
            values = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return []
        if not isinstance(values, list):
            return []
        return sorted({v for v in values if isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 6})
