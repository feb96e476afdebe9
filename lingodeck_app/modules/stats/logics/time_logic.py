from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

# (label, upper bound in ms); the last bucket is open-ended
RESPONSE_BUCKETS = (
    ('< 1s', 1000),
    ('1-2s', 2000),
    ('2-3s', 3000),
    ('3-5s', 5000),
    ('5s+', None),
)


class TimeLogic:
    """
    Pure date and time helpers for statistics.
    No DB or Flask context.
    """

    @staticmethod
    def to_utc(value: datetime) -> datetime:
        # SQLite hands back naive datetimes, which are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @staticmethod
    def window_start(days_back: int, now: Optional[datetime] = None) -> datetime:
        """Start of the ``days_back`` window as naive UTC, ready for column comparisons."""
        now = TimeLogic.to_utc(now or datetime.now(timezone.utc))
        return (now - timedelta(days=days_back)).replace(tzinfo=None)

    @staticmethod
    def day_streak(study_dates: Iterable[date]) -> int:
        """Consecutive days ending on the most recent study date."""
        dates = set(study_dates)
        if not dates:
            return 0
        streak = 0
        current = max(dates)
        while current in dates:
            streak += 1
            current -= timedelta(days=1)
        return streak

    @staticmethod
    def response_bucket(response_time_ms: int) -> str:
        for label, upper in RESPONSE_BUCKETS:
            if upper is None or response_time_ms < upper:
                return label
        return RESPONSE_BUCKETS[-1][0]
