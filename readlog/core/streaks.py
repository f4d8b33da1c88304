"""Streak Kernel - Pure functions over sorted date strings.

All date arithmetic works on UTC midnight instants so that day counts never
drift across daylight-saving transitions.
"""

from datetime import date, timedelta
from typing import Iterable, Iterator

from .models import StreakGap, utc_midnight


ONE_DAY = timedelta(days=1)


def _as_date_string(value: str | date) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return value


def day_difference(start: str | date, end: str | date) -> int:
    """Calendar days from start to end.

    Args:
        start: Earlier date (YYYY-MM-DD or date)
        end: Later date (YYYY-MM-DD or date)

    Returns:
        Whole days between the two UTC midnights (floor division)
    """
    delta = utc_midnight(_as_date_string(end)) - utc_midnight(_as_date_string(start))
    return delta // ONE_DAY


def unique_sorted_dates(date_strings: Iterable[str]) -> list[str]:
    """Deduplicate and sort date strings ascending."""
    return sorted(set(date_strings))


def trailing_streak(sorted_dates: list[str]) -> int:
    """Length of the run of consecutive days ending at the last date.

    No grace check against the real-world date: used for historical
    summaries where "today" has no meaning.

    Args:
        sorted_dates: Ascending, deduplicated date strings

    Returns:
        Streak length (0 for an empty sequence)
    """
    if not sorted_dates:
        return 0

    streak = 1
    for i in range(len(sorted_dates) - 2, -1, -1):
        if day_difference(sorted_dates[i], sorted_dates[i + 1]) == 1:
            streak += 1
        else:
            break
    return streak


def current_streak(sorted_dates: list[str], today: str | date) -> int:
    """Live streak as of today.

    The streak stays alive while the latest logged day is today or
    yesterday; anything older means the streak is broken.

    Args:
        sorted_dates: Ascending, deduplicated date strings
        today: The reader's current date

    Returns:
        Streak length, 0 if empty or broken
    """
    if not sorted_dates:
        return 0

    if day_difference(sorted_dates[-1], today) > 1:
        return 0

    return trailing_streak(sorted_dates)


def gaps_between(sorted_dates: list[str]) -> Iterator[StreakGap]:
    """Yield every adjacent pair separated by more than one day."""
    for earlier, later in zip(sorted_dates, sorted_dates[1:]):
        days = day_difference(earlier, later)
        if days > 1:
            yield StreakGap(from_date=earlier, to_date=later, days=days)
