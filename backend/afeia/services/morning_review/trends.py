# trend calculator - week-over-week trends and weekly rollups
# every helper takes `now` explicitly, nothing here reads the system clock

from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

from afeia.models.review import (
    DeviceInsight,
    DeviceStats,
    DeviceSummary,
    JournalEntry,
    Trend,
    WeeklyStats,
)

# relative change needed before a trend is "up" or "down"
TREND_THRESHOLD = 0.1

# windows are inclusive ranges of calendar-day offsets back from now
CURRENT_WINDOW = (0, 7)
PREVIOUS_WINDOW = (8, 14)
STABILITY_WINDOW = (0, 14)

MOOD_SCORES = {"good": 5, "🙂": 5, "neutral": 3, "😐": 3, "low": 1, "🙁": 1}
ENERGY_SCORES = {"high": 5, "medium": 3, "low": 1}
LOW_MOOD_LABELS = frozenset({"low", "🙁"})
LOW_ENERGY_LABELS = frozenset({"low"})


def get_trend(current: float, previous: float) -> Trend:
    """compare a current-period average against the previous period"""
    if previous == 0:
        return Trend.UP if current > 0 else Trend.STABLE
    change = (current - previous) / abs(previous)
    if change > TREND_THRESHOLD:
        return Trend.UP
    if change < -TREND_THRESHOLD:
        return Trend.DOWN
    return Trend.STABLE


def mood_to_score(mood: Optional[str]) -> int:
    return MOOD_SCORES.get(mood, 0) if mood else 0


def energy_to_score(energy: Optional[str]) -> int:
    return ENERGY_SCORES.get(energy, 0) if energy else 0


def adherence_score(entry: JournalEntry) -> float:
    """fraction of the four daily habits marked as done (0-1)"""
    flags = entry.adherence_flags
    return sum(1 for flag in flags if flag) / len(flags)


# date helpers

def days_since(instant: Optional[datetime], now: datetime) -> Optional[int]:
    """whole days elapsed since an instant, None when there is no instant"""
    if instant is None:
        return None
    return (now - instant) // timedelta(days=1)


def day_offset(instant: datetime, now: datetime) -> int:
    """calendar days between the instant's date and today's date"""
    return (now.date() - instant.date()).days


def in_window(instant: datetime, now: datetime, window: tuple[int, int]) -> bool:
    start, end = window
    return start <= day_offset(instant, now) <= end


def select_window(
    items: Iterable,
    now: datetime,
    window: tuple[int, int],
    key: Callable = lambda item: item.date,
) -> list:
    """items whose date falls inside the window (date filtering, not index counting)"""
    return [item for item in items if in_window(key(item), now, window)]


def mean(values: Sequence[float]) -> Optional[float]:
    """average of observed values, None when nothing was observed"""
    if not values:
        return None
    return sum(values) / len(values)


# journal averages

def average_adherence(entries: Sequence[JournalEntry]) -> Optional[float]:
    return mean([adherence_score(e) for e in entries])


def average_mood(entries: Sequence[JournalEntry]) -> Optional[float]:
    # unmapped moods are left out of the denominator
    return mean([s for s in (mood_to_score(e.mood) for e in entries) if s > 0])


def average_energy(entries: Sequence[JournalEntry]) -> Optional[float]:
    return mean([s for s in (energy_to_score(e.energy) for e in entries) if s > 0])


def calculate_weekly_stats(entries: Sequence[JournalEntry], now: datetime) -> WeeklyStats:
    """current 7-day window compared with days 8-14 back"""
    current = select_window(entries, now, CURRENT_WINDOW)
    previous = select_window(entries, now, PREVIOUS_WINDOW)

    avg_adherence = average_adherence(current) or 0.0
    prev_adherence = average_adherence(previous) or 0.0

    return WeeklyStats(
        journal_entries_count=len(current),
        average_adherence=avg_adherence,
        mood_trend=get_trend(average_mood(current) or 0.0, average_mood(previous) or 0.0),
        energy_trend=get_trend(average_energy(current) or 0.0, average_energy(previous) or 0.0),
        adherence_trend=get_trend(avg_adherence, prev_adherence),
    )


# device (connected ring) stats

def _device_metric(summaries: Sequence[DeviceSummary], attr: str) -> Optional[float]:
    return mean([getattr(s, attr) for s in summaries if getattr(s, attr) is not None])


def recent_insights(insights: Sequence[DeviceInsight], now: datetime) -> tuple[DeviceInsight, ...]:
    return tuple(select_window(insights, now, CURRENT_WINDOW, key=lambda i: i.created_at))


def calculate_device_stats(
    summaries: Sequence[DeviceSummary],
    insights: Sequence[DeviceInsight],
    now: datetime,
) -> Optional[DeviceStats]:
    """sleep and hrv averages for the week, None without device data this week"""
    current = select_window(summaries, now, CURRENT_WINDOW)
    if not current:
        return None
    previous = select_window(summaries, now, PREVIOUS_WINDOW)

    avg_sleep = _device_metric(current, "sleep_duration") or 0.0
    avg_hrv = _device_metric(current, "hrv_avg") or 0.0

    return DeviceStats(
        average_sleep=avg_sleep,
        sleep_trend=get_trend(avg_sleep, _device_metric(previous, "sleep_duration") or 0.0),
        average_hrv=avg_hrv,
        hrv_trend=get_trend(avg_hrv, _device_metric(previous, "hrv_avg") or 0.0),
        insights=recent_insights(insights, now),
    )


def device_metric_change(summaries: Sequence[DeviceSummary], attr: str, now: datetime) -> Optional[float]:
    """week-over-week change of a device metric in percent"""
    current = _device_metric(select_window(summaries, now, CURRENT_WINDOW), attr)
    previous = _device_metric(select_window(summaries, now, PREVIOUS_WINDOW), attr)
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def nights_under(summaries: Sequence[DeviceSummary], hours: float, now: datetime) -> int:
    current = select_window(summaries, now, CURRENT_WINDOW)
    return sum(1 for s in current if s.sleep_duration is not None and s.sleep_duration < hours)


# journal patterns used by the score calculator

def count_zero_adherence_days(entries: Sequence[JournalEntry], now: datetime) -> int:
    return sum(1 for e in select_window(entries, now, CURRENT_WINDOW) if adherence_score(e) == 0)


def count_low_energy_days(entries: Sequence[JournalEntry], now: datetime) -> int:
    return sum(1 for e in select_window(entries, now, CURRENT_WINDOW) if e.energy in LOW_ENERGY_LABELS)


def count_low_mood_days(entries: Sequence[JournalEntry], now: datetime) -> int:
    return sum(1 for e in select_window(entries, now, CURRENT_WINDOW) if e.mood in LOW_MOOD_LABELS)


def has_journal_yesterday(entries: Sequence[JournalEntry], now: datetime) -> bool:
    return any(day_offset(e.date, now) == 1 for e in entries)


def is_stable_pattern(entries: Sequence[JournalEntry], now: datetime, min_entries: int = 7) -> bool:
    """adherence over the last 14 days stays within 10% of its own average"""
    window = select_window(entries, now, STABILITY_WINDOW)
    if len(window) < min_entries:
        return False

    scores = [adherence_score(e) for e in window]
    avg = sum(scores) / len(scores)
    if avg == 0:
        return False

    return all(abs(s - avg) / avg <= TREND_THRESHOLD for s in scores)


def has_progression(entries: Sequence[JournalEntry], now: datetime) -> bool:
    """any of adherence, mood or energy improved over last week"""
    current = select_window(entries, now, CURRENT_WINDOW)
    previous = select_window(entries, now, PREVIOUS_WINDOW)
    if not current or not previous:
        return False

    for average in (average_adherence, average_mood, average_energy):
        if (average(current) or 0.0) > (average(previous) or 0.0):
            return True
    return False
