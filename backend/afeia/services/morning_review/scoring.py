# attention score calculator
#
# each client gets a 0-100 score, recomputed on every morning review.
# conditions are grouped into weighted categories:
#   link (x3)           messages, journal presence, consultation cadence
#   adherence (x2)      habits, energy, mood, discouraged notes
#   physiological (x1.5) sleep, hrv, activity (premium with ring data)
#   administrative (x1) care plans, appointments, session notes
# the weighted sum then goes through the moderators, in order.

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from afeia.models.review import AttentionLevel, ClientSnapshot
from afeia.services.morning_review import trends

logger = logging.getLogger(__name__)

DISCOURAGEMENT_KEYWORDS = (
    "difficult", "too hard", "give up", "giving up", "discouraged", "demotivated",
    "exhausted", "worn out", "burnt out", "can't do", "cannot do", "not able",
    "impossible", "overwhelmed", "no motivation",
)

# level thresholds, highest first
LEVEL_THRESHOLDS = (
    (85, AttentionLevel.URGENT),
    (60, AttentionLevel.ATTENTION),
    (40, AttentionLevel.PROGRESS),
)

NEW_CLIENT_DAYS = 14


@dataclass(frozen=True)
class Condition:
    """one scoring condition: returns its base points, 0 when it does not apply"""
    name: str
    points: Callable[[ClientSnapshot, datetime], float]


@dataclass(frozen=True)
class Category:
    name: str
    weight: float
    conditions: tuple[Condition, ...]
    applies: Callable[[ClientSnapshot], bool] = lambda client: True


def _when(points: float, predicate: Callable[[ClientSnapshot, datetime], bool]):
    return lambda client, now: points if predicate(client, now) else 0


# link signals

def _has_unread_message(client: ClientSnapshot, now: datetime) -> bool:
    return client.unread_messages_count > 0


def _journal_silent(client: ClientSnapshot, now: datetime) -> bool:
    days = trends.days_since(client.last_journal_date, now)
    return days is not None and days >= 7 and client.is_active


def _consultation_overdue(client: ClientSnapshot, now: datetime) -> bool:
    days = trends.days_since(client.last_consultation_date, now)
    return days is not None and days > 45


def _cooling_off(client: ClientSnapshot, now: datetime) -> bool:
    days = trends.days_since(client.last_journal_date, now)
    if days is None or not 3 <= days < 7:
        return False
    return any(3 <= trends.days_since(e.date, now) <= 10 for e in client.journal_entries)


def _practitioner_unanswered(client: ClientSnapshot, now: datetime) -> bool:
    last_sent = client.last_practitioner_message_at
    if last_sent is None or trends.days_since(last_sent, now) < 5:
        return False
    return not any(m.sender == "client" and m.sent_at > last_sent for m in client.messages)


# adherence signals

def _adherence_regression(client: ClientSnapshot, now: datetime) -> bool:
    current = trends.average_adherence(
        trends.select_window(client.journal_entries, now, trends.CURRENT_WINDOW))
    previous = trends.average_adherence(
        trends.select_window(client.journal_entries, now, trends.PREVIOUS_WINDOW))
    if current is None or previous is None:
        return False
    return current < 0.5 and previous > 0.7


def _discouraged_notes(client: ClientSnapshot, now: datetime) -> bool:
    recent = trends.select_window(client.journal_entries, now, trends.CURRENT_WINDOW)
    notes = [e.text.lower() for e in recent if e.text]
    return any(kw in note for note in notes for kw in DISCOURAGEMENT_KEYWORDS)


# physiological signals

def _has_device_data(client: ClientSnapshot) -> bool:
    return client.is_premium and len(client.device_summaries) > 0


def _metric_dropped(attr: str, percent: float):
    def predicate(client: ClientSnapshot, now: datetime) -> bool:
        change = trends.device_metric_change(client.device_summaries, attr, now)
        return change is not None and change <= -percent
    return predicate


def _insight_points(client: ClientSnapshot, now: datetime) -> float:
    points = {"attention": 10, "info": 5}
    return sum(points.get(i.level, 0) for i in trends.recent_insights(client.device_insights, now))


# administrative signals

def _stale_draft_plan(client: ClientSnapshot, now: datetime) -> bool:
    return any(
        p.status == "draft" and trends.days_since(p.updated_at, now) > 7
        for p in client.care_plans
    )


def _appointment_points(client: ClientSnapshot, now: datetime) -> float:
    upcoming = client.next_appointment_date
    if upcoming is None:
        return 0
    # today takes precedence over the 48h window
    if upcoming.date() == now.date():
        return 8
    hours_until = (upcoming - now).total_seconds() / 3600
    if 0 < hours_until <= 48:
        return 5
    return 0


def _missing_session_note(client: ClientSnapshot, now: datetime) -> bool:
    consulted = client.last_consultation_date
    days = trends.days_since(consulted, now)
    if days is None or not 0 <= days <= 3:
        return False
    note = client.last_session_note_date
    return note is None or note < consulted


CATEGORIES = (
    Category("link", 3, (
        Condition("unread_message", _when(30, _has_unread_message)),
        Condition("journal_silent", _when(25, _journal_silent)),
        Condition("consultation_overdue", _when(20, _consultation_overdue)),
        Condition("cooling_off", _when(15, _cooling_off)),
        Condition("practitioner_unanswered", _when(15, _practitioner_unanswered)),
    )),
    Category("adherence", 2, (
        Condition("adherence_regression", _when(20, _adherence_regression)),
        Condition("zero_adherence_days",
                  _when(15, lambda c, now: trends.count_zero_adherence_days(c.journal_entries, now) >= 3)),
        Condition("low_energy_days",
                  _when(15, lambda c, now: trends.count_low_energy_days(c.journal_entries, now) >= 4)),
        Condition("low_mood_days",
                  _when(15, lambda c, now: trends.count_low_mood_days(c.journal_entries, now) >= 4)),
        Condition("discouraged_notes", _when(20, _discouraged_notes)),
    )),
    Category("physiological", 1.5, (
        Condition("short_nights",
                  _when(15, lambda c, now: trends.nights_under(c.device_summaries, 6, now) >= 5)),
        Condition("sleep_score_drop", _when(12, _metric_dropped("sleep_score", 20))),
        Condition("hrv_drop", _when(12, _metric_dropped("hrv_avg", 15))),
        Condition("activity_drop", _when(10, _metric_dropped("activity_level", 30))),
        Condition("device_insights", _insight_points),
    ), applies=_has_device_data),
    Category("administrative", 1, (
        Condition("stale_draft_plan", _when(10, _stale_draft_plan)),
        Condition("upcoming_appointment", _appointment_points),
        Condition("missing_session_note", _when(8, _missing_session_note)),
    )),
)


# moderators, applied in order to the weighted sum

def _new_client(score: float, client: ClientSnapshot, now: datetime) -> float:
    if trends.days_since(client.created_at, now) < NEW_CLIENT_DAYS:
        return score / 2
    return score


def _stable_pattern(score: float, client: ClientSnapshot, now: datetime) -> float:
    return score - 20 if trends.is_stable_pattern(client.journal_entries, now) else score


def _progressing(score: float, client: ClientSnapshot, now: datetime) -> float:
    return score - 15 if trends.has_progression(client.journal_entries, now) else score


def _journaled_yesterday(score: float, client: ClientSnapshot, now: datetime) -> float:
    return score - 5 if trends.has_journal_yesterday(client.journal_entries, now) else score


def _recent_consultation(score: float, client: ClientSnapshot, now: datetime) -> float:
    days = trends.days_since(client.last_consultation_date, now)
    if days is not None and 0 <= days < 7:
        return score - 10
    return score


MODERATORS = (
    _new_client,
    _stable_pattern,
    _progressing,
    _journaled_yesterday,
    _recent_consultation,
)


def matched_conditions(client: ClientSnapshot, now: datetime) -> list[tuple[str, float]]:
    """(condition name, weighted points) for every condition that fired"""
    matched = []
    for category in CATEGORIES:
        if not category.applies(client):
            continue
        for condition in category.conditions:
            points = condition.points(client, now)
            if points:
                matched.append((condition.name, points * category.weight))
    return matched


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_attention_score(client: ClientSnapshot, now: datetime) -> int:
    """bounded 0-100 attention score for one client"""
    matched = matched_conditions(client, now)
    score = sum(points for _, points in matched)

    for moderator in MODERATORS:
        score = moderator(score, client, now)

    if client.is_snoozed_at(now):
        score = 0

    final = _round_half_up(max(0.0, min(100.0, score)))
    logger.debug(f"Client {client.id} scored {final} from {[name for name, _ in matched]}")
    return final


def get_attention_level(score: int) -> AttentionLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return AttentionLevel.STABLE


def classify_client(client: ClientSnapshot, score: int) -> AttentionLevel:
    """insufficient when there is neither journal history nor a consultation"""
    if not client.journal_entries and client.last_consultation_date is None:
        return AttentionLevel.INSUFFICIENT
    return get_attention_level(score)
