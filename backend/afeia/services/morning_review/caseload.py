# caseload aggregator - one ClientSummary per client, sorted by attention
# each summary depends only on its own snapshot, so clients can be scored in
# any order; only the final (stable) sort is order-sensitive

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from afeia.config import settings
from afeia.models.review import (
    AttentionLevel,
    ClientSnapshot,
    ClientSummary,
    GlobalMetrics,
    WeeklyStats,
)
from afeia.services.morning_review import trends
from afeia.services.morning_review.actions import generate_suggested_actions
from afeia.services.morning_review.scoring import calculate_attention_score, classify_client
from afeia.services.morning_review.signals import identify_primary_signal

logger = logging.getLogger(__name__)


def _snoozed_summary(client: ClientSnapshot) -> ClientSummary:
    """snoozed clients stay in the list at score 0 with nothing to act on"""
    return ClientSummary(
        client=client,
        attention_score=0,
        attention_level=AttentionLevel.STABLE,
        weekly_stats=WeeklyStats(),
    )


def summarize_client(client: ClientSnapshot, now: datetime) -> ClientSummary:
    if client.is_snoozed_at(now):
        return _snoozed_summary(client)

    score = calculate_attention_score(client, now)
    weekly = trends.calculate_weekly_stats(client.journal_entries, now)
    device = None
    if client.is_premium and client.device_summaries:
        device = trends.calculate_device_stats(client.device_summaries, client.device_insights, now)

    signal = identify_primary_signal(client, weekly, device, now)

    return ClientSummary(
        client=client,
        attention_score=score,
        attention_level=classify_client(client, score),
        weekly_stats=weekly,
        device_stats=device,
        primary_signal=signal,
        suggested_actions=generate_suggested_actions(client, signal),
    )


def sort_by_attention(summaries: Iterable[ClientSummary]) -> list[ClientSummary]:
    # sorted() is stable, ties keep their input order
    return sorted(summaries, key=lambda s: s.attention_score, reverse=True)


def build_caseload_summaries(clients: Sequence[ClientSnapshot], now: datetime) -> list[ClientSummary]:
    """score the whole caseload and sort by descending attention score"""
    summaries = sort_by_attention(summarize_client(client, now) for client in clients)
    urgent = sum(1 for s in summaries if s.attention_level == AttentionLevel.URGENT)
    logger.info(f"Scored {len(summaries)} clients ({urgent} urgent)")
    return summaries


def filter_by_score(summaries: Iterable[ClientSummary], threshold: int) -> list[ClientSummary]:
    return sort_by_attention(s for s in summaries if s.attention_score >= threshold)


def build_attention_queue(
    summaries: Iterable[ClientSummary],
    threshold: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[ClientSummary]:
    """clients worth a look today for the plain attention list"""
    threshold = settings.ATTENTION_QUEUE_THRESHOLD if threshold is None else threshold
    limit = settings.ATTENTION_QUEUE_LIMIT if limit is None else limit
    return filter_by_score(summaries, threshold)[:limit]


def compute_global_metrics(summaries: Sequence[ClientSummary], now: datetime) -> GlobalMetrics:
    """caseload-wide numbers shown above the attention queue"""
    week_window = trends.CURRENT_WINDOW
    month_ago = now - timedelta(days=30)

    active_this_week = sum(
        1 for s in summaries
        if trends.select_window(s.client.journal_entries, now, week_window)
    )
    active_this_month = sum(
        1 for s in summaries
        if any(e.date >= month_ago for e in s.client.journal_entries)
    )
    presence_rate = round(active_this_month / len(summaries) * 100) if summaries else 0

    adherence_values = [s.weekly_stats.average_adherence for s in summaries if s.weekly_stats.average_adherence > 0]
    average_adherence = (
        round(sum(adherence_values) / len(adherence_values) * 100) if adherence_values else 0
    )

    week_ahead = now + timedelta(days=7)
    upcoming = sorted(
        s.client.next_appointment_date for s in summaries
        if s.client.next_appointment_date is not None and s.client.next_appointment_date >= now
    )

    return GlobalMetrics(
        active_this_week=active_this_week,
        presence_rate=presence_rate,
        average_adherence=average_adherence,
        attention_signals=sum(1 for s in summaries if s.attention_score >= settings.REVIEW_SESSION_THRESHOLD),
        consultations_this_week=sum(1 for d in upcoming if d <= week_ahead),
        next_consultation=upcoming[0] if upcoming else None,
        progress_count=sum(1 for s in summaries if s.attention_level == AttentionLevel.PROGRESS),
    )
