# primary signal resolution
# rules are tried top to bottom and the first match wins, so the order of
# SIGNAL_RULES is the priority order shown to the practitioner

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from afeia.models.review import (
    ClientSnapshot,
    DeviceStats,
    Signal,
    SignalCategory,
    SignalSeverity,
    Trend,
    WeeklyStats,
)
from afeia.services.morning_review import trends

DEFAULT_CLIENT_NAME = "This client"


@dataclass(frozen=True)
class SignalContext:
    client: ClientSnapshot
    weekly: WeeklyStats
    device: Optional[DeviceStats]
    now: datetime

    @property
    def name(self) -> str:
        return self.client.name or DEFAULT_CLIENT_NAME

    @property
    def adherence_percent(self) -> int:
        return round(self.weekly.average_adherence * 100)

    @property
    def days_without_journal(self) -> Optional[int]:
        return trends.days_since(self.client.last_journal_date, self.now)


@dataclass(frozen=True)
class SignalRule:
    name: str
    category: SignalCategory
    severity: SignalSeverity
    icon_name: str
    matches: Callable[[SignalContext], bool]
    message: Callable[[SignalContext], str]


def _unread_message(ctx: SignalContext) -> str:
    count = ctx.client.unread_messages_count
    plural = "s" if count > 1 else ""
    return f"{ctx.name} sent {count} message{plural} awaiting your reply"


def _journal_silent(ctx: SignalContext) -> bool:
    days = ctx.days_without_journal
    return days is not None and days >= 7


SIGNAL_RULES = (
    SignalRule(
        "unread_messages", SignalCategory.PRESENCE, SignalSeverity.URGENT, "MessageSquare",
        matches=lambda ctx: ctx.client.unread_messages_count > 0,
        message=_unread_message,
    ),
    SignalRule(
        "journal_silent", SignalCategory.PRESENCE, SignalSeverity.URGENT, "FileText",
        matches=_journal_silent,
        message=lambda ctx: f"{ctx.name} has not shared a journal entry for {ctx.days_without_journal} days",
    ),
    SignalRule(
        "adherence_down", SignalCategory.ADHERENCE, SignalSeverity.ATTENTION, "AlertTriangle",
        matches=lambda ctx: ctx.weekly.adherence_trend == Trend.DOWN and ctx.weekly.average_adherence < 0.5,
        message=lambda ctx: (
            f"{ctx.name} seems to be struggling with the new habits "
            f"({ctx.adherence_percent}% adherence this week)"
        ),
    ),
    SignalRule(
        "mood_down", SignalCategory.EMOTIONAL, SignalSeverity.ATTENTION, "Frown",
        matches=lambda ctx: ctx.weekly.mood_trend == Trend.DOWN,
        message=lambda ctx: f"{ctx.name} has been sharing a difficult mood for several days",
    ),
    SignalRule(
        "energy_down", SignalCategory.ENERGY, SignalSeverity.ATTENTION, "Zap",
        matches=lambda ctx: ctx.weekly.energy_trend == Trend.DOWN,
        message=lambda ctx: f"{ctx.name}'s energy is lower this week",
    ),
    SignalRule(
        "short_sleep", SignalCategory.SLEEP, SignalSeverity.ATTENTION, "Moon",
        matches=lambda ctx: (
            ctx.device is not None
            and ctx.device.sleep_trend == Trend.DOWN
            and ctx.device.average_sleep < 6.5
        ),
        message=lambda ctx: (
            f"{ctx.name} has had short nights for several days "
            f"({ctx.device.average_sleep:.1f}h on average)"
        ),
    ),
    SignalRule(
        "hrv_down", SignalCategory.RECOVERY, SignalSeverity.INFO, "Heart",
        matches=lambda ctx: ctx.device is not None and ctx.device.hrv_trend == Trend.DOWN,
        message=lambda ctx: f"{ctx.name}'s heart rate variability suggests a greater need for recovery",
    ),
    SignalRule(
        "progress", SignalCategory.PROGRESS, SignalSeverity.POSITIVE, "TrendingUp",
        matches=lambda ctx: ctx.weekly.adherence_trend == Trend.UP and ctx.weekly.average_adherence > 0.75,
        message=lambda ctx: f"Great progress from {ctx.name}: {ctx.adherence_percent}% adherence",
    ),
    SignalRule(
        "balance", SignalCategory.BALANCE, SignalSeverity.POSITIVE, "Leaf",
        matches=lambda ctx: ctx.weekly.adherence_trend == Trend.STABLE and ctx.weekly.average_adherence > 0.7,
        message=lambda ctx: f"{ctx.name} has kept a steady balance for several weeks",
    ),
)


def identify_primary_signal(
    client: ClientSnapshot,
    weekly: WeeklyStats,
    device: Optional[DeviceStats],
    now: datetime,
) -> Optional[Signal]:
    """the single most salient explanation for a client's score, or None"""
    ctx = SignalContext(client=client, weekly=weekly, device=device, now=now)
    for rule in SIGNAL_RULES:
        if rule.matches(ctx):
            return Signal(
                category=rule.category,
                severity=rule.severity,
                message=rule.message(ctx),
                icon_name=rule.icon_name,
            )
    return None
