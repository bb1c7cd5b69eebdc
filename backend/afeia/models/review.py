# morning review models - client snapshots fed to the attention engine and
# the per-client summaries it returns
# mirrors frontend lib/morning-review/types.ts ConsultantForReview, ConsultantSummary

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field


def _as_utc(value: datetime) -> datetime:
    """naive datetimes coming out of mongodb are utc"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


# enumerations

class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class AttentionLevel(str, Enum):
    URGENT = "urgent"
    ATTENTION = "attention"
    PROGRESS = "progress"
    STABLE = "stable"
    INSUFFICIENT = "insufficient"


class SignalCategory(str, Enum):
    PRESENCE = "presence"
    ADHERENCE = "adherence"
    EMOTIONAL = "emotional"
    ENERGY = "energy"
    SLEEP = "sleep"
    RECOVERY = "recovery"
    PROGRESS = "progress"
    BALANCE = "balance"


class SignalSeverity(str, Enum):
    URGENT = "urgent"
    ATTENTION = "attention"
    INFO = "info"
    POSITIVE = "positive"


class ActionType(str, Enum):
    SEND_MESSAGE = "send_message"
    NOTE_OBSERVATION = "note_observation"
    ADJUST_CARE_PLAN = "adjust_care_plan"
    SCHEDULE_CALL = "schedule_call"
    CELEBRATE = "celebrate"
    OPEN_RECORD = "open_record"
    SNOOZE = "snooze"


class SnoozeReason(str, Enum):
    VACATION = "vacation"
    SPACED_FOLLOWUP = "spaced_followup"
    OTHER = "other"


# client snapshot (read-only input)

class JournalEntry(BaseModel):
    """a client's daily self-report"""
    date: UtcDatetime
    mood: Optional[str] = None
    energy: Optional[str] = None
    text: Optional[str] = None
    adherence_hydration: Optional[bool] = Field(None, alias="adherenceHydration")
    adherence_breathing: Optional[bool] = Field(None, alias="adherenceBreathing")
    adherence_movement: Optional[bool] = Field(None, alias="adherenceMovement")
    adherence_herbs: Optional[bool] = Field(None, alias="adherenceHerbs")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def adherence_flags(self) -> tuple:
        return (
            self.adherence_hydration,
            self.adherence_breathing,
            self.adherence_movement,
            self.adherence_herbs,
        )


class DeviceSummary(BaseModel):
    """daily rollup from the connected ring"""
    date: UtcDatetime
    sleep_duration: Optional[float] = Field(None, alias="sleepDuration")
    sleep_score: Optional[float] = Field(None, alias="sleepScore")
    hrv_avg: Optional[float] = Field(None, alias="hrvAvg")
    activity_level: Optional[float] = Field(None, alias="activityLevel")

    model_config = {"populate_by_name": True, "frozen": True}


class DeviceInsight(BaseModel):
    created_at: UtcDatetime = Field(..., alias="createdAt")
    level: str
    title: str = ""

    model_config = {"populate_by_name": True, "frozen": True}


class Message(BaseModel):
    sender: Literal["client", "practitioner"]
    sent_at: UtcDatetime = Field(..., alias="sentAt")
    read_at: Optional[UtcDatetime] = Field(None, alias="readAt")

    model_config = {"populate_by_name": True, "frozen": True}


class CarePlan(BaseModel):
    status: Literal["draft", "shared"]
    updated_at: UtcDatetime = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True, "frozen": True}


class ClientSnapshot(BaseModel):
    """everything the attention engine knows about one client"""
    id: str
    name: Optional[str] = None
    is_premium: bool = Field(False, alias="isPremium")
    created_at: UtcDatetime = Field(..., alias="createdAt")
    activated: bool = True
    deleted_at: Optional[UtcDatetime] = Field(None, alias="deletedAt")

    # snooze
    is_snoozed: bool = Field(False, alias="isSnoozed")
    snooze_until: Optional[UtcDatetime] = Field(None, alias="snoozeUntil")
    snooze_reason: Optional[str] = Field(None, alias="snoozeReason")

    # activity
    journal_entries: tuple[JournalEntry, ...] = Field((), alias="journalEntries")
    device_summaries: tuple[DeviceSummary, ...] = Field((), alias="deviceSummaries")
    device_insights: tuple[DeviceInsight, ...] = Field((), alias="deviceInsights")
    messages: tuple[Message, ...] = ()
    care_plans: tuple[CarePlan, ...] = Field((), alias="carePlans")

    # scheduling
    last_consultation_date: Optional[UtcDatetime] = Field(None, alias="lastConsultationDate")
    next_appointment_date: Optional[UtcDatetime] = Field(None, alias="nextAppointmentDate")
    last_session_note_date: Optional[UtcDatetime] = Field(None, alias="lastSessionNoteDate")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def is_active(self) -> bool:
        return self.activated and self.deleted_at is None

    @property
    def unread_messages_count(self) -> int:
        return sum(1 for m in self.messages if m.sender == "client" and m.read_at is None)

    @property
    def last_practitioner_message_at(self) -> Optional[datetime]:
        sent = [m.sent_at for m in self.messages if m.sender == "practitioner"]
        return max(sent) if sent else None

    @property
    def last_journal_date(self) -> Optional[datetime]:
        if not self.journal_entries:
            return None
        return max(e.date for e in self.journal_entries)

    def is_snoozed_at(self, now: datetime) -> bool:
        """snoozed with an end date still in the future"""
        return bool(self.is_snoozed and self.snooze_until and self.snooze_until > now)


# derived stats

class WeeklyStats(BaseModel):
    journal_entries_count: int = Field(0, alias="journalEntriesCount")
    average_adherence: float = Field(0.0, alias="averageAdherence")
    mood_trend: Trend = Field(Trend.STABLE, alias="moodTrend")
    energy_trend: Trend = Field(Trend.STABLE, alias="energyTrend")
    adherence_trend: Trend = Field(Trend.STABLE, alias="adherenceTrend")

    model_config = {"populate_by_name": True, "frozen": True}


class DeviceStats(BaseModel):
    """connected ring stats, premium clients only"""
    average_sleep: float = Field(..., alias="averageSleep")
    sleep_trend: Trend = Field(..., alias="sleepTrend")
    average_hrv: float = Field(..., alias="averageHrv")
    hrv_trend: Trend = Field(..., alias="hrvTrend")
    insights: tuple[DeviceInsight, ...] = ()

    model_config = {"populate_by_name": True, "frozen": True}


# engine output

class Signal(BaseModel):
    category: SignalCategory
    severity: SignalSeverity
    message: str
    icon_name: str = Field(..., alias="iconName")

    model_config = {"populate_by_name": True, "frozen": True}


class SuggestedAction(BaseModel):
    type: ActionType
    label: str
    description: str
    template_message: Optional[str] = Field(None, alias="templateMessage")
    icon_name: str = Field(..., alias="iconName")

    model_config = {"populate_by_name": True, "frozen": True}


class ClientSummary(BaseModel):
    """one caseload entry as shown on the morning review"""
    client: ClientSnapshot
    attention_score: int = Field(..., ge=0, le=100, alias="attentionScore")
    attention_level: AttentionLevel = Field(..., alias="attentionLevel")
    weekly_stats: WeeklyStats = Field(..., alias="weeklyStats")
    device_stats: Optional[DeviceStats] = Field(None, alias="deviceStats")
    primary_signal: Optional[Signal] = Field(None, alias="primarySignal")
    suggested_actions: tuple[SuggestedAction, ...] = Field((), alias="suggestedActions")

    model_config = {"populate_by_name": True, "frozen": True}


class GlobalMetrics(BaseModel):
    """caseload-wide numbers for the top of the morning review"""
    active_this_week: int = Field(0, alias="activeThisWeek")
    presence_rate: int = Field(0, alias="presenceRate")
    average_adherence: int = Field(0, alias="averageAdherence")
    attention_signals: int = Field(0, alias="attentionSignals")
    consultations_this_week: int = Field(0, alias="consultationsThisWeek")
    next_consultation: Optional[datetime] = Field(None, alias="nextConsultation")
    progress_count: int = Field(0, alias="progressCount")

    model_config = {"populate_by_name": True}


class MorningReviewResponse(BaseModel):
    summaries: list[ClientSummary] = Field(default_factory=list)
    metrics: GlobalMetrics
    practitioner_name: str = Field("", alias="practitionerName")
    generated_at: datetime = Field(..., alias="generatedAt")

    model_config = {"populate_by_name": True}
