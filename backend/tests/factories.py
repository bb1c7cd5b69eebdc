# builders for snapshots, summaries and mongodb documents used across tests
# every date is relative to the pinned reference instant NOW

from datetime import datetime, timedelta, timezone
from typing import Optional

from bson import ObjectId
from jose import jwt

from afeia.config import settings
from afeia.models.review import (
    CarePlan,
    ClientSnapshot,
    ClientSummary,
    DeviceInsight,
    DeviceSummary,
    JournalEntry,
    Message,
    WeeklyStats,
)
from afeia.services.auth_service import ACCESS_TOKEN_TYPE
from afeia.services.morning_review.scoring import get_attention_level

NOW = datetime(2025, 6, 15, 9, 0, tzinfo=timezone.utc)

# test ids
PRACTITIONER_OID = ObjectId("6650a1f0c2a4b3d2e1f00001")
OTHER_PRACTITIONER_OID = ObjectId("6650a1f0c2a4b3d2e1f00002")
CLIENT_USER_OID = ObjectId("6650a1f0c2a4b3d2e1f00003")
PRACTITIONER_ID = str(PRACTITIONER_OID)
OTHER_PRACTITIONER_ID = str(OTHER_PRACTITIONER_OID)
CLIENT_USER_ID = str(CLIENT_USER_OID)

ADHERENCE_FIELDS = (
    "adherence_hydration",
    "adherence_breathing",
    "adherence_movement",
    "adherence_herbs",
)


def days_ago(days: float, hours: float = 0) -> datetime:
    return NOW - timedelta(days=days, hours=hours)


def adherence(done: int) -> dict:
    """the first `done` habits marked as done, the rest explicitly not done"""
    return {field: i < done for i, field in enumerate(ADHERENCE_FIELDS)}


def make_entry(days: float, mood=None, energy=None, text=None, done: int = 0) -> JournalEntry:
    return JournalEntry(date=days_ago(days), mood=mood, energy=energy, text=text, **adherence(done))


def client_message(days: float, read: bool = False) -> Message:
    sent_at = days_ago(days)
    return Message(sender="client", sent_at=sent_at, read_at=sent_at if read else None)


def practitioner_message(days: float) -> Message:
    return Message(sender="practitioner", sent_at=days_ago(days))


def draft_plan(days: float) -> CarePlan:
    return CarePlan(status="draft", updated_at=days_ago(days))


def night(days: float, sleep: Optional[float] = 7.5, score: Optional[float] = 80,
          hrv: Optional[float] = 50, activity: Optional[float] = 60) -> DeviceSummary:
    return DeviceSummary(
        date=days_ago(days),
        sleep_duration=sleep,
        sleep_score=score,
        hrv_avg=hrv,
        activity_level=activity,
    )


def insight(days: float, level: str = "attention") -> DeviceInsight:
    return DeviceInsight(created_at=days_ago(days), level=level, title="Recovery is low")


def make_client(client_id: str = "c1", **fields) -> ClientSnapshot:
    """a long-standing active client with no activity unless given"""
    data = {"id": client_id, "name": "Alice", "created_at": days_ago(120)}
    data.update(fields)
    return ClientSnapshot(**data)


def make_summary(client_id: str, score: int, name: str = "Alice") -> ClientSummary:
    return ClientSummary(
        client=make_client(client_id, name=name),
        attention_score=score,
        attention_level=get_attention_level(score),
        weekly_stats=WeeklyStats(),
    )


# mongodb documents

def client_doc(practitioner_id: str, name: str = "Alice", **fields) -> dict:
    doc = {
        "_id": ObjectId(),
        "practitioner_id": practitioner_id,
        "name": name,
        "is_premium": False,
        "created_at": days_ago(120),
        "activated": True,
        "deleted_at": None,
        "is_snoozed": False,
        "snooze_until": None,
        "snooze_reason": None,
    }
    doc.update(fields)
    return doc


def journal_doc(client_id: str, days: float, done: int = 0, **fields) -> dict:
    doc = {"_id": ObjectId(), "client_id": client_id, "date": days_ago(days), **adherence(done)}
    doc.update(fields)
    return doc


def message_doc(client_id: str, days: float, sender: str = "client", read: bool = False) -> dict:
    sent_at = days_ago(days)
    return {
        "_id": ObjectId(),
        "client_id": client_id,
        "sender": sender,
        "body": "Hello",
        "sent_at": sent_at,
        "read_at": sent_at if read else None,
    }


def consultation_doc(client_id: str, days: float) -> dict:
    return {"_id": ObjectId(), "client_id": client_id, "date": days_ago(days)}


# tokens are issued by the main platform, tests sign their own with the shared secret

def make_access_token(subject: str, role: str = "practitioner", expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": subject, "role": role, "exp": expire, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
