# guided review and practitioner action schemas
# mirrors frontend GuidedReviewModal, CompletionScreen, SendMessageModal, SnoozeModal

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from afeia.models.review import ActionType, ClientSummary, SnoozeReason, UtcDatetime


class CompletionReport(BaseModel):
    """what the practitioner did during a finished guided review"""
    reviewed_count: int = Field(..., alias="reviewedCount")
    actions_by_type: dict[str, int] = Field(default_factory=dict, alias="actionsByType")
    duration_seconds: float = Field(..., alias="durationSeconds")
    messages_count: int = Field(0, alias="messagesCount")
    notes_count: int = Field(0, alias="notesCount")
    snoozed_count: int = Field(0, alias="snoozedCount")

    model_config = {"populate_by_name": True}


class ReviewSessionResponse(BaseModel):
    session_id: Optional[str] = Field(None, alias="sessionId")
    status: str
    current_index: int = Field(0, alias="currentIndex")
    total: int = 0
    current: Optional[ClientSummary] = None
    message: Optional[str] = None
    report: Optional[CompletionReport] = None

    model_config = {"populate_by_name": True}


# actions

class MessageCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000, description="message text sent to the client")


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000, description="observation kept for the next appointment")


class SnoozeRequest(BaseModel):
    reason: SnoozeReason
    until: Optional[UtcDatetime] = Field(None, description="required when reason is 'other'")


class ReviewActionRequest(BaseModel):
    """an action taken on the current client of a guided review"""
    type: ActionType
    body: Optional[str] = Field(None, min_length=1, max_length=5000)
    content: Optional[str] = Field(None, min_length=1, max_length=10000)
    reason: Optional[SnoozeReason] = None
    until: Optional[UtcDatetime] = None


class ActionResponse(BaseModel):
    client_id: str = Field(..., alias="clientId")
    action: ActionType
    status: str = "ok"
    snooze_until: Optional[datetime] = Field(None, alias="snoozeUntil")

    model_config = {"populate_by_name": True}
