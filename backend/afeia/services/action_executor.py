# practitioner actions - message, observation note, snooze
# every successful action is logged to practitioner_actions, best-effort

import logging
from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from afeia.models.review import ActionType, SnoozeReason
from afeia.services.db import Database
from afeia.services.errors import ActionExecutionError

logger = logging.getLogger(__name__)

SNOOZE_PRESET_DAYS = {
    SnoozeReason.VACATION: 14,
    SnoozeReason.SPACED_FOLLOWUP: 30,
}


def resolve_snooze_until(reason: SnoozeReason, now: datetime, until: Optional[datetime] = None) -> datetime:
    """end of a snooze: preset duration, or the explicit date for 'other'"""
    if reason == SnoozeReason.OTHER:
        if until is None:
            raise ValueError("An end date is required for a custom snooze")
        if until <= now:
            raise ValueError("Snooze end date must be in the future")
        return until
    return now + timedelta(days=SNOOZE_PRESET_DAYS[reason])


class ActionExecutor:
    """executes practitioner actions against the database for one practitioner"""

    def __init__(self, db: Database, practitioner_id: str):
        self._db = db
        self._practitioner_id = practitioner_id

    async def _owned_client(self, client_id: str) -> dict:
        try:
            oid = ObjectId(client_id)
        except (InvalidId, TypeError):
            raise ActionExecutionError(f"Client {client_id} not found", not_found=True)

        client = await self._db.clients.find_one({"_id": oid, "practitioner_id": self._practitioner_id})
        if not client:
            raise ActionExecutionError(f"Client {client_id} not found", not_found=True)
        return client

    async def _log_action(self, client_id: str, action: ActionType, now: datetime, metadata: Optional[dict] = None):
        # audit trail is best-effort, the action itself already happened
        try:
            await self._db.practitioner_actions.insert_one({
                "practitioner_id": self._practitioner_id,
                "client_id": client_id,
                "type": action.value,
                "metadata": metadata or {},
                "created_at": now,
            })
        except PyMongoError as e:
            logger.warning(f"Could not log {action.value} for client {client_id}: {e}")

    async def send_message(self, client_id: str, body: str, now: datetime) -> None:
        try:
            await self._owned_client(client_id)
            await self._db.messages.insert_one({
                "client_id": client_id,
                "sender": "practitioner",
                "practitioner_id": self._practitioner_id,
                "body": body,
                "sent_at": now,
                "read_at": None,
            })
        except PyMongoError as e:
            logger.error(f"Sending message to client {client_id} failed: {e}")
            raise ActionExecutionError("Could not send the message") from e
        await self._log_action(client_id, ActionType.SEND_MESSAGE, now)
        logger.info(f"Message sent to client {client_id} by practitioner {self._practitioner_id}")

    async def save_observation(self, client_id: str, content: str, now: datetime) -> None:
        try:
            await self._owned_client(client_id)
            await self._db.practitioner_notes.update_one(
                {"client_id": client_id, "practitioner_id": self._practitioner_id},
                {"$set": {"content": content, "updated_at": now}},
                upsert=True,
            )
        except PyMongoError as e:
            logger.error(f"Saving note for client {client_id} failed: {e}")
            raise ActionExecutionError("Could not save the observation") from e
        await self._log_action(client_id, ActionType.NOTE_OBSERVATION, now)
        logger.info(f"Observation saved for client {client_id}")

    async def snooze_client(self, client_id: str, reason: SnoozeReason, until: datetime, now: datetime) -> None:
        try:
            client = await self._owned_client(client_id)
            await self._db.clients.update_one(
                {"_id": client["_id"]},
                {"$set": {
                    "is_snoozed": True,
                    "snooze_until": until,
                    "snooze_reason": reason.value,
                    "updated_at": now,
                }},
            )
        except PyMongoError as e:
            logger.error(f"Snoozing client {client_id} failed: {e}")
            raise ActionExecutionError("Could not snooze the client") from e
        await self._log_action(
            client_id, ActionType.SNOOZE, now,
            {"reason": reason.value, "until": until.isoformat()},
        )
        logger.info(f"Client {client_id} snoozed until {until.isoformat()} ({reason.value})")

    async def unsnooze_client(self, client_id: str, now: datetime) -> None:
        try:
            client = await self._owned_client(client_id)
            await self._db.clients.update_one(
                {"_id": client["_id"]},
                {"$set": {
                    "is_snoozed": False,
                    "snooze_until": None,
                    "snooze_reason": None,
                    "updated_at": now,
                }},
            )
        except PyMongoError as e:
            logger.error(f"Resuming client {client_id} failed: {e}")
            raise ActionExecutionError("Could not resume follow-up") from e
        logger.info(f"Client {client_id} resumed")
