# caseload repository - loads one practitioner's clients and their recent
# activity from mongodb and materializes them as read-only ClientSnapshots

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import BaseModel, ValidationError
from pymongo.errors import PyMongoError

from afeia.config import settings
from afeia.models.review import (
    CarePlan,
    ClientSnapshot,
    DeviceInsight,
    DeviceSummary,
    JournalEntry,
    Message,
)
from afeia.services.db import Database
from afeia.services.errors import CaseloadFetchError

logger = logging.getLogger(__name__)


def _group_by_client(docs: list[dict]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = defaultdict(list)
    for doc in docs:
        grouped[str(doc.get("client_id", ""))].append(doc)
    return grouped


def _parse_many(model: type[BaseModel], docs: list[dict], client_id: str) -> tuple:
    """validate activity documents, skipping the malformed ones"""
    parsed = []
    for doc in docs:
        try:
            parsed.append(model.model_validate(doc))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed {model.__name__} {doc.get('_id')} for client {client_id}: "
                f"{e.error_count()} error(s)"
            )
    return tuple(parsed)


def _latest(docs: list[dict], field: str) -> Optional[datetime]:
    values = [d[field] for d in docs if isinstance(d.get(field), datetime)]
    return max(values) if values else None


def _earliest(docs: list[dict], field: str) -> Optional[datetime]:
    values = [d[field] for d in docs if isinstance(d.get(field), datetime)]
    return min(values) if values else None


class CaseloadRepository:
    """reads everything the attention engine needs for one caseload"""

    def __init__(self, db: Database, lookback_days: Optional[int] = None):
        self._db = db
        self._lookback_days = lookback_days or settings.CASELOAD_LOOKBACK_DAYS

    async def _find(self, collection, query: dict) -> list[dict]:
        return await collection.find(query).to_list(length=None)

    async def fetch_caseload(self, practitioner_id: str, now: datetime) -> list[ClientSnapshot]:
        """load the caseload or raise CaseloadFetchError, never a partial one"""
        try:
            clients = await self._find(
                self._db.clients,
                {"practitioner_id": practitioner_id, "deleted_at": None},
            )
            if not clients:
                logger.info(f"Practitioner {practitioner_id} has no clients")
                return []

            client_ids = [str(c["_id"]) for c in clients]
            in_caseload = {"$in": client_ids}
            cutoff = now - timedelta(days=self._lookback_days)

            (
                journals,
                messages,
                summaries,
                insights,
                plans,
                consultations,
                appointments,
                notes,
            ) = await asyncio.gather(
                self._find(self._db.journal_entries, {"client_id": in_caseload, "date": {"$gte": cutoff}}),
                self._find(self._db.messages, {"client_id": in_caseload, "sent_at": {"$gte": cutoff}}),
                self._find(self._db.device_summaries, {"client_id": in_caseload, "date": {"$gte": cutoff}}),
                self._find(self._db.device_insights, {"client_id": in_caseload, "created_at": {"$gte": cutoff}}),
                self._find(self._db.care_plans, {"client_id": in_caseload}),
                self._find(self._db.consultations, {"client_id": in_caseload, "date": {"$lte": now}}),
                self._find(
                    self._db.appointments,
                    {"client_id": in_caseload, "status": "scheduled", "starts_at": {"$gte": now}},
                ),
                self._find(self._db.practitioner_notes, {"client_id": in_caseload}),
            )
        except PyMongoError as e:
            logger.error(f"Caseload fetch failed for practitioner {practitioner_id}: {e}")
            raise CaseloadFetchError("Could not load the caseload") from e

        grouped = {
            "journals": _group_by_client(journals),
            "messages": _group_by_client(messages),
            "summaries": _group_by_client(summaries),
            "insights": _group_by_client(insights),
            "plans": _group_by_client(plans),
            "consultations": _group_by_client(consultations),
            "appointments": _group_by_client(appointments),
            "notes": _group_by_client(notes),
        }

        snapshots = [self._build_snapshot(doc, grouped) for doc in clients]
        logger.info(f"Loaded {len(snapshots)} clients for practitioner {practitioner_id}")
        return snapshots

    def _build_snapshot(self, doc: dict, grouped: dict[str, dict[str, list[dict]]]) -> ClientSnapshot:
        client_id = str(doc["_id"])

        def docs(kind: str) -> list[dict]:
            return grouped[kind].get(client_id, [])

        data: dict[str, Any] = {
            "id": client_id,
            "name": doc.get("name"),
            "is_premium": doc.get("is_premium", False),
            "created_at": doc.get("created_at"),
            "activated": doc.get("activated", True),
            "deleted_at": doc.get("deleted_at"),
            "is_snoozed": doc.get("is_snoozed", False),
            "snooze_until": doc.get("snooze_until"),
            "snooze_reason": doc.get("snooze_reason"),
            "journal_entries": _parse_many(JournalEntry, docs("journals"), client_id),
            "device_summaries": _parse_many(DeviceSummary, docs("summaries"), client_id),
            "device_insights": _parse_many(DeviceInsight, docs("insights"), client_id),
            "messages": _parse_many(Message, docs("messages"), client_id),
            "care_plans": _parse_many(CarePlan, docs("plans"), client_id),
            "last_consultation_date": _latest(docs("consultations"), "date"),
            "next_appointment_date": _earliest(docs("appointments"), "starts_at"),
            "last_session_note_date": _latest(docs("notes"), "updated_at"),
        }

        try:
            return ClientSnapshot.model_validate(data)
        except ValidationError as e:
            # a broken client record fails the whole pass rather than dropping the client
            logger.error(f"Client {client_id} record is invalid: {e}")
            raise CaseloadFetchError(f"Client {client_id} record is invalid") from e
