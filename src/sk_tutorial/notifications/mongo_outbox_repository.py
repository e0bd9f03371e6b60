from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from ..core.constants import OUTBOX
from ..core.enums import OutboxStatus
from ..database.connection import DatabaseConnection
from ..database.mongo_base import storage_errors, try_object_id
from .model import OutboxMessage
from .repository import OutboxRepository


def _from_doc(doc: dict) -> OutboxMessage:
    return OutboxMessage(
        message_id=str(doc["_id"]),
        dedupe_key=doc["dedupeKey"],
        to=doc.get("to", ""),
        subject=doc.get("subject", ""),
        body=doc.get("body", ""),
        status=OutboxStatus(doc.get("status", OutboxStatus.PENDING.value)),
        attempts=int(doc.get("attempts", 0)),
        last_error=doc.get("lastError"),
        created_at=doc.get("createdAt"),
        sent_at=doc.get("sentAt"),
    )


class MongoOutboxRepository(OutboxRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _outbox(self):
        return self._conn.collection(OUTBOX)

    def add_if_absent(self, message: OutboxMessage) -> bool:
        now = datetime.utcnow()
        doc = {
            "dedupeKey": message.dedupe_key,
            "to": message.to,
            "subject": message.subject,
            "body": message.body,
            "status": OutboxStatus.PENDING.value,
            "attempts": 0,
            "lastError": None,
            "createdAt": now,
            "updatedAt": now,
            "sentAt": None,
        }
        with storage_errors("enqueue email"):
            try:
                self._outbox.insert_one(doc)
            except DuplicateKeyError:
                return False
        return True

    def list_pending(self, limit: int) -> Sequence[OutboxMessage]:
        with storage_errors("load pending emails"):
            cursor = (
                self._outbox.find({"status": OutboxStatus.PENDING.value})
                .sort("createdAt", ASCENDING)
                .limit(int(limit))
            )
            return [_from_doc(d) for d in cursor]

    def mark_sent(self, message_id: str, when: datetime) -> None:
        with storage_errors("mark email sent"):
            self._outbox.update_one(
                {"_id": try_object_id(message_id)},
                {
                    "$set": {"status": OutboxStatus.SENT.value, "sentAt": when, "updatedAt": when},
                    "$inc": {"attempts": 1},
                },
            )

    def record_failure(self, message_id: str, *, error: str, give_up: bool, when: datetime) -> None:
        status = OutboxStatus.FAILED if give_up else OutboxStatus.PENDING
        with storage_errors("record email failure"):
            self._outbox.update_one(
                {"_id": try_object_id(message_id)},
                {
                    "$set": {"status": status.value, "lastError": error, "updatedAt": when},
                    "$inc": {"attempts": 1},
                },
            )

    def get_by_key(self, dedupe_key: str) -> Optional[OutboxMessage]:
        with storage_errors("load email"):
            doc = self._outbox.find_one({"dedupeKey": dedupe_key})
        return _from_doc(doc) if doc else None
