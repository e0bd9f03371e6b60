from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import OutboxMessage


class OutboxRepository(Protocol):
    def add_if_absent(self, message: OutboxMessage) -> bool:
        """Insert a pending message. False when the dedupe key is already taken."""

        raise NotImplementedError

    def list_pending(self, limit: int) -> Sequence[OutboxMessage]:
        raise NotImplementedError

    def mark_sent(self, message_id: str, when: datetime) -> None:
        raise NotImplementedError

    def record_failure(self, message_id: str, *, error: str, give_up: bool, when: datetime) -> None:
        raise NotImplementedError

    def get_by_key(self, dedupe_key: str) -> Optional[OutboxMessage]:
        raise NotImplementedError


class EmailSender(Protocol):
    def send(self, *, to: str, subject: str, html: str) -> None:
        raise NotImplementedError
