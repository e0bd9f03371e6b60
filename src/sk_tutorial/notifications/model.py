from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import OutboxStatus


@dataclass(frozen=True)
class OutboxMessage:
    """Email waiting in (or already through) the outbox."""

    dedupe_key: str
    to: str
    subject: str
    body: str
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    message_id: Optional[str] = None
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
