from __future__ import annotations

import hashlib
import logging
from datetime import datetime
from html import escape
from typing import Callable

from ..common.datetime_utils import now_local
from ..common.validators import is_email, normalize_contact
from ..core.exceptions import DomainError
from ..profiles.repository import ProfileRepository
from ..students.model import FeeEntry, Student
from .model import OutboxMessage
from .repository import EmailSender, OutboxRepository

logger = logging.getLogger(__name__)


class OutboxService:
    """Persistent email queue: enqueue from requests, drain from the scheduler."""

    def __init__(
        self,
        outbox: OutboxRepository,
        sender: EmailSender,
        *,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = now_local,
    ):
        self._outbox = outbox
        self._sender = sender
        self._max_attempts = max(int(max_attempts), 1)
        self._clock = clock

    def enqueue(self, *, dedupe_key: str, to: str, subject: str, body: str) -> bool:
        added = self._outbox.add_if_absent(OutboxMessage(dedupe_key=dedupe_key, to=to, subject=subject, body=body))
        if added:
            logger.info("email queued key=%s to=%s", dedupe_key, to)
        else:
            logger.info("email already queued key=%s", dedupe_key)
        return added

    def dispatch_pending(self, limit: int = 50) -> dict:
        counts = {"sent": 0, "retrying": 0, "failed": 0}
        for msg in self._outbox.list_pending(limit):
            try:
                self._sender.send(to=msg.to, subject=msg.subject, html=msg.body)
            except Exception as e:  # any relay failure is recorded on the message
                give_up = msg.attempts + 1 >= self._max_attempts
                self._outbox.record_failure(msg.message_id, error=str(e), give_up=give_up, when=self._clock())
                counts["failed" if give_up else "retrying"] += 1
                logger.warning(
                    "email send failed key=%s attempt=%d/%d: %s",
                    msg.dedupe_key, msg.attempts + 1, self._max_attempts, e,
                )
                continue
            self._outbox.mark_sent(msg.message_id, self._clock())
            counts["sent"] += 1

        if any(counts.values()):
            logger.info("outbox dispatch %s", counts)
        return counts


def fee_paid_key(student_id: str, entry: FeeEntry) -> str:
    """One key per (student, period, amount, mode): a corrected payment gets its own email."""
    amount = entry.amount.normalize() if entry.amount is not None else ""
    mode = entry.payment_mode.value if entry.payment_mode else ""
    digest = hashlib.sha1(f"{amount}|{mode}".encode()).hexdigest()[:10]
    return f"fee-paid:{student_id}:{entry.period.year}-{entry.period.month:02d}:{digest}"


def render_fee_paid_email(student: Student, entry: FeeEntry, parent_name: str) -> str:
    amount = f"{entry.amount:.2f}" if entry.amount is not None else "-"
    mode = entry.payment_mode.value if entry.payment_mode else "-"
    paid_on = entry.paid_on.strftime("%d %b %Y") if entry.paid_on else "-"
    return (
        f"<p>Dear {escape(parent_name or 'Parent')},</p>"
        f"<p>We have received the tuition fee for <strong>{escape(student.name)}</strong> "
        f"({escape(student.grade)}) for <strong>{escape(entry.period.label)}</strong>.</p>"
        "<table>"
        f"<tr><td>Amount</td><td>{escape(amount)}</td></tr>"
        f"<tr><td>Payment mode</td><td>{escape(mode)}</td></tr>"
        f"<tr><td>Paid on</td><td>{escape(paid_on)}</td></tr>"
        "</table>"
        "<p>Thank you,<br>SK Tutorial</p>"
    )


class FeeNotifier:
    """Queue a confirmation email to the parent for each newly paid fee entry."""

    def __init__(self, profiles: ProfileRepository, outbox: OutboxService):
        self._profiles = profiles
        self._outbox = outbox

    def fee_paid(self, student: Student, entry: FeeEntry) -> bool:
        # never fails the payment that triggered it
        try:
            profile = self._profiles.find_by_contact(normalize_contact(student.contact))
            if not profile or not is_email(profile.parent_email or ""):
                logger.info("no parent email for student=%s, skipping fee confirmation", student.student_id)
                return False
            return self._outbox.enqueue(
                dedupe_key=fee_paid_key(student.student_id, entry),
                to=profile.parent_email,
                subject=f"Fee received for {entry.period.label}",
                body=render_fee_paid_email(student, entry, profile.parent_name or student.parent_name),
            )
        except DomainError:
            logger.exception("could not queue fee confirmation student=%s period=%s", student.student_id, entry.period.label)
            return False
