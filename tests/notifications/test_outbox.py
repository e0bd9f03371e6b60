from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

from sk_tutorial.common.datetime_utils import MonthKey
from sk_tutorial.core.enums import OutboxStatus, PaymentMode
from sk_tutorial.notifications.service import OutboxService, fee_paid_key, render_fee_paid_email
from sk_tutorial.students.model import FeeEntry, Student


def queue(svc, key="fee-paid:s1:2024-03", to="parent@example.com"):
    return svc.enqueue(dedupe_key=key, to=to, subject="Fee received", body="<p>ok</p>")


def test_enqueue_is_deduplicated(container, outbox_repo):
    assert queue(container.outbox_service) is True
    assert queue(container.outbox_service) is False
    assert len(outbox_repo.rows) == 1


def test_dispatch_sends_and_marks_sent(container, outbox_repo, sender, fixed_now):
    queue(container.outbox_service)

    counts = container.outbox_service.dispatch_pending()

    assert counts == {"sent": 1, "retrying": 0, "failed": 0}
    assert sender.sent == [{"to": "parent@example.com", "subject": "Fee received", "html": "<p>ok</p>"}]
    msg = outbox_repo.get_by_key("fee-paid:s1:2024-03")
    assert msg.status == OutboxStatus.SENT
    assert msg.sent_at == fixed_now

    assert container.outbox_service.dispatch_pending() == {"sent": 0, "retrying": 0, "failed": 0}
    assert len(sender.sent) == 1


def test_failed_send_retries_then_gives_up(container, outbox_repo, sender):
    queue(container.outbox_service)
    sender.fail_with = ConnectionRefusedError("smtp down")

    assert container.outbox_service.dispatch_pending()["retrying"] == 1
    assert container.outbox_service.dispatch_pending()["retrying"] == 1
    assert container.outbox_service.dispatch_pending()["failed"] == 1

    msg = outbox_repo.get_by_key("fee-paid:s1:2024-03")
    assert msg.status == OutboxStatus.FAILED
    assert msg.attempts == 3
    assert "smtp down" in msg.last_error
    assert container.outbox_service.dispatch_pending() == {"sent": 0, "retrying": 0, "failed": 0}


def test_recovered_relay_delivers_retried_message(container, outbox_repo, sender):
    queue(container.outbox_service)
    sender.fail_with = TimeoutError("timed out")
    container.outbox_service.dispatch_pending()
    sender.fail_with = None

    assert container.outbox_service.dispatch_pending()["sent"] == 1
    assert outbox_repo.get_by_key("fee-paid:s1:2024-03").attempts == 2


def test_max_attempts_floor_is_one(outbox_repo, sender):
    svc = OutboxService(outbox_repo, sender, max_attempts=0)
    queue(svc)
    sender.fail_with = RuntimeError("boom")
    assert svc.dispatch_pending()["failed"] == 1


def test_fee_paid_key_pads_month_and_tracks_amount():
    entry = FeeEntry(period=MonthKey(2024, 3), paid=True, payment_mode=PaymentMode.CASH, amount=Decimal("1500"))
    key = fee_paid_key("abc", entry)

    assert key.startswith("fee-paid:abc:2024-03:")
    assert fee_paid_key("abc", replace(entry, amount=Decimal("1500.00"))) == key
    assert fee_paid_key("abc", replace(entry, amount=Decimal("1800"))) != key
    assert fee_paid_key("abc", replace(entry, payment_mode=PaymentMode.UPI)) != key


def test_fee_email_escapes_and_formats():
    student = Student(
        student_id="s1",
        name="Aarav <b>Shah</b>",
        grade="3rd",
        parent_name="Rohan",
        contact="+91 9876543210",
        admission_date=date(2024, 1, 10),
    )
    entry = FeeEntry(
        period=MonthKey(2024, 3),
        paid=True,
        paid_on=date(2024, 3, 4),
        payment_mode=PaymentMode.UPI,
        amount=Decimal("1500"),
    )

    html = render_fee_paid_email(student, entry, "Rohan Shah")

    assert "Aarav &lt;b&gt;Shah&lt;/b&gt;" in html
    assert "March 2024" in html
    assert "1500.00" in html
    assert "04 Mar 2024" in html
    assert "UPI" in html
