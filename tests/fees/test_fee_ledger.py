from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from sk_tutorial.common.datetime_utils import MonthKey
from sk_tutorial.core.enums import PaymentMode
from sk_tutorial.core.exceptions import NotFoundError, ValidationError
from sk_tutorial.fees.service import newly_paid, upsert_period
from sk_tutorial.notifications.service import fee_paid_key
from sk_tutorial.profiles.model import StudentProfile
from sk_tutorial.students.model import FeeEntry


@pytest.fixture
def parent_profile(profiles_repo):
    def _add(contact="+91 9876543210", email="rohan.shah@example.com"):
        profiles_repo.insert(
            StudentProfile(
                class_name="3rd",
                student_name="Aarav Shah",
                birthdate="2016-06-01",
                school_name="City School",
                parent_name="Rohan Shah",
                contact_number=contact,
                address="12 MG Road",
                parent_email=email,
            )
        )

    return _add


def ledger(*entries):
    return [
        {"month": label, "paid": paid, "amount": amount, "paymentMode": "Cash"}
        for label, paid, amount in entries
    ]


def test_record_payment_sets_due_date_from_admission_day(container, make_student, students_repo):
    s = make_student(admission=date(2024, 1, 31))

    entry = container.fee_service.record_payment(s.student_id, "April 2024", "upi", "1500", recorded_by="u1")

    assert entry.period == MonthKey(2024, 4)
    assert entry.due_date == date(2024, 4, 30)
    assert entry.paid_on == date(2024, 4, 15)
    assert entry.payment_mode == PaymentMode.UPI
    assert entry.amount == Decimal("1500")
    stored = students_repo.rows[s.student_id]
    assert stored.last_fee_paid_date == date(2024, 4, 15)
    assert stored.fee_date_is_defaulted is False


def test_record_payment_upserts_same_month(container, make_student, students_repo):
    s = make_student(
        monthly_fee_status=(FeeEntry(period=MonthKey(2024, 4), paid=False, due_date=date(2024, 4, 10)),)
    )

    container.fee_service.record_payment(s.student_id, "April 2024", "Cash", 1200, "2024-04-12", recorded_by="u1")

    (only,) = students_repo.rows[s.student_id].monthly_fee_status
    assert only.paid is True
    assert only.paid_on == date(2024, 4, 12)


@pytest.mark.parametrize(
    "month,mode,amount,message",
    [
        ("", "Cash", 100, "are required"),
        ("April 2024", "", 100, "are required"),
        ("April 2024", "Cash", None, "are required"),
        ("Apr 2024", "Cash", 100, "Invalid month label"),
        ("April 2024", "Barter", 100, "Invalid payment mode"),
        ("April 2024", "Cash", "-5", "Invalid amount"),
    ],
)
def test_record_payment_validation(container, make_student, month, mode, amount, message):
    s = make_student()
    with pytest.raises(ValidationError, match=message):
        container.fee_service.record_payment(s.student_id, month, mode, amount, recorded_by="u1")


def test_record_payment_unknown_student(container):
    with pytest.raises(NotFoundError):
        container.fee_service.record_payment("65f000000000000000000000", "April 2024", "Cash", 1, recorded_by="u1")


def test_record_payment_queues_parent_email(container, make_student, parent_profile, outbox_repo):
    parent_profile(contact="9876543210")
    s = make_student(contact="+91 9876543210")

    entry = container.fee_service.record_payment(s.student_id, "April 2024", "Cash", 1500, recorded_by="u1")

    msg = outbox_repo.get_by_key(fee_paid_key(s.student_id, entry))
    assert msg is not None
    assert msg.to == "rohan.shah@example.com"
    assert "April 2024" in msg.subject


def test_payment_without_parent_email_still_succeeds(container, make_student, outbox_repo):
    s = make_student()
    container.fee_service.record_payment(s.student_id, "April 2024", "Cash", 1500, recorded_by="u1")
    assert outbox_repo.rows == {}


def test_replaying_same_ledger_queues_nothing_new(container, make_student, parent_profile, outbox_repo):
    parent_profile()
    s = make_student()
    body = ledger(("February 2024", True, 1500), ("March 2024", True, 1500), ("April 2024", False, None))

    container.fee_service.update_fee_status(s.student_id, body, updated_by="u1")
    assert len(outbox_repo.rows) == 2

    container.fee_service.update_fee_status(s.student_id, body, updated_by="u1")
    assert len(outbox_repo.rows) == 2


def test_changed_amount_counts_as_newly_paid(container, make_student, parent_profile, outbox_repo):
    parent_profile()
    s = make_student()
    container.fee_service.update_fee_status(s.student_id, ledger(("March 2024", True, 1500)), updated_by="u1")
    container.fee_service.update_fee_status(s.student_id, ledger(("March 2024", True, 1800)), updated_by="u1")

    bodies = [m.body for m in outbox_repo.rows.values()]
    assert len(bodies) == 2
    assert any("1800.00" in b for b in bodies)
    assert all(k.startswith(f"fee-paid:{s.student_id}:2024-03:") for k in outbox_repo.rows)


def test_newly_paid_ignores_unpaid_and_unchanged():
    march = FeeEntry(period=MonthKey(2024, 3), paid=True, amount=Decimal("1500"))
    april = FeeEntry(period=MonthKey(2024, 4), paid=False)
    april_paid = FeeEntry(period=MonthKey(2024, 4), paid=True, amount=Decimal("1500"))

    assert newly_paid([march, april], [march, april]) == []
    assert newly_paid([march, april], [march, april_paid]) == [april_paid]


def test_update_fee_status_rejects_duplicate_periods(container, make_student, students_repo):
    s = make_student()
    with pytest.raises(ValidationError, match="Duplicate fee entry for March 2024"):
        container.fee_service.update_fee_status(
            s.student_id, ledger(("March 2024", True, 1), ("March 2024", False, None)), updated_by="u1"
        )
    assert students_repo.fee_writes == 0


def test_update_fee_status_requires_list(container, make_student):
    s = make_student()
    with pytest.raises(ValidationError):
        container.fee_service.update_fee_status(s.student_id, {"month": "March 2024"}, updated_by="u1")


def test_update_fee_status_clears_defaulted_flag(container, make_student):
    s = make_student(fee_date_is_defaulted=True)
    updated = container.fee_service.update_fee_status(
        s.student_id, ledger(("March 2024", True, 1500)), "2024-03-03", updated_by="u1"
    )
    assert updated.fee_date_is_defaulted is False
    assert updated.last_fee_paid_date == date(2024, 3, 3)


def test_delete_payment(container, make_student, students_repo):
    s = make_student(
        monthly_fee_status=(
            FeeEntry(period=MonthKey(2024, 3), paid=True),
            FeeEntry(period=MonthKey(2024, 4), paid=False),
        )
    )

    container.fee_service.delete_payment(s.student_id, "March 2024", updated_by="u1")

    assert [e.period for e in students_repo.rows[s.student_id].monthly_fee_status] == [MonthKey(2024, 4)]
    with pytest.raises(NotFoundError, match="Payment record for specified month not found"):
        container.fee_service.delete_payment(s.student_id, "March 2024", updated_by="u1")


def test_due_entries_clamp_to_month_end(container, make_student, students_repo):
    s = make_student(admission=date(2024, 1, 31))

    out = container.fee_service.generate_due_entries(date(2024, 4, 1))

    entry = students_repo.rows[s.student_id].fee_entry(MonthKey(2024, 4))
    assert entry.paid is False
    assert entry.due_date == date(2024, 4, 30)
    assert out["processedMonth"] == "April 2024"
    assert out["studentsUpdated"] == 1


def test_due_entries_february_leap_year(container, make_student, students_repo):
    s = make_student(admission=date(2023, 12, 31))
    container.fee_service.generate_due_entries(date(2024, 2, 10))
    assert students_repo.rows[s.student_id].fee_entry(MonthKey(2024, 2)).due_date == date(2024, 2, 29)


def test_due_entries_skip_existing_and_future_admissions(container, make_student, students_repo):
    paid = make_student(name="Paid", monthly_fee_status=(FeeEntry(period=MonthKey(2024, 4), paid=True),))
    make_student(name="Late Joiner", admission=date(2024, 4, 5))
    due = make_student(name="Due", admission=date(2024, 2, 14))

    out = container.fee_service.generate_due_entries()

    assert out == {
        "message": "Monthly unpaid entry added for 1 student(s) for April 2024",
        "processedMonth": "April 2024",
        "studentsUpdated": 1,
        "totalActiveStudents": 3,
    }
    assert len(students_repo.rows[paid.student_id].monthly_fee_status) == 1
    assert students_repo.rows[due.student_id].fee_entry(MonthKey(2024, 4)).due_date == date(2024, 4, 14)

    again = container.fee_service.generate_due_entries()
    assert again["studentsUpdated"] == 0


def test_overlapping_due_entry_runs_add_the_month_once(container, make_student, students_repo, monkeypatch):
    s = make_student()
    snapshot = list(students_repo.list_active())
    # the second run listed students before the first one wrote
    monkeypatch.setattr(students_repo, "list_active", lambda: snapshot)

    assert container.fee_service.generate_due_entries()["studentsUpdated"] == 1
    assert container.fee_service.generate_due_entries()["studentsUpdated"] == 0

    assert len(students_repo.rows[s.student_id].monthly_fee_status) == 1


def test_upsert_period_appends_new_month():
    march = FeeEntry(period=MonthKey(2024, 3), paid=True)
    april = FeeEntry(period=MonthKey(2024, 4), paid=True)
    assert upsert_period((march,), april) == (march, april)
