from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from bson import Decimal128

from sk_tutorial.common.datetime_utils import MonthKey
from sk_tutorial.core.constants import STUDENTS
from sk_tutorial.core.enums import PaymentMode
from sk_tutorial.students.model import FeeEntry, Student
from sk_tutorial.students.mongo_student_repository import MongoStudentRepository


@pytest.fixture
def students(mongo_conn):
    return mongo_conn.collection(STUDENTS)


@pytest.fixture
def repo(mongo_conn):
    return MongoStudentRepository(mongo_conn)


def enrol(repo, name="Aarav Shah", grade="3rd", **kw):
    student = Student(
        student_id="",
        name=name,
        grade=grade,
        parent_name="Rohan Shah",
        contact="+91 9876543210",
        admission_date=date(2024, 1, 10),
        **kw,
    )
    return repo.insert(student, created_by="u1")


def legacy_doc(students, name="Old Record"):
    # rows created before the soft-delete flag existed
    return str(
        students.insert_one(
            {"name": name, "grade": "LKG", "parentName": "P", "contact": "1", "admissionDate": datetime(2023, 6, 5)}
        ).inserted_id
    )


def test_due_entries_are_pushed_once(repo):
    sid = enrol(repo)
    april = FeeEntry(period=MonthKey(2024, 4), paid=False, due_date=date(2024, 4, 10))

    assert repo.append_fee_entries({sid: april}) == 1
    assert repo.append_fee_entries({sid: april}) == 0

    assert [e.period for e in repo.get_active(sid).monthly_fee_status] == [MonthKey(2024, 4)]


def test_due_entry_guard_matches_year_and_month(repo):
    sid = enrol(repo, monthly_fee_status=(FeeEntry(period=MonthKey(2023, 4), paid=True),))

    assert repo.append_fee_entries({sid: FeeEntry(period=MonthKey(2024, 4), paid=False)}) == 1

    periods = [e.period for e in repo.get_active(sid).monthly_fee_status]
    assert periods == [MonthKey(2023, 4), MonthKey(2024, 4)]


def test_due_entries_ignore_inactive_and_malformed_ids(repo):
    gone = enrol(repo, name="Kabir")
    repo.soft_delete(gone, deleted_by="u1")
    entry = FeeEntry(period=MonthKey(2024, 4), paid=False)

    assert repo.append_fee_entries({gone: entry, "nope": entry}) == 0


def test_records_without_active_flag_count_as_active(repo, students):
    sid = legacy_doc(students)

    assert [s.student_id for s in repo.list_active()] == [sid]
    assert repo.set_fee_status(
        sid,
        entries=(FeeEntry(period=MonthKey(2024, 3), paid=True, amount=Decimal("1500")),),
        last_fee_paid_date=date(2024, 3, 4),
        updated_by="u1",
    )
    assert repo.get_active(sid).last_fee_paid_date == date(2024, 3, 4)
    assert repo.append_fee_entries({sid: FeeEntry(period=MonthKey(2024, 4), paid=False)}) == 1


def test_soft_deleted_records_are_hidden(repo):
    sid = enrol(repo)
    assert repo.soft_delete(sid, deleted_by="u1")

    assert repo.get_active(sid) is None
    assert repo.list_active() == []
    assert not repo.set_fee_status(sid, entries=(), last_fee_paid_date=None, updated_by="u1")


def test_fee_entry_round_trip(repo, students):
    sid = enrol(repo)
    paid = FeeEntry(
        period=MonthKey(2024, 3),
        paid=True,
        due_date=date(2024, 3, 10),
        paid_on=date(2024, 3, 4),
        payment_mode=PaymentMode.UPI,
        amount=Decimal("1500.50"),
        recorded_by="u1",
    )
    repo.set_fee_status(sid, entries=(paid,), last_fee_paid_date=date(2024, 3, 4), updated_by="u1")

    stored = students.find_one({"name": "Aarav Shah"})["monthlyFeeStatus"][0]
    assert isinstance(stored["amount"], Decimal128)
    assert (stored["year"], stored["month"]) == (2024, 3)

    (entry,) = repo.get_active(sid).monthly_fee_status
    assert entry.amount == Decimal("1500.50")
    assert entry.payment_mode == PaymentMode.UPI
    assert entry.paid_on == date(2024, 3, 4)


def test_month_label_rows_are_still_read(repo, students):
    sid = legacy_doc(students)
    students.update_one({}, {"$set": {"monthlyFeeStatus": [{"month": "February 2024", "paid": True, "amount": 900}]}})

    (entry,) = repo.get_active(sid).monthly_fee_status
    assert entry.period == MonthKey(2024, 2)
    assert entry.amount == Decimal("900")


def test_search_and_duplicate_lookup(repo):
    a = enrol(repo, name="Anaya Rao", grade="1st")
    enrol(repo, name="Kabir Das", grade="2nd")

    rows, total = repo.search(search="anaya")
    assert ([s.student_id for s in rows], total) == ([a], 1)
    assert repo.search(grade="2nd")[1] == 1

    assert repo.find_active_duplicate(name="Anaya Rao", grade="1st").student_id == a
    assert repo.find_active_duplicate(name="Anaya Rao", grade="1st", exclude_id=a) is None
