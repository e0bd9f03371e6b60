from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import mongomock
import pytest
from bson import ObjectId

from sk_tutorial.container import wire
from sk_tutorial.core.enums import OutboxStatus, Role
from sk_tutorial.core.exceptions import UpstreamError
from sk_tutorial.database.connection import DatabaseConnection, DBConfig
from sk_tutorial.main import create_app
from sk_tutorial.notifications.model import OutboxMessage
from sk_tutorial.profiles.model import UploadedMedia
from sk_tutorial.students.model import Student
from sk_tutorial.users.model import User

from werkzeug.security import generate_password_hash

FIXED_NOW = datetime(2024, 4, 15, 10, 30, 0)


def new_id() -> str:
    return str(ObjectId())


class InMemoryUsers:
    def __init__(self):
        self.by_id: dict[str, User] = {}
        self.logins: list[tuple[str, datetime]] = []

    def add(self, user: User) -> User:
        self.by_id[user.user_id] = user
        return user

    def get_by_id(self, user_id):
        return self.by_id.get(user_id)

    def get_by_email(self, email):
        email = (email or "").strip().lower()
        return next((u for u in self.by_id.values() if u.email == email), None)

    def create_user(self, *, name, email, password_hash, role):
        user = User(user_id=new_id(), name=name, email=email.lower(), password_hash=password_hash, role=role)
        self.by_id[user.user_id] = user
        return user.user_id

    def touch_last_login(self, user_id, when):
        self.logins.append((user_id, when))


class InMemoryStudents:
    def __init__(self):
        self.rows: dict[str, Student] = {}
        self.fee_writes = 0

    def add(self, student: Student) -> Student:
        if not student.student_id:
            student = replace(student, student_id=new_id())
        self.rows[student.student_id] = student
        return student

    def _active(self):
        return [s for s in self.rows.values() if s.is_active]

    def search(self, *, search=None, grade=None, skip=0, limit=50):
        rows = self._active()
        if search:
            needle = search.lower()
            rows = [s for s in rows if needle in s.name.lower() or needle in s.parent_name.lower() or needle in s.contact]
        if grade:
            rows = [s for s in rows if s.grade == grade]
        return rows[skip:skip + limit], len(rows)

    def list_active(self):
        return self._active()

    def get_active(self, student_id):
        s = self.rows.get(student_id)
        return s if s and s.is_active else None

    def get_active_many(self, student_ids):
        return {sid: self.rows[sid] for sid in student_ids if sid in self.rows and self.rows[sid].is_active}

    def find_active_duplicate(self, *, name, grade, exclude_id=None):
        return next(
            (s for s in self._active() if s.name == name and s.grade == grade and s.student_id != exclude_id),
            None,
        )

    def insert(self, student, *, created_by):
        return self.add(replace(student, student_id=new_id())).student_id

    def save(self, student, *, updated_by):
        if not self.get_active(student.student_id):
            return False
        self.rows[student.student_id] = student
        return True

    def soft_delete(self, student_id, *, deleted_by):
        s = self.get_active(student_id)
        if not s:
            return False
        self.rows[student_id] = replace(s, is_active=False)
        return True

    def set_fee_status(self, student_id, *, entries, last_fee_paid_date, updated_by):
        s = self.get_active(student_id)
        if not s:
            return False
        self.fee_writes += 1
        self.rows[student_id] = replace(
            s,
            monthly_fee_status=tuple(entries),
            last_fee_paid_date=last_fee_paid_date,
            fee_date_is_defaulted=False,
        )
        return True

    def append_fee_entries(self, entries):
        appended = 0
        for student_id, entry in entries.items():
            s = self.get_active(student_id)
            if s is None or s.fee_entry(entry.period) is not None:
                continue
            self.rows[student_id] = replace(s, monthly_fee_status=s.monthly_fee_status + (entry,))
            appended += 1
        return appended


class InMemoryAttendance:
    def __init__(self):
        self.records: dict[tuple[str, int], object] = {}
        self.reads = 0
        self.bulk_calls = 0
        self.fail_writes = False

    def get_many(self, keys):
        self.reads += 1
        return {k: self.records[k] for k in keys if k in self.records}

    def bulk_apply(self, *, updates, inserts, actor):
        self.bulk_calls += 1
        if self.fail_writes:
            raise UpstreamError("write attendance records failed: connection reset")
        updated = created = 0
        for w in updates:
            rec = self.records[(w.student_id, w.year)]
            months = dict(rec.months)
            months[w.month_name] = tuple(w.entries)
            self.records[(w.student_id, w.year)] = replace(
                rec, months=months, student_name=w.student_name, student_grade=w.student_grade
            )
            updated += 1
        for r in inserts:
            key = (r.student_id, r.year)
            if key in self.records:
                # upsert landed on a record another request created
                rec = self.records[key]
                self.records[key] = replace(
                    rec,
                    months={**rec.months, **r.months},
                    student_name=r.student_name,
                    student_grade=r.student_grade,
                )
                updated += 1
            else:
                self.records[key] = replace(r, record_id=new_id())
                created += 1
        return updated, created

    def list_for_month(self, *, year, month_name, grade=None, student_id=None):
        rows = [
            r for (sid, y), r in self.records.items()
            if y == year and month_name in r.months
            and (grade is None or r.student_grade == grade)
            and (student_id is None or sid == student_id)
        ]
        return sorted(rows, key=lambda r: (r.student_grade, r.student_name))

    def months_with_data(self, year):
        from sk_tutorial.core.constants import MONTH_NAMES

        names = {m for (_, y), r in self.records.items() if y == year for m, e in r.months.items() if e}
        return [m for m in MONTH_NAMES if m in names]

    def distinct_years(self):
        return sorted({y for _, y in self.records}, reverse=True)


class InMemoryProfiles:
    def __init__(self):
        self.rows: dict[str, object] = {}

    def search(self, *, search=None, class_name=None, sort_by="createdAt", ascending=False, limit=100):
        rows = list(self.rows.values())
        if search:
            rows = [p for p in rows if search.lower() in p.student_name.lower()]
        if class_name:
            rows = [p for p in rows if p.class_name == class_name]
        return rows[:limit]

    def get(self, profile_id):
        return self.rows.get(profile_id)

    def find_duplicate(self, *, student_name, parent_name, exclude_id=None):
        return next(
            (
                p for p in self.rows.values()
                if p.student_name.lower() == student_name.lower()
                and p.parent_name.lower() == parent_name.lower()
                and p.profile_id != exclude_id
            ),
            None,
        )

    def find_by_contact(self, contact_normalized):
        from sk_tutorial.common.validators import normalize_contact

        return next((p for p in self.rows.values() if normalize_contact(p.contact_number) == contact_normalized), None)

    def insert(self, profile):
        pid = new_id()
        self.rows[pid] = replace(profile, profile_id=pid)
        return pid

    def save(self, profile):
        if profile.profile_id not in self.rows:
            return False
        self.rows[profile.profile_id] = profile
        return True

    def delete(self, profile_id):
        return self.rows.pop(profile_id, None) is not None


class InMemoryOutbox:
    def __init__(self):
        self.rows: dict[str, OutboxMessage] = {}

    def add_if_absent(self, message):
        if message.dedupe_key in self.rows:
            return False
        self.rows[message.dedupe_key] = replace(message, message_id=message.dedupe_key, status=OutboxStatus.PENDING)
        return True

    def list_pending(self, limit):
        return [m for m in self.rows.values() if m.status == OutboxStatus.PENDING][:limit]

    def mark_sent(self, message_id, when):
        m = self.rows[message_id]
        self.rows[message_id] = replace(m, status=OutboxStatus.SENT, attempts=m.attempts + 1, sent_at=when)

    def record_failure(self, message_id, *, error, give_up, when):
        m = self.rows[message_id]
        self.rows[message_id] = replace(
            m,
            status=OutboxStatus.FAILED if give_up else OutboxStatus.PENDING,
            attempts=m.attempts + 1,
            last_error=error,
        )

    def get_by_key(self, dedupe_key):
        return self.rows.get(dedupe_key)


class FakeSender:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Optional[Exception] = None

    def send(self, *, to, subject, html):
        if self.fail_with:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "html": html})


class FakeMedia:
    def __init__(self):
        self.uploads = 0
        self.destroyed: list[str] = []
        self.fail_upload = False

    def upload(self, file):
        if self.fail_upload:
            raise UpstreamError("Photo upload failed: timeout")
        self.uploads += 1
        return UploadedMedia(url=f"https://res.cloudinary.com/demo/students/p{self.uploads}.jpg", public_id=f"students/p{self.uploads}")

    def destroy(self, public_id):
        self.destroyed.append(public_id)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def mongo_conn():
    """A DatabaseConnection backed by mongomock instead of a live server."""
    conn = DatabaseConnection(DBConfig(uri="mongodb://localhost", database="sk-tutorial-test"), client=mongomock.MongoClient())
    yield conn.open()
    conn.close()


@pytest.fixture
def users_repo():
    return InMemoryUsers()


@pytest.fixture
def students_repo():
    return InMemoryStudents()


@pytest.fixture
def attendance_repo():
    return InMemoryAttendance()


@pytest.fixture
def profiles_repo():
    return InMemoryProfiles()


@pytest.fixture
def outbox_repo():
    return InMemoryOutbox()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def media():
    return FakeMedia()


@pytest.fixture
def container(users_repo, students_repo, attendance_repo, profiles_repo, outbox_repo, sender, media, fixed_now):
    return wire(
        conn=None,
        users_repo=users_repo,
        students_repo=students_repo,
        attendance_repo=attendance_repo,
        profiles_repo=profiles_repo,
        outbox_repo=outbox_repo,
        sender=sender,
        media=media,
        secret_key="test-secret",
        cron_secret="test-cron-secret",
        mark_roles=("admin", "teacher"),
        outbox_max_attempts=3,
        clock=lambda: fixed_now,
    )


@pytest.fixture
def make_student(students_repo):
    def _make(name="Aarav Shah", grade="3rd", admission=date(2024, 1, 10), contact="+91 9876543210", **kw):
        return students_repo.add(
            Student(
                student_id="",
                name=name,
                grade=grade,
                parent_name=kw.pop("parent_name", "Rohan Shah"),
                contact=contact,
                admission_date=admission,
                **kw,
            )
        )

    return _make


@pytest.fixture
def staff(users_repo):
    """Active admin and teacher accounts, password 'secret-pass'."""
    pw = generate_password_hash("secret-pass")
    admin = users_repo.add(User(new_id(), "Admin User", "admin@sktutorial.com", pw, Role.ADMIN))
    teacher = users_repo.add(User(new_id(), "Teacher User", "teacher@sktutorial.com", pw, Role.TEACHER))
    return {"admin": admin, "teacher": teacher}


@pytest.fixture
def app(container):
    app = create_app(container=container, settings_module="config.testing")
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(container, staff):
    def _header(role="admin"):
        token = container.token_service.issue(staff[role])
        return {"Authorization": f"Bearer {token}"}

    return _header

