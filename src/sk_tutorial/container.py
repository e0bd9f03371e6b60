from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.mongo_attendance_repository import MongoAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .database.connection import DBConfig, DatabaseConnection
from .fees.service import FeeLedgerService
from .notifications.mongo_outbox_repository import MongoOutboxRepository
from .notifications.repository import EmailSender, OutboxRepository
from .notifications.service import FeeNotifier, OutboxService
from .profiles.mongo_profile_repository import MongoProfileRepository
from .profiles.repository import MediaStorage, ProfileRepository
from .profiles.service import ProfileService
from .profiles.storage import CloudinaryMediaStorage
from .reports.service import AttendanceReportService
from .students.mongo_student_repository import MongoStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService
from .users.mongo_user_repository import MongoUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, TokenService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    students_repo: StudentRepository
    attendance_repo: AttendanceRepository
    profiles_repo: ProfileRepository
    outbox_repo: OutboxRepository

    token_service: TokenService
    auth_service: AuthService
    user_service: UserService
    student_service: StudentService
    attendance_service: AttendanceService
    report_service: AttendanceReportService
    outbox_service: OutboxService
    fee_service: FeeLedgerService
    profile_service: ProfileService

    cron_secret: str = ""

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()


def wire(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    students_repo: StudentRepository,
    attendance_repo: AttendanceRepository,
    profiles_repo: ProfileRepository,
    outbox_repo: OutboxRepository,
    sender: EmailSender,
    media: MediaStorage,
    secret_key: str,
    cron_secret: str = "",
    token_ttl_hours: int = 24,
    mark_roles=("admin", "teacher"),
    outbox_max_attempts: int = 5,
    clock: Any = None,
) -> Container:
    """Build the services on top of whatever repositories are given."""
    clock_kw = {"clock": clock} if clock is not None else {}

    token_service = TokenService(secret_key, ttl_hours=token_ttl_hours)
    outbox_service = OutboxService(outbox_repo, sender, max_attempts=outbox_max_attempts, **clock_kw)
    notifier = FeeNotifier(profiles_repo, outbox_service)

    return Container(
        conn=conn,
        users_repo=users_repo,
        students_repo=students_repo,
        attendance_repo=attendance_repo,
        profiles_repo=profiles_repo,
        outbox_repo=outbox_repo,
        token_service=token_service,
        auth_service=AuthService(users_repo, token_service),
        user_service=UserService(users_repo),
        student_service=StudentService(students_repo),
        attendance_service=AttendanceService(attendance_repo, students_repo, mark_roles=mark_roles, **clock_kw),
        report_service=AttendanceReportService(attendance_repo, **clock_kw),
        outbox_service=outbox_service,
        fee_service=FeeLedgerService(students_repo, notifier, **clock_kw),
        profile_service=ProfileService(profiles_repo, media, **clock_kw),
        cron_secret=cron_secret,
    )


def build_container(*, settings, sender: EmailSender) -> Container:
    config = DBConfig(uri=str(settings.MONGODB_URI), database=str(settings.DB_NAME))
    conn = DatabaseConnection(config).open()

    media = CloudinaryMediaStorage(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
    )

    return wire(
        conn=conn,
        users_repo=MongoUserRepository(conn),
        students_repo=MongoStudentRepository(conn),
        attendance_repo=MongoAttendanceRepository(conn),
        profiles_repo=MongoProfileRepository(conn),
        outbox_repo=MongoOutboxRepository(conn),
        sender=sender,
        media=media,
        secret_key=settings.SECRET_KEY,
        cron_secret=getattr(settings, "CRON_SECRET", ""),
        token_ttl_hours=int(getattr(settings, "TOKEN_TTL_HOURS", 24)),
        mark_roles=tuple(getattr(settings, "ATTENDANCE_MARK_ROLES", ("admin", "teacher"))),
        outbox_max_attempts=int(getattr(settings, "OUTBOX_MAX_ATTEMPTS", 5)),
    )
