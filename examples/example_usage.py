"""Example: drive the service layer directly (no HTTP).

Controllers are a thin layer; the rules live in the services.
"""

import importlib

from dotenv import load_dotenv

from config import get_settings_module

from sk_tutorial.container import build_container
from sk_tutorial.notifications.repository import EmailSender


class PrintSender(EmailSender):
    def send(self, *, to, subject, html):
        print(f"[mail] to={to} subject={subject}")


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(settings=settings, sender=PrintSender())
    try:
        print(container.report_service.available_months())
        for student in container.attendance_service.list_students_for_marking()[:5]:
            print(student.grade, student.name)
    finally:
        container.close()


if __name__ == "__main__":
    main()
