from __future__ import annotations

from flask import Flask
from flask_mail import Mail, Message

from .repository import EmailSender


class FlaskMailSender(EmailSender):
    """Send through the SMTP relay configured by the MAIL_* settings.

    Runs inside an app context so it also works from the scheduler thread.
    """

    def __init__(self, app: Flask, mail: Mail):
        self._app = app
        self._mail = mail

    def send(self, *, to: str, subject: str, html: str) -> None:
        with self._app.app_context():
            msg = Message(subject=subject, recipients=[to], html=html)
            self._mail.send(msg)
