"""Send digests by SMTP."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage

from ..config import EmailSinkConfig
from ..errors import SinkError
from .base import BaseSink


class EmailSink(BaseSink):
    name = "email"

    def __init__(self, config: EmailSinkConfig) -> None:
        self.config = config

    def build_message(self, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.config.sender
        message["To"] = ", ".join(self.config.recipients)
        message.set_content(body)
        return message

    def deliver(self, subject: str, body: str) -> None:
        message = self.build_message(subject, body)
        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as server:
                if self.config.use_tls:
                    server.starttls()
                if self.config.username:
                    server.login(self.config.username, self.config.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise SinkError(self.name, f"smtp delivery via {self.config.host} failed: {exc}") from exc


__all__ = ["EmailSink"]
