"""
Notification gateways -- outbound alert delivery.

Contract:
    ``NotificationGateway.send(to, subject, body) -> DeliveryResult``.
    A failed delivery is a normal outcome returned as a value; gateways do
    not raise for transport errors.  Callers decide what a failure means
    (the threshold tasks raise NotificationDeliveryFailedError so the
    executor records the item as failed).

Implementations:
    SmtpNotificationGateway -- ``smtplib`` with optional STARTTLS/login.
    LogNotificationGateway  -- writes the alert to the structured log only.
"""

from __future__ import annotations

import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol, runtime_checkable

from tracker_kernel.logging_config import get_logger

logger = get_logger("batch.notifications")


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> DeliveryResult:
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> DeliveryResult:
        return cls(success=False, error=error)


@runtime_checkable
class NotificationGateway(Protocol):
    def send(self, to: str, subject: str, body: str) -> DeliveryResult: ...


class SmtpNotificationGateway:
    """Plain-text email over SMTP.  One connection per message."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        sender: str = "Finance Manager <noreply@finance-manager.local>",
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def _build(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, to: str, subject: str, body: str) -> DeliveryResult:
        msg = self._build(to, subject, body)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                if self._use_tls:
                    smtp.starttls(context=ssl.create_default_context())
                if self._username:
                    smtp.login(self._username, self._password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning(
                "email_send_failed",
                extra={"recipient": to, "subject": subject, "error": str(exc)},
            )
            return DeliveryResult.failed(f"{type(exc).__name__}: {exc}")

        logger.info("email_sent", extra={"recipient": to, "subject": subject})
        return DeliveryResult.ok()


class LogNotificationGateway:
    """Development gateway: every alert becomes a log line, always succeeds."""

    def send(self, to: str, subject: str, body: str) -> DeliveryResult:
        logger.info(
            "notification_logged",
            extra={"recipient": to, "subject": subject, "body": body},
        )
        return DeliveryResult.ok()
