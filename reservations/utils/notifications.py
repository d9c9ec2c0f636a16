"""
Booking notifications.

Notifications are fire-and-forget: they are sent after the transaction that
triggered them has committed, and a failing sender is logged and ignored.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from sqlalchemy.orm import Session

from reservations.config import settings
from reservations.models.setting import Setting

logger = logging.getLogger(__name__)

EMAIL_SETTINGS_KEY = "email"

# event -> flag in the "email" setting that enables it
EVENT_FLAGS = {
    "created": "notify_on_create",
    "updated": "notify_on_update",
    "status_changed": "notify_on_status_change",
}

SUBJECTS = {
    "created": "Booking received: {title}",
    "updated": "Booking updated: {title}",
    "status_changed": "Booking {status}: {title}",
}


class BaseSender(ABC):
    """Delivers one message to one recipient."""

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> None:
        pass


class LoggingSender(BaseSender):
    """Writes messages to the log instead of delivering them."""

    def send(self, recipient, subject, body):
        logger.info(f"Notification to {recipient}: {subject}")
        logger.debug(body)


class SMTPSender(BaseSender):
    def __init__(self, host, port=587, username=None, password=None, use_tls=True, sender=None):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender or settings.MAIL_FROM

    def send(self, recipient, subject, body):
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(message)


def get_sender() -> BaseSender:
    """FastAPI dependency choosing the sender from configuration."""
    if settings.SMTP_HOST:
        return SMTPSender(
            settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
        )
    return LoggingSender()


def is_enabled(db: Session, event: str) -> bool:
    setting = db.query(Setting).filter(Setting.key == EMAIL_SETTINGS_KEY).first()
    if setting is None:
        return True
    value = setting.value or {}
    if not value.get("enabled", True):
        return False
    return bool(value.get(EVENT_FLAGS[event], True))


def render_message(appointment, event: str, old_status: Optional[str] = None) -> tuple:
    rooms = ", ".join(booking.room_name for booking in appointment.rooms)
    subject = SUBJECTS[event].format(title=appointment.title, status=appointment.status)
    lines = [
        f"Dear {appointment.customer_name},",
        "",
        f"Booking #{appointment.order_number}: {appointment.title}",
        f"Rooms: {rooms}",
        f"From {appointment.start_time:%Y-%m-%d %H:%M} to {appointment.end_time:%Y-%m-%d %H:%M}",
        f"Status: {appointment.status}",
    ]
    if old_status:
        lines.append(f"Previous status: {old_status}")
    if appointment.rejection_reason and appointment.status == "rejected":
        lines.append(f"Reason: {appointment.rejection_reason}")
    lines.append(f"Amount: {appointment.agreed_cost / 100:.2f}")
    return subject, "\n".join(lines)


def notify(
    db: Session,
    sender: Optional[BaseSender],
    appointment,
    event: str,
    old_status: Optional[str] = None,
) -> bool:
    """Send a notification about ``appointment``; never raises."""
    if sender is None:
        return False
    try:
        if not is_enabled(db, event):
            return False
        subject, body = render_message(appointment, event, old_status)
        sender.send(appointment.customer_email, subject, body)
        return True
    except Exception:
        logger.exception(f"Failed to send {event} notification for appointment {appointment.id}")
        return False
