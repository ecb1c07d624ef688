from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional, Protocol

from src.vaxtrack.config import settings

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    def send(self, to: str, subject: str, html: str) -> bool:
        """Send one message. Returns False when the transport is not configured.

        Transport errors propagate to the caller.
        """


class SmtpEmailSender:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_address: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host if host is not None else settings.smtp_host
        self.port = port if port is not None else settings.smtp_port
        self.username = username if username is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_password
        self.from_address = from_address or settings.email_from
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> bool:
        if not self.host:
            logger.warning("SMTP_HOST not configured; email to user skipped")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))

        context = ssl.create_default_context()
        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout) as server:
                self._deliver(server, msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls(context=context)
                self._deliver(server, msg)
        return True

    def _deliver(self, server: smtplib.SMTP, msg: MIMEMultipart) -> None:
        if self.username and self.password:
            server.login(self.username, self.password)
        server.send_message(msg)


def vaccination_reminder_email(
    *, first_name: str, child_name: str, vaccine_name: str, vaccine_date: str
) -> tuple[str, str]:
    """Return (subject, html) for an upcoming vaccination reminder."""

    subject = f"Vaccination Reminder for {child_name}"
    html = f"""
    <h2>Vaccination Reminder</h2>
    <p>Hi {escape(first_name)},</p>
    <p>This is a reminder that {escape(child_name)} has an upcoming vaccination:</p>
    <ul>
      <li><strong>Vaccine:</strong> {escape(vaccine_name)}</li>
      <li><strong>Date:</strong> {escape(vaccine_date)}</li>
    </ul>
    <p>Please bring the vaccination card and any relevant medical documents.</p>
    <p>Best regards,<br>VaxTrack Team</p>
    """
    return subject, html


def appointment_confirmation_email(
    *, first_name: str, child_name: str, clinic_name: str, appointment_date: str, appointment_time: str
) -> tuple[str, str]:
    """Return (subject, html) for a booked appointment."""

    subject = f"Appointment Confirmed for {child_name}"
    html = f"""
    <h2>Appointment Confirmation</h2>
    <p>Hi {escape(first_name)},</p>
    <p>Your appointment has been confirmed:</p>
    <ul>
      <li><strong>Child:</strong> {escape(child_name)}</li>
      <li><strong>Clinic:</strong> {escape(clinic_name)}</li>
      <li><strong>Date:</strong> {escape(appointment_date)}</li>
      <li><strong>Time:</strong> {escape(appointment_time)}</li>
    </ul>
    <p>Please arrive 10 minutes early.</p>
    <p>Best regards,<br>VaxTrack Team</p>
    """
    return subject, html


def appointment_reminder_email(
    *, first_name: str, child_name: str, clinic_name: str, appointment_date: str, appointment_time: str
) -> tuple[str, str]:
    subject = f"Upcoming Appointment for {child_name}"
    html = f"""
    <h2>Appointment Reminder</h2>
    <p>Hi {escape(first_name)},</p>
    <p>{escape(child_name)} has an upcoming appointment at {escape(clinic_name)}
    on {escape(appointment_date)} at {escape(appointment_time)}.</p>
    <p>Best regards,<br>VaxTrack Team</p>
    """
    return subject, html
