from __future__ import annotations

import logging
from typing import Optional, Protocol

from src.vaxtrack.config import settings

logger = logging.getLogger(__name__)


class SmsSender(Protocol):
    def send(self, to: str, body: str) -> bool:
        """Send one text message. Returns False when not configured."""


class TwilioSmsSender:
    """SMS through the Twilio REST API.

    The client is created on first use so importing this module never needs
    Twilio credentials.
    """

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
    ) -> None:
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.from_number = from_number or settings.twilio_phone_number
        self._client = None

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def _get_client(self):
        if self._client is None:
            from twilio.rest import Client

            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send(self, to: str, body: str) -> bool:
        if not self.configured:
            logger.warning("Twilio credentials not configured; SMS skipped")
            return False
        result = self._get_client().messages.create(body=body, from_=self.from_number, to=to)
        logger.info("SMS sent: %s", result.sid)
        return True


def vaccination_reminder_sms(*, child_name: str, vaccine_name: str, vaccine_date: str) -> str:
    return f"VaxTrack Reminder: {child_name} has {vaccine_name} vaccination scheduled on {vaccine_date}. Don't forget!"


def appointment_reminder_sms(*, child_name: str, appointment_date: str, appointment_time: str) -> str:
    return f"VaxTrack Reminder: {child_name} has an appointment on {appointment_date} at {appointment_time}."
