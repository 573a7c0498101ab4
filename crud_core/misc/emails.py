"""
CRUD core email library

There's no real mail transport yet. The mock service builds the messages
like a real one would, keeps them in memory and logs them, which allows
to follow (and test) the password reset flow without a mail server.
"""

import re
import logging
import datetime
import threading
import urllib.parse
from typing import ClassVar, List, Optional

import pydantic

from ..schemas.auth import EMAIL_PATTERN


class EmailMessage(pydantic.BaseModel):
    sender: str
    recipient: str
    subject: str
    body: str
    sent_at: datetime.datetime


class MockEmailService:
    """
    Email service which stores and logs messages instead of sending them
    """

    logger: ClassVar[logging.Logger] = logging.getLogger(__name__)

    def __init__(self, sender: str = "noreply@localhost", reset_password_url: str = "http://localhost/reset-password"):
        self.sender = sender
        self.reset_password_url = reset_password_url
        self.sent: List[EmailMessage] = []
        self._lock = threading.Lock()

    def build_reset_link(self, token: str) -> str:
        separator = "&" if "?" in self.reset_password_url else "?"
        return f"{self.reset_password_url}{separator}{urllib.parse.urlencode({'token': token})}"

    def send(self, recipient: str, subject: str, body: str) -> EmailMessage:
        if not re.match(EMAIL_PATTERN, recipient or ""):
            raise ValueError(f"Invalid recipient address {recipient!r}")
        message = EmailMessage(
            sender=self.sender,
            recipient=recipient,
            subject=subject,
            body=body,
            sent_at=datetime.datetime.now(datetime.timezone.utc)
        )
        with self._lock:
            self.sent.append(message)
        self.logger.info(f"Mock email to {recipient!r} with subject {subject!r}")
        self.logger.debug(f"Mock email body: {body!r}")
        return message

    def send_password_reset(self, recipient: str, token: str, name: Optional[str] = None) -> EmailMessage:
        link = self.build_reset_link(token)
        body = (
            f"Hello {name or recipient},\n\n"
            "we received a request to reset the password of your account. "
            f"Use the following link to choose a new password:\n\n{link}\n\n"
            "The link expires soon and can only be used once. If you didn't "
            "request a password reset, you can safely ignore this message.\n"
        )
        return self.send(recipient, "Reset your password", body)

    def send_password_changed(self, recipient: str, name: Optional[str] = None) -> EmailMessage:
        body = (
            f"Hello {name or recipient},\n\n"
            "the password of your account has just been changed. All sessions have been "
            "signed out. If you didn't change your password, contact the administrators.\n"
        )
        return self.send(recipient, "Your password has been changed", body)


_service: Optional[MockEmailService] = None


def init(sender: str, reset_password_url: str) -> MockEmailService:
    global _service
    _service = MockEmailService(sender, reset_password_url)
    return _service


def get_email_service() -> MockEmailService:
    global _service
    if _service is None:
        _service = MockEmailService()
    return _service
