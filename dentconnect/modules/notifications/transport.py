# dentconnect/modules/notifications/transport.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Protocol

import resend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    sender: str
    subject: str
    html: str


class MailTransport(Protocol):
    """Anything that can hand one message to a mail provider (blocking call)."""

    @property
    def configured(self) -> bool: ...

    def send(self, message: EmailMessage) -> Dict[str, Any]: ...


class ResendTransport:
    """
    Sends through the Resend API. An empty api key leaves the transport
    unconfigured; callers check `configured` and skip sending.
    """

    def __init__(self, api_key: str):
        self.api_key = api_key or ""

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, message: EmailMessage) -> Dict[str, Any]:
        resend.api_key = self.api_key
        email_data = {
            "from": message.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        response = resend.Emails.send(email_data)
        logger.debug("Resend accepted message to %s: %s", message.to, response)
        return response
