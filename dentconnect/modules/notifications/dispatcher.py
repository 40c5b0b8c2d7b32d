# dentconnect/modules/notifications/dispatcher.py
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import lru_cache
from typing import Optional

from dentconnect.core.config import settings
from dentconnect.core.errors import NotificationFailure
from dentconnect.modules.notifications.events import NotificationEvent
from dentconnect.modules.notifications.templates import render
from dentconnect.modules.notifications.transport import (
    EmailMessage,
    MailTransport,
    ResendTransport,
)

logger = logging.getLogger(__name__)


class NotifyResult(str, Enum):
    DELIVERED = "delivered"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class NotificationDispatcher:
    """
    Renders an event and makes a single send attempt.

    notify() never raises for transport problems: an unconfigured transport
    gives SUPPRESSED, a raising or slow one gives FAILED. Nothing is retried
    or queued.
    """

    def __init__(
        self,
        transport: MailTransport,
        *,
        sender: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.transport = transport
        self.sender = sender or settings.EMAIL_FROM_ADDRESS
        self.timeout = timeout if timeout is not None else settings.NOTIFY_TIMEOUT_SECONDS

    async def notify(self, event: NotificationEvent) -> NotifyResult:
        if not self.transport.configured:
            logger.info(
                "Email not sent (%s to %s): mail transport not configured",
                event.event_type,
                event.recipient,
            )
            return NotifyResult.SUPPRESSED

        subject, html = render(event)
        message = EmailMessage(
            to=event.recipient, sender=self.sender, subject=subject, html=html
        )
        try:
            await self._send(message)
        except NotificationFailure as exc:
            logger.error(
                "Failed to send %s notification to %s: %s",
                event.event_type,
                event.recipient,
                exc,
            )
            return NotifyResult.FAILED

        logger.info("%s notification sent to %s", event.event_type, event.recipient)
        return NotifyResult.DELIVERED

    async def _send(self, message: EmailMessage) -> None:
        # The provider SDK is blocking; keep it off the event loop
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.transport.send, message),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise NotificationFailure(f"timed out after {self.timeout}s") from exc
        except Exception as exc:
            raise NotificationFailure(str(exc) or exc.__class__.__name__) from exc


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency; tests override it."""
    return NotificationDispatcher(ResendTransport(settings.RESEND_API_KEY))
