# dentconnect/client/poller.py
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from dentconnect.client.api import DentConnectAPI

logger = logging.getLogger(__name__)

Booking = Dict[str, Any]
FetchBookings = Callable[[], Awaitable[List[Booking]]]
# on_change(booking, previous_status, current_status)
ChangeHandler = Callable[[Booking, str, str], Any]


class StatusPoller:
    """
    Re-reads a patient's bookings every `interval` seconds and reports
    approval_status changes of the latest one.

    Edge-triggered: on_change fires once per observed change. The first
    time a booking is seen only records its status. When a newer booking
    shows up it becomes the one being watched.
    """

    def __init__(self, fetch: FetchBookings, on_change: ChangeHandler, interval: float = 10.0):
        self.fetch = fetch
        self.on_change = on_change
        self.interval = interval
        self._seen: Optional[Tuple[str, str]] = None  # (booking id, approval_status)
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def for_user(
        cls, api: DentConnectAPI, user_id: str, on_change: ChangeHandler, interval: float = 10.0
    ) -> "StatusPoller":
        return cls(lambda: api.list_bookings_for_user(user_id), on_change, interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> bool:
        """One fetch + compare. Returns True when on_change was called."""
        bookings = await self.fetch()
        if not bookings:
            return False

        latest = bookings[-1]
        booking_id, current = str(latest["id"]), latest["approval_status"]

        if self._seen is None or self._seen[0] != booking_id:
            self._seen = (booking_id, current)
            return False

        previous = self._seen[1]
        if previous == current:
            return False

        self._seen = (booking_id, current)
        result = self.on_change(latest, previous, current)
        if inspect.isawaitable(result):
            await result
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Booking status poll failed; retrying in %ss", self.interval)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="booking-status-poller")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "StatusPoller":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
