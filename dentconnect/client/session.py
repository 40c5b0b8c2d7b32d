# dentconnect/client/session.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, MutableMapping, Optional

from dentconnect.client.api import DentConnectAPI

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUser"
CURRENT_USER_ID_KEY = "currentUserId"


class MemoryStore(dict):
    """Session-scoped key/value store holding JSON strings."""


class SessionContext:
    """
    The logged-in user, passed explicitly to whatever needs it.

    login() fills it and mirrors the user into `store`; restore() refills it
    from the store (new view, same browser session); logout() clears both.
    """

    def __init__(self, api: DentConnectAPI, store: Optional[MutableMapping[str, str]] = None):
        self.api = api
        self.store: MutableMapping[str, str] = store if store is not None else MemoryStore()
        self.user: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.user["id"] if self.user else None

    async def login(self, email: str, password: str, user_type: Optional[str] = None) -> Dict[str, Any]:
        data = await self.api.login(email, password, user_type)
        self.user = data["user"]
        self.token = data["access_token"]
        self.store[CURRENT_USER_KEY] = json.dumps({**self.user, "access_token": self.token})
        self.store[CURRENT_USER_ID_KEY] = str(self.user["id"])
        logger.info("Logged in as %s", self.user["email"])
        return self.user

    def restore(self) -> bool:
        """Repopulate from the store. Returns False when nothing usable is stored."""
        raw = self.store.get(CURRENT_USER_KEY)
        if not raw:
            return False
        try:
            record = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable stored user")
            self._clear()
            return False

        self.token = record.pop("access_token", None)
        self.user = record
        self.api.token = self.token
        return True

    async def logout(self) -> None:
        try:
            await self.api.logout()
        finally:
            self._clear()

    def _clear(self) -> None:
        self.user = None
        self.token = None
        self.api.token = None
        self.store.pop(CURRENT_USER_KEY, None)
        self.store.pop(CURRENT_USER_ID_KEY, None)
