# dentconnect/client/api.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

# Error codes after which the user can try again with another slot
RETRYABLE_CODES = frozenset({"conflict"})


class ApiError(Exception):
    """A non-2xx API response, carrying the server's error code."""

    def __init__(self, code: str, status: int, message: str = ""):
        self.code = code
        self.status = status
        self.message = message or code
        super().__init__(f"{status} {code}: {self.message}")

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and "error" in body:
            return cls(body["error"], response.status_code, body.get("message", ""))
        # FastAPI's own errors ({"detail": ...})
        detail = body.get("detail") if isinstance(body, dict) else None
        code = detail if isinstance(detail, str) else _default_code(response.status_code)
        return cls(code, response.status_code, str(detail or response.reason_phrase))


def _default_code(status: int) -> str:
    return {
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        409: "conflict",
        422: "validation_error",
    }.get(status, "error")


class DentConnectAPI:
    """
    Thin async wrapper over the DentConnect HTTP API.

    `client` can be any httpx.AsyncClient (tests pass one bound to the ASGI
    app); otherwise one is created for `base_url`.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        prefix: str = "/api",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None
        self.prefix = prefix
        self.token: Optional[str] = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "DentConnectAPI":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = await self._client.request(
            method, f"{self.prefix}{path}", headers=headers, **kwargs
        )
        if response.is_error:
            raise ApiError.from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # --- auth ---

    async def login(self, email: str, password: str, user_type: Optional[str] = None) -> Dict[str, Any]:
        body = {"email": email, "password": password}
        if user_type:
            body["user_type"] = user_type
        data = await self._request("POST", "/auth/login", json=body)
        self.token = data["access_token"]
        return data

    async def logout(self) -> None:
        if not self.token:
            return
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self.token = None

    async def me(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/me")

    async def verify_practice_tag(self, practice_tag: str) -> Dict[str, Any]:
        return await self._request(
            "POST", "/auth/verify-practice-tag", json={"practice_tag": practice_tag}
        )

    # --- bookings ---

    async def create_booking(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/bookings", json=payload)

    async def list_bookings_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/users/{user_id}/bookings")

    async def list_available(
        self,
        category: Optional[str] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius_km: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            k: v
            for k, v in {"category": category, "lat": lat, "lng": lng, "radius_km": radius_km}.items()
            if v is not None
        }
        return await self._request("GET", "/appointments/available", params=params)
