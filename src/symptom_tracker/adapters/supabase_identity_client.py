"""Identity provider client for resolving access tokens."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from symptom_tracker.domain.errors import RemoteOperationFailed
from symptom_tracker.domain.models import CurrentUser

_UNAUTHORIZED = frozenset({401, 403})


class IdentityClient(Protocol):
    """Interface for looking up the user behind an access token."""

    async def get_user(self, access_token: str) -> CurrentUser | None:
        """Return the user for a token, or None when the token is rejected."""


@dataclass
class HttpxIdentityClient(IdentityClient):
    """Supabase Auth client implemented with httpx."""

    base_url: str
    api_key: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, api_key: str) -> "HttpxIdentityClient":
        """Create an identity client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            api_key=api_key,
            http_client=httpx.AsyncClient(),
        )

    async def get_user(self, access_token: str) -> CurrentUser | None:
        """Resolve an access token through the Auth user endpoint."""
        url = f"{self.base_url}/auth/v1/user"
        try:
            response = await self.http_client.get(
                url,
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {access_token}",
                },
                timeout=10,
            )
        except httpx.HTTPError as exc:
            raise RemoteOperationFailed("Identity provider unavailable", exc) from exc
        if response.status_code in _UNAUTHORIZED:
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteOperationFailed("Identity lookup failed", exc) from exc
        payload = response.json()
        uid = payload.get("id")
        if not uid:
            return None
        return CurrentUser(uid=str(uid), email=payload.get("email"))

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
