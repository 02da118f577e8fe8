"""Bearer-token identity dependency."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Header, HTTPException, Request, status

from symptom_tracker.domain.models import CurrentUser  # noqa: TC001

if TYPE_CHECKING:
    from symptom_tracker.containers import AppContainer

_BEARER_PREFIX = "bearer "


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> CurrentUser:
    """Resolve the calling user from the Authorization header."""
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    container: AppContainer = request.app.state.container
    user = await container.identity_client.get_user(token)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user


def _bearer_token(header: str | None) -> str | None:
    if not header or not header.lower().startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None
