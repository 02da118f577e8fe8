"""Field definition endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request, status

from symptom_tracker.api.identity import require_user
from symptom_tracker.api.request_models import FieldPayload  # noqa: TC001
from symptom_tracker.domain.models import CurrentUser  # noqa: TC001

if TYPE_CHECKING:
    from symptom_tracker.containers import AppContainer

router = APIRouter(prefix="/fields", tags=["fields"])


@router.get("")
async def list_fields(
    request: Request, user: CurrentUser = Depends(require_user)
) -> dict[str, object]:
    """Return the caller's fields in display order."""
    container: AppContainer = request.app.state.container
    return {"fields": container.field_service.list_fields(user.uid)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_field(
    payload: FieldPayload,
    request: Request,
    user: CurrentUser = Depends(require_user),
) -> dict[str, str]:
    """Create a field definition."""
    container: AppContainer = request.app.state.container
    field_id = container.field_service.add_field(user.uid, payload.to_payload())
    return {"id": field_id}


@router.get("/{field_id}")
async def get_field(
    field_id: str, request: Request, user: CurrentUser = Depends(require_user)
) -> dict[str, object]:
    """Return one field definition."""
    container: AppContainer = request.app.state.container
    return {"field": container.field_service.get_field(user.uid, field_id)}


@router.put("/{field_id}")
async def update_field(
    field_id: str,
    payload: FieldPayload,
    request: Request,
    user: CurrentUser = Depends(require_user),
) -> dict[str, str]:
    """Replace a field definition."""
    container: AppContainer = request.app.state.container
    container.field_service.update_field(user.uid, field_id, payload.to_payload())
    return {"id": field_id}


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_field(
    field_id: str, request: Request, user: CurrentUser = Depends(require_user)
) -> None:
    """Delete a field definition."""
    container: AppContainer = request.app.state.container
    container.field_service.delete_field(user.uid, field_id)
