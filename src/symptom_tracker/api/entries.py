"""Symptom entry endpoints."""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003
from typing import TYPE_CHECKING, Literal

from fastapi import APIRouter, Depends, Query, Request, status

from symptom_tracker.api.identity import require_user
from symptom_tracker.domain.charts import MAX_RANGE_DAYS
from symptom_tracker.api.request_models import EntryValuesPayload  # noqa: TC001
from symptom_tracker.domain.models import CurrentUser  # noqa: TC001
from symptom_tracker.services.charts import resolve_range

if TYPE_CHECKING:
    from symptom_tracker.containers import AppContainer
    from symptom_tracker.domain.entries import SymptomEntry

router = APIRouter(prefix="/entries", tags=["entries"])


@router.get("")
async def list_entries(  # noqa: PLR0913
    request: Request,
    user: CurrentUser = Depends(require_user),
    start: datetime | None = None,
    end: datetime | None = None,
    order: Literal["asc", "desc"] = "desc",
    limit: int | None = Query(default=None, ge=1),
) -> dict[str, object]:
    """Return the caller's entries ordered by date."""
    container: AppContainer = request.app.state.container
    entries = container.entry_service.list_entries(
        user.uid, start=start, end=end, descending=order == "desc", limit=limit
    )
    return {"entries": [_entry_payload(entry) for entry in entries]}


@router.get("/table")
async def entry_table(
    request: Request,
    user: CurrentUser = Depends(require_user),
    days: int | None = Query(default=None, ge=0, le=MAX_RANGE_DAYS),
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict[str, object]:
    """Return the caller's history laid out as table rows, newest first."""
    container: AppContainer = request.app.state.container
    table = container.chart_service.load_table(
        user.uid, resolve_range(days, start, end)
    )
    return {"columns": table.columns, "rows": table.rows}


@router.get("/day/{day}")
async def entry_for_day(
    day: date, request: Request, user: CurrentUser = Depends(require_user)
) -> dict[str, object]:
    """Return the caller's entry for a day, or null when there is none."""
    container: AppContainer = request.app.state.container
    entry = container.entry_service.find_entry_for_day(user.uid, day)
    return {"entry": _entry_payload(entry) if entry is not None else None}


@router.put("/day/{day}")
async def save_day(
    day: date,
    payload: EntryValuesPayload,
    request: Request,
    user: CurrentUser = Depends(require_user),
) -> dict[str, str]:
    """Create or update the caller's entry for a day."""
    container: AppContainer = request.app.state.container
    entry_id = container.entry_service.save_for_day(user.uid, day, payload.values)
    return {"id": entry_id}


@router.put("/day/{day}/draft", status_code=status.HTTP_202_ACCEPTED)
async def save_draft(
    day: date,
    payload: EntryValuesPayload,
    request: Request,
    user: CurrentUser = Depends(require_user),
) -> dict[str, str]:
    """Queue an in-progress edit to be saved once edits settle."""
    container: AppContainer = request.app.state.container
    container.draft_service.submit(user.uid, day, payload.values)
    return {"status": "pending"}


@router.post("/day/{day}/draft/flush")
async def flush_draft(
    day: date, request: Request, user: CurrentUser = Depends(require_user)
) -> dict[str, str]:
    """Write a pending draft immediately."""
    container: AppContainer = request.app.state.container
    await container.draft_service.flush(user.uid, day)
    return {"status": "ok"}


@router.get("/{entry_id}")
async def get_entry(
    entry_id: str, request: Request, user: CurrentUser = Depends(require_user)
) -> dict[str, object]:
    """Return one entry owned by the caller."""
    container: AppContainer = request.app.state.container
    entry = container.entry_service.get_entry(user.uid, entry_id)
    return {"entry": _entry_payload(entry)}


@router.patch("/{entry_id}")
async def update_entry(
    entry_id: str,
    payload: EntryValuesPayload,
    request: Request,
    user: CurrentUser = Depends(require_user),
) -> dict[str, str]:
    """Merge values into an existing entry."""
    container: AppContainer = request.app.state.container
    container.entry_service.update_entry(user.uid, entry_id, payload.values)
    return {"id": entry_id}


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: str, request: Request, user: CurrentUser = Depends(require_user)
) -> None:
    """Delete an entry."""
    container: AppContainer = request.app.state.container
    container.entry_service.delete_entry(user.uid, entry_id)


def _entry_payload(entry: SymptomEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "symptom_date": entry.symptom_date,
        "values": entry.raw_values(),
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
    }
