"""Chart data endpoints."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Query, Request

from symptom_tracker.api.identity import require_user
from symptom_tracker.domain.charts import MAX_RANGE_DAYS
from symptom_tracker.domain.models import CurrentUser  # noqa: TC001
from symptom_tracker.services.charts import resolve_range

if TYPE_CHECKING:
    from symptom_tracker.containers import AppContainer

router = APIRouter(prefix="/charts", tags=["charts"])


@router.get("")
async def chart_series(  # noqa: PLR0913
    request: Request,
    user: CurrentUser = Depends(require_user),
    days: int | None = Query(default=None, ge=0, le=MAX_RANGE_DAYS),
    start: datetime | None = None,
    end: datetime | None = None,
    toggle: list[str] = Query(default=[]),
) -> dict[str, object]:
    """Return one series per charted field.

    Each ``toggle`` names a yes/no field whose true days are marked on the
    series.
    """
    container: AppContainer = request.app.state.container
    series = container.chart_service.load(
        user.uid,
        resolve_range(days, start, end),
        toggles=dict.fromkeys(toggle, True),
    )
    return {"series": series}
