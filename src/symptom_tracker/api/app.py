"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from symptom_tracker.api.charts import router as charts_router
from symptom_tracker.api.entries import router as entries_router
from symptom_tracker.api.fields import router as fields_router
from symptom_tracker.api.identity import require_user
from symptom_tracker.app_logging import configure_logging
from symptom_tracker.containers import AppContainer
from symptom_tracker.domain.errors import (
    InvalidRecordData,
    InvalidTimestampFormat,
    InvalidUserId,
    NotFound,
    PermissionDenied,
    RemoteOperationFailed,
    SymptomTrackerError,
)
from symptom_tracker.domain.models import CurrentUser

_ERROR_STATUS: tuple[tuple[type[SymptomTrackerError], int], ...] = (
    (InvalidUserId, status.HTTP_400_BAD_REQUEST),
    (InvalidRecordData, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidTimestampFormat, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (RemoteOperationFailed, status.HTTP_502_BAD_GATEWAY),
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(fields_router)
    app.include_router(entries_router)
    app.include_router(charts_router)

    @app.exception_handler(SymptomTrackerError)
    async def handle_domain_error(
        request: Request, exc: SymptomTrackerError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        state_container: AppContainer = request.app.state.container
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning(
                "Request failed",
                extra={"path": request.url.path, "error": type(exc).__name__},
            )
        return JSONResponse(
            status_code=status_code,
            content={
                "error": type(exc).__name__,
                "detail": _format_error(state_container, exc),
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
    async def clear_cache(
        request: Request, user: CurrentUser = Depends(require_user)
    ) -> None:
        """Drop every cached record for the caller."""
        state_container: AppContainer = request.app.state.container
        state_container.cache.clear(user.uid)

    return app


def _status_for(exc: SymptomTrackerError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _format_error(state_container: AppContainer, exc: SymptomTrackerError) -> str:
    """Return the error message with the underlying cause in local runs."""
    message = str(exc)
    if not isinstance(exc, RemoteOperationFailed) or exc.cause is None:
        return message
    if state_container.settings.environment == "local":
        return f"{message} (debug: {type(exc.cause).__name__}: {exc.cause})"
    return message
