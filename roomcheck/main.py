"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from roomcheck.api.router import api_router
from roomcheck.api.workspaces import create_workspace
from roomcheck.config import Settings
from roomcheck.dependencies import (
    get_backend_dep,
    get_settings_dep,
    get_store,
    get_variant_dep,
)
from roomcheck.errors import (
    AttachmentError,
    BackendUnavailable,
    InvalidPhase,
    RoomcheckError,
    SubmissionError,
    UnknownAreaError,
    UnknownAttachmentError,
    ValidationError,
    WorkspaceNotFound,
)
from roomcheck.log_config import setup_logging
from roomcheck.schemas import WorkspaceCreate
from roomcheck.services.backend import InspectionBackend, get_backend
from roomcheck.services.variants import InspectionVariant, get_variant
from roomcheck.services.workspace_store import WorkspaceStore, workspace_store

logger = logging.getLogger(__name__)


async def _workspace_expiry_checker(max_idle: timedelta):
    """Background task: drop workspaces nobody has touched for a while."""
    while True:
        try:
            workspace_store.purge_idle(max_idle)
        except Exception:
            logger.exception("Workspace purge failed")
        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings_dep()
    setup_logging(settings.log_level)

    variant = get_variant(settings.variant, settings)
    app.state.backend = get_backend(settings, variant)
    logger.info("Roomcheck starting: variant=%s backend=%s", variant.name, settings.backend.mode)

    expiry_task = asyncio.create_task(
        _workspace_expiry_checker(timedelta(minutes=settings.workspace_ttl_minutes))
    )
    yield
    expiry_task.cancel()
    await app.state.backend.aclose()


app = FastAPI(
    title="Roomcheck",
    description="Link-activated tenant room inspections with photo evidence, sign-off and PDF submission.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router)


_STATUS_BY_ERROR: list[tuple[type[RoomcheckError], int]] = [
    (ValidationError, 422),
    (AttachmentError, 400),
    (UnknownAreaError, 404),
    (UnknownAttachmentError, 404),
    (WorkspaceNotFound, 404),
    (InvalidPhase, 409),
    (SubmissionError, 502),
    (BackendUnavailable, 502),
]


def _error_body(exc: RoomcheckError) -> dict:
    body: dict = {"error": type(exc).__name__, "message": exc.message}
    if isinstance(exc, ValidationError):
        body["kind"] = exc.kind.value
        body["offending"] = exc.offending
    elif isinstance(exc, SubmissionError):
        body["reason"] = exc.reason.value
        body["retryable"] = True
    elif isinstance(exc, AttachmentError):
        body["filename"] = exc.filename
    return body


@app.exception_handler(RoomcheckError)
async def roomcheck_error_handler(request: Request, exc: RoomcheckError):
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, status, exc.message)
    return JSONResponse(status_code=status, content=_error_body(exc))


@app.get("/")
async def root():
    return {"service": "roomcheck", "status": "ok"}


# ── Tenant entry link ────────────────────────────────────

@app.get("/inspect")
async def inspect_entry(
    flow_id: str = Query(default="", alias="flowId"),
    settings: Settings = Depends(get_settings_dep),
    variant: InspectionVariant = Depends(get_variant_dep),
    backend: InspectionBackend = Depends(get_backend_dep),
    store: WorkspaceStore = Depends(get_store),
):
    """Activation link: create a workspace (resolving ``flowId`` if present) and redirect to it."""
    ws = await create_workspace(WorkspaceCreate(flow_id=flow_id or None), settings, variant, backend, store)
    return RedirectResponse(f"/api/workspaces/{ws.id}", status_code=303)
