"""Tenant inspection workspace endpoints.

A workspace id is the unguessable handle for one browser session; the
entry link (``/inspect?flowId=...``) creates one and resolves the flow.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from roomcheck.config import Settings
from roomcheck.dependencies import (
    get_backend_dep,
    get_settings_dep,
    get_store,
    get_variant_dep,
    get_workspace,
)
from roomcheck.errors import InvalidPhase, ValidationError
from roomcheck.schemas import (
    AreaRead,
    AttachmentRead,
    DetailsUpdate,
    ErrorRead,
    FlowMeta,
    FormRead,
    NoteUpdate,
    ResolveRequest,
    SignatureUpdate,
    StatusUpdate,
    SubmitRequest,
    TaskOpenResult,
    ValidationReport,
    WorkspaceCreate,
    WorkspaceRead,
)
from roomcheck.services.backend import InspectionBackend
from roomcheck.services.flow_aggregator import OpenInspection, find_task, open_task, summarize_flow
from roomcheck.services.form_state import InspectionForm
from roomcheck.services.image_pipeline import ingest_image
from roomcheck.services.resolution import resolve_workspace
from roomcheck.services.submission import submit_inspection, validate_form
from roomcheck.services.variants import InspectionVariant
from roomcheck.services.workspace_store import Phase, Workspace, WorkspaceStore

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


def _area_read(form: InspectionForm, area_id: str, include_previews: bool) -> AreaRead:
    rec = form.record(area_id)
    return AreaRead(
        area_id=rec.area_id,
        label=form.label(area_id),
        status=rec.status,
        note=rec.note,
        attachments=[
            AttachmentRead(
                name=a.name,
                mime_type=a.mime_type,
                size=len(a.encoded_data) * 3 // 4 - a.encoded_data[-2:].count("="),
                preview_data=a.preview_data if include_previews else None,
            )
            for a in rec.attachments
        ],
    )


def _form_read(form: InspectionForm, include_previews: bool) -> FormRead:
    return FormRead(
        areas=[_area_read(form, a.id, include_previews) for a in form.checklist],
        inspector_name=form.inspector_name,
        global_note=form.global_note,
        has_signature=form.signature is not None,
        completed_count=form.completed_count,
        total_areas=form.total_areas,
        progress_percent=form.progress_percent,
    )


def _workspace_read(ws: Workspace, include_previews: bool = False) -> WorkspaceRead:
    error = None
    if ws.error is not None:
        error = ErrorRead(
            error="resolution_error",
            reason=ws.error.reason.value,
            message=ws.error.message,
            retryable=True,
        )
    flow = None
    if ws.flow is not None or ws.tasks:
        flow = summarize_flow(ws.flow or _placeholder_flow(ws), ws.tasks or [])
    return WorkspaceRead(
        id=ws.id,
        variant=ws.variant.name,
        phase=ws.phase.value,
        view=ws.view.value if ws.view else None,
        flow_id=ws.flow_id,
        error=error,
        session=ws.session,
        form=_form_read(ws.form, include_previews) if ws.form is not None else None,
        flow=flow,
        result=ws.result,
    )


def _placeholder_flow(ws: Workspace) -> FlowMeta:
    return FlowMeta(flow_id=ws.flow_id or "", room_id=ws.session.room_id if ws.session else "")


@router.post("", response_model=WorkspaceRead, status_code=201)
async def create_workspace(
    body: WorkspaceCreate,
    settings: Settings = Depends(get_settings_dep),
    variant: InspectionVariant = Depends(get_variant_dep),
    backend: InspectionBackend = Depends(get_backend_dep),
    store: WorkspaceStore = Depends(get_store),
):
    ws = store.create(variant, settings.checklist)
    if body.flow_id and body.flow_id.strip():
        await resolve_workspace(ws, body.flow_id, backend)
    return _workspace_read(ws)


@router.get("/{workspace_id}", response_model=WorkspaceRead)
async def get_workspace_state(
    include_previews: bool = Query(default=False),
    ws: Workspace = Depends(get_workspace),
):
    return _workspace_read(ws, include_previews)


@router.delete("/{workspace_id}", status_code=200)
async def discard_workspace(
    ws: Workspace = Depends(get_workspace),
    store: WorkspaceStore = Depends(get_store),
):
    """Drop the workspace and every attachment it holds."""
    store.discard(ws.id)
    return {"deleted": ws.id}


@router.post("/{workspace_id}/resolve", response_model=WorkspaceRead)
async def resolve(
    body: ResolveRequest,
    ws: Workspace = Depends(get_workspace),
    backend: InspectionBackend = Depends(get_backend_dep),
):
    """Resolve a manually entered flow id, or retry after an error."""
    await resolve_workspace(ws, body.flow_id, backend)
    return _workspace_read(ws)


@router.post("/{workspace_id}/reset", response_model=WorkspaceRead)
async def reset(ws: Workspace = Depends(get_workspace)):
    """Clear the current session or error and return to manual entry."""
    ws.reset()
    return _workspace_read(ws)


# ── Areas ─────────────────────────────────────────────────

@router.put("/{workspace_id}/areas/{area_id}/status", response_model=AreaRead)
async def set_status(area_id: str, body: StatusUpdate, ws: Workspace = Depends(get_workspace)):
    form = ws.update_form(lambda f: f.with_status(area_id, body.status))
    return _area_read(form, area_id, include_previews=False)


@router.put("/{workspace_id}/areas/{area_id}/note", response_model=AreaRead)
async def set_note(area_id: str, body: NoteUpdate, ws: Workspace = Depends(get_workspace)):
    form = ws.update_form(lambda f: f.with_note(area_id, body.note))
    return _area_read(form, area_id, include_previews=False)


@router.post("/{workspace_id}/areas/{area_id}/attachments", response_model=AreaRead, status_code=201)
async def add_attachment(
    area_id: str,
    file: UploadFile = File(...),
    ws: Workspace = Depends(get_workspace),
    settings: Settings = Depends(get_settings_dep),
):
    ws.require_editable().record(area_id)
    generation = ws.generation

    data = await file.read()
    attachment = await ingest_image(area_id, file.filename or "", data, settings.image_pipeline)

    # The workspace may have been reset or re-resolved while compressing
    if ws.generation != generation:
        raise InvalidPhase("The inspection changed while the photo was processing")
    form = ws.update_form(lambda f: f.with_attachment(area_id, attachment))
    return _area_read(form, area_id, include_previews=True)


@router.delete("/{workspace_id}/areas/{area_id}/attachments/{name}", response_model=AreaRead)
async def remove_attachment(area_id: str, name: str, ws: Workspace = Depends(get_workspace)):
    form = ws.update_form(lambda f: f.without_attachment(area_id, name))
    return _area_read(form, area_id, include_previews=False)


# ── Sign-off ──────────────────────────────────────────────

@router.put("/{workspace_id}/signature", response_model=WorkspaceRead)
async def set_signature(body: SignatureUpdate, ws: Workspace = Depends(get_workspace)):
    ws.update_form(lambda f: f.with_signature(body.image))
    return _workspace_read(ws)


@router.put("/{workspace_id}/details", response_model=WorkspaceRead)
async def set_details(body: DetailsUpdate, ws: Workspace = Depends(get_workspace)):
    ws.update_form(lambda f: f.with_details(body.inspector_name, body.global_note))
    return _workspace_read(ws)


@router.post("/{workspace_id}/validate", response_model=ValidationReport)
async def validate(body: SubmitRequest, ws: Workspace = Depends(get_workspace)):
    """Dry-run the submission gate so the view can show what is missing."""
    form = ws.require_editable()
    try:
        validate_form(form, ws.variant, body.confirmed)
    except ValidationError as e:
        return ValidationReport(ready=False, kind=e.kind.value, message=e.message, offending=e.offending)
    return ValidationReport(ready=True)


@router.post("/{workspace_id}/submit")
async def submit(
    body: SubmitRequest,
    ws: Workspace = Depends(get_workspace),
    backend: InspectionBackend = Depends(get_backend_dep),
    settings: Settings = Depends(get_settings_dep),
):
    form = ws.require_editable()
    ws.submitting = True
    try:
        result = await submit_inspection(
            backend, ws.session, form, ws.variant, body.confirmed, settings.default_inspector,
        )
    finally:
        ws.submitting = False
    ws.complete(result)
    return {"ok": True, "room_id": result.room_id, "pdf_url": result.pdf_url}


# ── Flow tasks ────────────────────────────────────────────

@router.post("/{workspace_id}/tasks/{task_id}/open", response_model=TaskOpenResult)
async def open_flow_task(task_id: str, ws: Workspace = Depends(get_workspace)):
    if ws.phase is not Phase.RESOLVED:
        raise InvalidPhase(f"No open flow (phase: {ws.phase.value})")
    task = find_task(ws.tasks or [], task_id)
    if task is None:
        raise HTTPException(404, "Task not found in this flow")
    action = open_task(ws.flow_id or "", task)
    if not isinstance(action, OpenInspection):
        raise HTTPException(501, action.message)
    ws.open_form()
    return TaskOpenResult(view=ws.view.value, flow_id=action.flow_id, task_id=action.task_id)
