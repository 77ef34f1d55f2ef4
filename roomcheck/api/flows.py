from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from roomcheck.dependencies import get_backend_dep
from roomcheck.errors import BackendUnavailable
from roomcheck.schemas import FlowView
from roomcheck.services.backend import InspectionBackend
from roomcheck.services.flow_aggregator import summarize_flow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/flows", tags=["flows"])


@router.get("", response_model=list[FlowView])
async def list_flows(backend: InspectionBackend = Depends(get_backend_dep)):
    """Task inbox: every open flow with due label and progress."""
    try:
        inbox = await backend.list_tasks()
    except BackendUnavailable as e:
        logger.warning("Task inbox unavailable: %s", e)
        raise HTTPException(502, "Task inbox unavailable")
    if not inbox.ok:
        raise HTTPException(502, "Task inbox reported an error")
    return [summarize_flow(f) for f in inbox.flows]


@router.get("/{flow_id}", response_model=FlowView)
async def get_flow(flow_id: str, backend: InspectionBackend = Depends(get_backend_dep)):
    try:
        detail = await backend.get_flow_detail(flow_id)
    except BackendUnavailable as e:
        logger.warning("Flow detail for %s unavailable: %s", flow_id, e)
        raise HTTPException(502, "Flow detail unavailable")
    if not detail.ok or detail.flow is None:
        raise HTTPException(404, "Flow not found")
    return summarize_flow(detail.flow, detail.tasks or [])
