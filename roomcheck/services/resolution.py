"""Flow id -> open inspection session.

Each resolution is tagged with the workspace's request sequence. A
response that arrives after a newer resolve (or a reset) no longer
matches the tag and is dropped instead of overwriting newer state.
"""

from __future__ import annotations

import logging

from roomcheck.errors import BackendUnavailable, ResolutionError, ResolutionFailure
from roomcheck.schemas.flow import FlowDetail
from roomcheck.schemas.session import InspectionSession, SessionLookup
from roomcheck.services.backend import InspectionBackend
from roomcheck.services.variants import InspectionVariant
from roomcheck.services.workspace_store import Phase, Workspace

logger = logging.getLogger(__name__)


def classify(variant: InspectionVariant, lookup: SessionLookup, flow_id: str) -> InspectionSession:
    """Map the lookup status onto continue / already completed / not found."""
    if lookup.ok and lookup.status == variant.open_status:
        return InspectionSession.from_lookup(lookup, flow_id)
    if lookup.status in variant.completed_statuses:
        raise ResolutionError(ResolutionFailure.ALREADY_COMPLETED, flow_id)
    raise ResolutionError(ResolutionFailure.NOT_FOUND, flow_id)


async def _flow_detail(backend: InspectionBackend, flow_id: str) -> FlowDetail | None:
    try:
        detail = await backend.get_flow_detail(flow_id)
    except BackendUnavailable as e:
        logger.warning("Flow detail for %s unavailable, continuing without tasks: %s", flow_id, e)
        return None
    if not detail.ok:
        logger.warning("Flow detail for %s reported not ok", flow_id)
        return None
    return detail


async def resolve_workspace(ws: Workspace, flow_id: str, backend: InspectionBackend) -> Workspace:
    flow_id = flow_id.strip()
    if not flow_id:
        ws.reset()
        return ws

    tag = ws.begin_resolution(flow_id)
    logger.info("Resolving flow %s for workspace %s (request %d)", flow_id, ws.id, tag.seq)

    try:
        lookup = await backend.resolve(flow_id)
        session = classify(ws.variant, lookup, flow_id)
    except BackendUnavailable as e:
        logger.warning("Lookup for %s failed: %s", flow_id, e)
        session = None
        error = ResolutionError(ResolutionFailure.NETWORK, flow_id)
    except ResolutionError as e:
        session = None
        error = e

    if not ws.is_current(tag):
        logger.info("Discarding stale lookup for %s (request %d)", flow_id, tag.seq)
        return ws
    if session is None:
        ws.fail(tag, error)
        return ws

    flow = tasks = None
    if ws.variant.has_task_flow:
        detail = await _flow_detail(backend, flow_id)
        if not ws.is_current(tag):
            logger.info("Discarding stale flow detail for %s (request %d)", flow_id, tag.seq)
            return ws
        if detail is not None:
            flow, tasks = detail.flow, detail.tasks

    ws.resolved(tag, session, flow, tasks)
    if ws.phase is Phase.RESOLVED:
        logger.info("Flow %s resolved to room %s", flow_id, session.room_id)
    return ws
