"""Clients for the external collaborators: session lookup, task inbox,
flow detail and the submission webhook that renders the PDF."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import TypeVar

import httpx
from pydantic import BaseModel

from roomcheck.config import BackendConfig, Settings, get_settings
from roomcheck.errors import BackendUnavailable
from roomcheck.schemas.flow import FlowDetail, FlowMeta, FlowSummary, Task, TaskInbox, TaskType
from roomcheck.schemas.session import SessionLookup
from roomcheck.schemas.submission import SubmitResponse
from roomcheck.services.variants import InspectionVariant, get_variant

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class InspectionBackend(ABC):
    """Abstract interface for the remote services the core depends on."""

    @abstractmethod
    async def resolve(self, flow_id: str) -> SessionLookup:
        """Look up the session behind a flow id. Must be side-effect free."""
        ...

    @abstractmethod
    async def list_tasks(self) -> TaskInbox:
        ...

    @abstractmethod
    async def get_flow_detail(self, flow_id: str) -> FlowDetail:
        ...

    @abstractmethod
    async def submit(self, payload: BaseModel) -> SubmitResponse:
        """Send the assembled inspection; the backend renders the PDF."""
        ...

    async def aclose(self) -> None:
        return None


class HttpBackend(InspectionBackend):
    """Live collaborators over HTTP (lookup script + submission webhook)."""

    def __init__(self, cfg: BackendConfig, client: httpx.AsyncClient | None = None):
        self.cfg = cfg
        self._client = client or httpx.AsyncClient(timeout=cfg.timeout, follow_redirects=True)

    async def _request(self, model: type[ModelT], method: str, url: str, **kwargs) -> ModelT:
        if not url:
            raise BackendUnavailable(f"No URL configured for {method} request")
        try:
            r = await self._client.request(method, url, **kwargs)
            r.raise_for_status()
            # pydantic's ValidationError is a ValueError, as is a bad JSON body
            return model.model_validate(r.json())
        except (httpx.HTTPError, ValueError) as e:
            raise BackendUnavailable(f"{method} {url} failed: {e}") from e

    async def resolve(self, flow_id: str) -> SessionLookup:
        return await self._request(SessionLookup, "GET", self.cfg.lookup_url, params={"flowId": flow_id})

    async def list_tasks(self) -> TaskInbox:
        return await self._request(TaskInbox, "GET", self.cfg.tasks_url)

    async def get_flow_detail(self, flow_id: str) -> FlowDetail:
        return await self._request(FlowDetail, "GET", self.cfg.flow_detail_url, params={"flowId": flow_id})

    async def submit(self, payload: BaseModel) -> SubmitResponse:
        return await self._request(
            SubmitResponse, "POST", self.cfg.submit_url,
            json=payload.model_dump(mode="json", by_alias=True),
        )

    async def aclose(self) -> None:
        await self._client.aclose()


# ── Mock ─────────────────────────────────────────────────

def _demo_tasks(flow_id: str, inspection_status: str) -> list[Task]:
    return [
        Task(task_id=f"{flow_id}-room", type=TaskType.INSPECTION.value, status=inspection_status, title="Room inspection"),
        Task(task_id=f"{flow_id}-fridge", type=TaskType.FRIDGE.value, status="PENDING", title="Return fridge"),
        Task(task_id=f"{flow_id}-car", type=TaskType.CAR.value, status="PENDING", title="Return parking permit"),
    ]


def _demo_flows(variant: InspectionVariant) -> list[FlowSummary]:
    now = datetime.now(timezone.utc)
    b503 = FlowSummary(
        flow_id="B503", room_id="B503", tenant_name="Demo Tenant",
        due_at=now + timedelta(days=3), escalate_at=now + timedelta(days=5),
        tasks=_demo_tasks("B503", variant.open_status),
    )
    a101_tasks = _demo_tasks("A101", variant.open_status)
    a101_tasks[1] = a101_tasks[1].model_copy(update={"status": "DONE"})
    a101 = FlowSummary(
        flow_id="A101", room_id="A101",
        due_at=now - timedelta(days=2), escalate_at=now + timedelta(days=1),
        progress=1 / 3, overdue=True, days_left=-2,
        tasks=a101_tasks,
    )
    c210 = FlowSummary(flow_id="C210", room_id="C210", tasks=_demo_tasks("C210", variant.open_status))
    return [b503, a101, c210]


class MockBackend(InspectionBackend):
    """In-memory stand-in used for demos and tests.

    Any flow id resolves to an open session whose room id is the last
    ``-`` separated segment (``Ue905-B503`` -> ``B503``). ``statuses``
    overrides the reported status per flow id; ``delays`` adds latency
    per flow id. A successful submit marks the flow completed.
    """

    def __init__(
        self,
        variant: InspectionVariant,
        statuses: dict[str, str] | None = None,
        flows: list[FlowSummary] | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.variant = variant
        self._statuses = dict(statuses or {})
        self._flows = {f.flow_id: f for f in (flows if flows is not None else _demo_flows(variant))}
        self._delays = dict(delays or {})
        self.submissions: list[dict] = []

    async def _pause(self, flow_id: str) -> None:
        delay = self._delays.get(flow_id, 0.0)
        if delay:
            await asyncio.sleep(delay)

    async def resolve(self, flow_id: str) -> SessionLookup:
        await self._pause(flow_id)
        room_id = flow_id.rsplit("-", 1)[-1]
        return SessionLookup(
            ok=True,
            flow_id=flow_id,
            status=self._statuses.get(flow_id, self.variant.open_status),
            building=room_id[:1],
            floor=room_id[1:2],
            room_id=room_id,
            tenant_name="Demo Tenant",
            tenant_phone="000-000-0000",
        )

    async def list_tasks(self) -> TaskInbox:
        return TaskInbox(ok=True, flows=list(self._flows.values()))

    async def get_flow_detail(self, flow_id: str) -> FlowDetail:
        await self._pause(flow_id)
        flow = self._flows.get(flow_id)
        if flow is None:
            room_id = flow_id.rsplit("-", 1)[-1]
            return FlowDetail(
                ok=True,
                flow=FlowMeta(flow_id=flow_id, room_id=room_id),
                tasks=_demo_tasks(flow_id, self._statuses.get(flow_id, self.variant.open_status)),
            )
        meta = FlowMeta.model_validate(flow.model_dump(exclude={"tasks"}))
        return FlowDetail(ok=True, flow=meta, tasks=list(flow.tasks))

    async def submit(self, payload: BaseModel) -> SubmitResponse:
        body = payload.model_dump(mode="json", by_alias=True)
        self.submissions.append(body)
        flow_id = body["flowId"]
        room_id = body.get("roomId") or body.get("fields", {}).get("roomId", "")
        self._statuses[flow_id] = sorted(self.variant.completed_statuses)[0]
        flow = self._flows.get(flow_id)
        if flow is not None:
            tasks = [
                t.model_copy(update={"status": "DONE"}) if t.type == TaskType.INSPECTION.value else t
                for t in flow.tasks
            ]
            self._flows[flow_id] = flow.model_copy(update={"tasks": tasks, "progress": None})
        logger.info("Mock submission for %s accepted (%d files)", flow_id, len(body.get("files", [])))
        return SubmitResponse(
            ok=True,
            room_id=room_id,
            pdf_url=f"https://mock.invalid/reports/{flow_id}.pdf",
            signature_url=f"https://mock.invalid/signatures/{flow_id}.png",
        )


def get_backend(settings: Settings | None = None, variant: InspectionVariant | None = None) -> InspectionBackend:
    """Factory: the backend mode is an explicit setting, never guessed from URLs."""
    settings = settings or get_settings()
    mode = settings.backend.mode
    if mode == "mock":
        return MockBackend(variant or get_variant(settings.variant, settings))
    if mode == "live":
        return HttpBackend(settings.backend)
    raise ValueError(f"backend.mode must be 'mock' or 'live', got {mode!r}")
