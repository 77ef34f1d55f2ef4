"""In-memory workspaces: one per tenant browser session.

A workspace carries the resolution phase, the resolved session, the
immutable InspectionForm and the submission result. Nothing here is
persisted; idle workspaces are purged by a background task.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from roomcheck.config import ChecklistArea
from roomcheck.errors import InvalidPhase, ResolutionError, WorkspaceNotFound
from roomcheck.schemas.flow import FlowMeta, Task
from roomcheck.schemas.session import InspectionSession
from roomcheck.schemas.submission import SubmitResult
from roomcheck.services.form_state import InspectionForm
from roomcheck.services.variants import InspectionVariant

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    MANUAL_ENTRY = "manual_entry"
    LOADING = "loading"
    ERROR = "error"
    RESOLVED = "resolved"
    SUBMITTED = "submitted"


class View(str, Enum):
    FLOW_SUMMARY = "flow_summary"
    INSPECTION_FORM = "inspection_form"


@dataclass(frozen=True)
class ResolutionTag:
    seq: int
    flow_id: str


class Workspace:
    def __init__(self, workspace_id: str, variant: InspectionVariant, checklist: list[ChecklistArea]):
        self.id = workspace_id
        self.variant = variant
        self.checklist = list(checklist)
        self.phase = Phase.MANUAL_ENTRY
        self.flow_id: str | None = None
        self.error: ResolutionError | None = None
        self.session: InspectionSession | None = None
        self.form: InspectionForm | None = None
        self.flow: FlowMeta | None = None
        self.tasks: list[Task] | None = None
        self.view: View | None = None
        self.result: SubmitResult | None = None
        self.submitting = False
        self._seq = 0
        self._current: ResolutionTag | None = None
        self.touched_at = datetime.now(timezone.utc)

    # ── resolution ────────────────────────────────────────

    def begin_resolution(self, flow_id: str) -> ResolutionTag:
        if self.phase is Phase.SUBMITTED:
            raise InvalidPhase("Inspection already submitted")
        self._require_idle()
        self._seq += 1
        self._current = ResolutionTag(self._seq, flow_id)
        self.phase = Phase.LOADING
        self.flow_id = flow_id
        self.error = None
        self.session = self.form = self.flow = self.tasks = self.view = None
        return self._current

    def _require_idle(self) -> None:
        if self.submitting:
            raise InvalidPhase("Submission in progress")

    def is_current(self, tag: ResolutionTag) -> bool:
        return self._current == tag

    @property
    def generation(self) -> int:
        return self._seq

    def fail(self, tag: ResolutionTag, error: ResolutionError) -> None:
        if not self.is_current(tag):
            return
        self.phase = Phase.ERROR
        self.error = error
        self._current = None

    def resolved(
        self,
        tag: ResolutionTag,
        session: InspectionSession,
        flow: FlowMeta | None = None,
        tasks: list[Task] | None = None,
    ) -> None:
        if not self.is_current(tag):
            return
        self.session = session
        self.form = InspectionForm.start(self.checklist)
        self.flow = flow
        self.tasks = tasks or None
        self.view = View.FLOW_SUMMARY if self.tasks else View.INSPECTION_FORM
        self.phase = Phase.RESOLVED
        self._current = None

    def reset(self) -> None:
        """Back to manual entry; in-flight resolutions become stale."""
        if self.phase is Phase.SUBMITTED:
            raise InvalidPhase("Inspection already submitted")
        self._require_idle()
        self._seq += 1
        self._current = None
        self.phase = Phase.MANUAL_ENTRY
        self.flow_id = None
        self.error = None
        self.session = self.form = self.flow = self.tasks = self.view = None

    # ── form ──────────────────────────────────────────────

    def require_editable(self) -> InspectionForm:
        if self.phase is not Phase.RESOLVED or self.form is None:
            raise InvalidPhase(f"No open inspection form (phase: {self.phase.value})")
        self._require_idle()
        return self.form

    def update_form(self, change: Callable[[InspectionForm], InspectionForm]) -> InspectionForm:
        """Apply ``change`` to the current form and swap the result in."""
        self.form = change(self.require_editable())
        return self.form

    def open_form(self) -> None:
        self.require_editable()
        self.view = View.INSPECTION_FORM

    def complete(self, result: SubmitResult) -> None:
        self.result = result
        self.phase = Phase.SUBMITTED


class WorkspaceStore:
    def __init__(self):
        self._workspaces: dict[str, Workspace] = {}

    def create(self, variant: InspectionVariant, checklist: list[ChecklistArea]) -> Workspace:
        ws = Workspace(secrets.token_urlsafe(24), variant, checklist)
        self._workspaces[ws.id] = ws
        return ws

    def get(self, workspace_id: str) -> Workspace:
        ws = self._workspaces.get(workspace_id)
        if ws is None:
            raise WorkspaceNotFound("Workspace not found or expired")
        ws.touched_at = datetime.now(timezone.utc)
        return ws

    def discard(self, workspace_id: str) -> None:
        self._workspaces.pop(workspace_id, None)

    def purge_idle(self, max_idle: timedelta, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        stale = [k for k, ws in self._workspaces.items() if now - ws.touched_at > max_idle and not ws.submitting]
        for k in stale:
            del self._workspaces[k]
        if stale:
            logger.info("Purged %d idle workspaces", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._workspaces)


workspace_store = WorkspaceStore()
