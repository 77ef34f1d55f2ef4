"""Derived scheduling and progress for the tasks of a check-out flow.

Backend data is often partial, so every function here is total: missing
fields fall back to neutral values instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Union

from roomcheck.schemas.flow import FlowMeta, FlowView, Task, TaskType, TaskView
from roomcheck.services.rounding import round_half_up

TYPE_LABELS = {
    TaskType.INSPECTION.value: "ROOM",
    TaskType.FRIDGE.value: "FRIDGE",
    TaskType.CAR.value: "PARKING",
}
DONE_STATUSES = frozenset({"DONE", "COMPLETED"})
DUE_PLACEHOLDER = "-"


def type_label(task_type: str | None) -> str:
    """Short tag for a task type; unknown types pass through unchanged."""
    if task_type is None:
        return ""
    return TYPE_LABELS.get(task_type, task_type)


def status_tone(status: str | None) -> str:
    """``done`` for DONE/COMPLETED in any case, ``pending`` for everything else."""
    return "done" if (status or "").strip().upper() in DONE_STATUSES else "pending"


def progress_percent(flow: FlowMeta) -> int:
    return round_half_up(100 * (flow.progress or 0))


def due_label(flow: FlowMeta) -> str:
    days_left = flow.days_left
    if flow.overdue or (days_left is not None and days_left < 0):
        return f"overdue by {abs(days_left or 0)} days"
    if days_left is not None:
        return f"D-minus-{days_left}"
    return DUE_PLACEHOLDER


def derive_progress(tasks: list[Task]) -> float:
    """Fraction of tasks in a done-like status; 0 for an empty bundle."""
    if not tasks:
        return 0.0
    return sum(1 for t in tasks if status_tone(t.status) == "done") / len(tasks)


def _today() -> date:
    return datetime.now(timezone.utc).date()


def days_until(moment: datetime, today: date | None = None) -> int:
    return (moment.date() - (today or _today())).days


def is_escalated(flow: FlowMeta, today: date | None = None) -> bool:
    if flow.escalate_at is None:
        return False
    return (today or _today()) >= flow.escalate_at.date()


def fill_schedule(flow: FlowMeta, tasks: list[Task] | None = None, today: date | None = None) -> FlowMeta:
    """Fill progress / days_left / overdue the backend left out."""
    update: dict = {}
    if flow.progress is None and tasks:
        update["progress"] = derive_progress(tasks)
    days_left = flow.days_left
    if days_left is None and flow.due_at is not None:
        days_left = days_until(flow.due_at, today)
        if flow.overdue:
            days_left = min(days_left, 0)
        update["days_left"] = days_left
    if flow.overdue is None and days_left is not None:
        update["overdue"] = days_left < 0
    return flow.model_copy(update=update) if update else flow


def task_view(task: Task) -> TaskView:
    return TaskView(
        task_id=task.task_id,
        type=task.type,
        type_label=type_label(task.type),
        status=task.status,
        tone=status_tone(task.status),
    )


def summarize_flow(flow: FlowMeta, tasks: list[Task] | None = None, today: date | None = None) -> FlowView:
    tasks = tasks if tasks is not None else list(getattr(flow, "tasks", []) or [])
    filled = fill_schedule(flow, tasks, today)
    return FlowView(
        flow_id=filled.flow_id,
        room_id=filled.room_id,
        tasks=[task_view(t) for t in tasks],
        progress_percent=progress_percent(filled),
        due_label=due_label(filled),
        overdue=bool(filled.overdue),
        days_left=filled.days_left,
        escalated=is_escalated(filled, today),
        due_at=filled.due_at,
        escalate_at=filled.escalate_at,
    )


# ── Task dispatch ─────────────────────────────────────────

@dataclass(frozen=True)
class OpenInspection:
    flow_id: str
    task_id: str


@dataclass(frozen=True)
class TaskUnavailable:
    task_type: str
    message: str


TaskAction = Union[OpenInspection, TaskUnavailable]

_HANDLERS: dict[TaskType, Callable[[str, Task], TaskAction]] = {
    TaskType.INSPECTION: lambda flow_id, task: OpenInspection(flow_id=flow_id, task_id=task.task_id),
}


def open_task(flow_id: str, task: Task) -> TaskAction:
    """Decide what selecting ``task`` does. Types without a handler are unavailable."""
    try:
        handler = _HANDLERS.get(TaskType(task.type))
    except ValueError:
        handler = None
    if handler is None:
        label = type_label(task.type) or "This task"
        return TaskUnavailable(task_type=task.type, message=f"{label} is not yet available.")
    return handler(flow_id, task)


def find_task(tasks: list[Task], task_id: str) -> Task | None:
    return next((t for t in tasks if t.task_id == task_id), None)
