from __future__ import annotations
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_WIRE = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    coerce_numbers_to_str=True,
    extra="ignore",
)


class TaskType(str, Enum):
    INSPECTION = "INSPECTION"
    FRIDGE = "FRIDGE"
    CAR = "CAR"


class Task(BaseModel):
    task_id: str = ""
    type: str = ""  # TaskType value or anything newer the backend sends
    status: str = ""
    title: str | None = None
    completed_at: datetime | None = None

    model_config = _WIRE


class FlowMeta(BaseModel):
    flow_id: str = ""
    room_id: str = ""
    tenant_name: str | None = None
    due_at: datetime | None = None
    escalate_at: datetime | None = None
    progress: float | None = None  # 0..1
    overdue: bool | None = None
    days_left: int | None = None  # negative = overdue

    model_config = _WIRE


class FlowSummary(FlowMeta):
    tasks: list[Task] = Field(default_factory=list)


class TaskInbox(BaseModel):
    ok: bool = False
    flows: list[FlowSummary] = Field(default_factory=list)

    model_config = _WIRE


class FlowDetail(BaseModel):
    ok: bool = False
    flow: FlowMeta | None = None
    tasks: list[Task] | None = None

    model_config = _WIRE


class TaskView(BaseModel):
    task_id: str
    type: str
    type_label: str
    status: str
    tone: str  # done | pending


class FlowView(BaseModel):
    flow_id: str
    room_id: str
    tasks: list[TaskView] = []
    progress_percent: int = 0
    due_label: str
    overdue: bool = False
    days_left: int | None = None
    escalated: bool = False
    due_at: datetime | None = None
    escalate_at: datetime | None = None
