from __future__ import annotations
from pydantic import BaseModel, Field, field_validator

from roomcheck.schemas.area import AreaStatus
from roomcheck.schemas.flow import FlowView
from roomcheck.schemas.session import InspectionSession
from roomcheck.schemas.submission import SubmitResult


class WorkspaceCreate(BaseModel):
    flow_id: str | None = None


class ResolveRequest(BaseModel):
    flow_id: str = Field(min_length=1)


class StatusUpdate(BaseModel):
    status: AreaStatus


class NoteUpdate(BaseModel):
    note: str = ""


class SignatureUpdate(BaseModel):
    image: str | None = None  # data:image/png;base64,... or null to clear

    @field_validator("image")
    @classmethod
    def _must_be_image_data_url(cls, v: str | None) -> str | None:
        if v and not (v.startswith("data:image/") and ";base64," in v):
            raise ValueError("signature must be a base64 image data URL")
        return v or None


class DetailsUpdate(BaseModel):
    inspector_name: str | None = None
    global_note: str | None = None


class SubmitRequest(BaseModel):
    confirmed: bool = False


class AttachmentRead(BaseModel):
    name: str
    mime_type: str
    size: int  # encoded bytes
    preview_data: str | None = None


class AreaRead(BaseModel):
    area_id: str
    label: str
    status: AreaStatus
    note: str
    attachments: list[AttachmentRead] = []


class ErrorRead(BaseModel):
    error: str
    reason: str = ""
    message: str
    retryable: bool = False


class FormRead(BaseModel):
    areas: list[AreaRead]
    inspector_name: str
    global_note: str
    has_signature: bool
    completed_count: int
    total_areas: int
    progress_percent: int


class WorkspaceRead(BaseModel):
    id: str
    variant: str
    phase: str
    view: str | None = None
    flow_id: str | None = None
    error: ErrorRead | None = None
    session: InspectionSession | None = None
    form: FormRead | None = None
    flow: FlowView | None = None
    result: SubmitResult | None = None


class ValidationReport(BaseModel):
    ready: bool
    kind: str | None = None
    message: str = ""
    offending: list[str] = []


class TaskOpenResult(BaseModel):
    view: str
    flow_id: str
    task_id: str
