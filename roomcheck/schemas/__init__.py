"""Pydantic models: domain records, collaborator wire shapes, API I/O."""

from roomcheck.schemas.area import AreaStatus, AreaRecord, Attachment, TransportFile
from roomcheck.schemas.session import SessionLookup, InspectionSession
from roomcheck.schemas.flow import (
    TaskType, Task, FlowMeta, FlowSummary, FlowDetail, TaskInbox, FlowView, TaskView,
)
from roomcheck.schemas.submission import (
    AreaMeta, SubmitFields, NestedPayload, FlatPayload, SubmitResponse, SubmitResult,
)
from roomcheck.schemas.workspace import (
    WorkspaceCreate, ResolveRequest, StatusUpdate, NoteUpdate, SignatureUpdate,
    DetailsUpdate, SubmitRequest, AttachmentRead, AreaRead, ErrorRead, FormRead,
    WorkspaceRead, ValidationReport, TaskOpenResult,
)

__all__ = [
    "AreaStatus", "AreaRecord", "Attachment", "TransportFile",
    "SessionLookup", "InspectionSession",
    "TaskType", "Task", "FlowMeta", "FlowSummary", "FlowDetail", "TaskInbox", "FlowView", "TaskView",
    "AreaMeta", "SubmitFields", "NestedPayload", "FlatPayload", "SubmitResponse", "SubmitResult",
    "WorkspaceCreate", "ResolveRequest", "StatusUpdate", "NoteUpdate", "SignatureUpdate",
    "DetailsUpdate", "SubmitRequest", "AttachmentRead", "AreaRead", "ErrorRead", "FormRead",
    "WorkspaceRead", "ValidationReport", "TaskOpenResult",
]
