"""Exception hierarchy for Roomcheck.

Everything raised by the core inherits from RoomcheckError. The API layer
maps each class to an HTTP status in roomcheck.main.
"""

from __future__ import annotations

from enum import Enum


class RoomcheckError(Exception):
    """Base exception for all Roomcheck errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ResolutionFailure(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_COMPLETED = "already_completed"
    NETWORK = "network"


_RESOLUTION_MESSAGES = {
    ResolutionFailure.NOT_FOUND: "Booking not found or the link has expired.",
    ResolutionFailure.ALREADY_COMPLETED: "This inspection has already been completed.",
    ResolutionFailure.NETWORK: "Could not load the inspection. Check your connection and try again.",
}


class ResolutionError(RoomcheckError):
    """A flow id could not be turned into an open inspection session."""

    def __init__(self, reason: ResolutionFailure, flow_id: str = ""):
        super().__init__(_RESOLUTION_MESSAGES[reason])
        self.reason = reason
        self.flow_id = flow_id


class AttachmentError(RoomcheckError):
    """An image could not be decoded or re-encoded."""

    def __init__(self, filename: str = "", detail: str = ""):
        super().__init__("Upload failed. Please choose another photo.")
        self.filename = filename
        self.detail = detail


class ValidationKind(str, Enum):
    INCOMPLETE_AREAS = "incomplete_areas"
    MISSING_EVIDENCE = "missing_evidence"
    MISSING_SIGNATURE = "missing_signature"
    CONFIRMATION_REQUIRED = "confirmation_required"


class ValidationError(RoomcheckError):
    """The form is not ready to submit. Never reaches the network."""

    def __init__(self, kind: ValidationKind, message: str, offending: list[str] | None = None):
        super().__init__(message)
        self.kind = kind
        self.offending = offending or []


class SubmissionFailure(str, Enum):
    NETWORK = "network"
    REJECTED = "rejected"


class SubmissionError(RoomcheckError):
    """The submission endpoint failed or refused the payload."""

    def __init__(self, reason: SubmissionFailure, detail: str = ""):
        if reason is SubmissionFailure.NETWORK:
            message = "Could not send the inspection. Check your connection and try again."
        else:
            message = "The server could not process the inspection. Please try again."
        super().__init__(message)
        self.reason = reason
        self.detail = detail


class BackendUnavailable(RoomcheckError):
    """Transport-level failure talking to a collaborator."""


class UnknownAreaError(RoomcheckError):
    """Area id is not part of the configured checklist."""

    def __init__(self, area_id: str):
        super().__init__(f"Unknown area: {area_id}")
        self.area_id = area_id


class UnknownAttachmentError(RoomcheckError):
    """No attachment with that name in the area."""

    def __init__(self, area_id: str, name: str):
        super().__init__(f"No attachment named {name!r} in {area_id}")
        self.area_id = area_id
        self.name = name


class WorkspaceNotFound(RoomcheckError):
    """Workspace id unknown or expired."""


class InvalidPhase(RoomcheckError):
    """Operation not allowed in the workspace's current phase."""
