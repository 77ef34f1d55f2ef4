"""Live inspection form: one AreaRecord per checklist area plus sign-off fields.

InspectionForm is immutable. Every operation returns a new form in which
only the targeted record differs; callers replace their reference
wholesale.
"""

from __future__ import annotations

from pathlib import PurePath

from pydantic import BaseModel, model_validator

from roomcheck.config import ChecklistArea
from roomcheck.errors import UnknownAreaError, UnknownAttachmentError
from roomcheck.schemas.area import AreaRecord, AreaStatus, Attachment
from roomcheck.services.rounding import percent


def unique_name(name: str, existing: list[str]) -> str:
    """Return ``name``, or ``stem (n).ext`` when it already exists in the area."""
    if name not in existing:
        return name
    p = PurePath(name)
    n = 2
    while f"{p.stem} ({n}){p.suffix}" in existing:
        n += 1
    return f"{p.stem} ({n}){p.suffix}"


class InspectionForm(BaseModel):
    checklist: tuple[ChecklistArea, ...]
    areas: dict[str, AreaRecord]
    inspector_name: str = ""
    global_note: str = ""
    signature: str | None = None  # data:image/png;base64,...

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _one_record_per_area(self) -> "InspectionForm":
        ids = [a.id for a in self.checklist]
        if len(set(ids)) != len(ids):
            raise ValueError("checklist area ids must be unique")
        if set(ids) != set(self.areas):
            raise ValueError("form must hold exactly one record per checklist area")
        return self

    @classmethod
    def start(cls, checklist: list[ChecklistArea] | tuple[ChecklistArea, ...]) -> "InspectionForm":
        if not checklist:
            raise ValueError("checklist is empty")
        return cls(
            checklist=tuple(checklist),
            areas={a.id: AreaRecord(area_id=a.id) for a in checklist},
        )

    # ── queries ───────────────────────────────────────────

    def record(self, area_id: str) -> AreaRecord:
        try:
            return self.areas[area_id]
        except KeyError:
            raise UnknownAreaError(area_id) from None

    def label(self, area_id: str) -> str:
        for a in self.checklist:
            if a.id == area_id:
                return a.label
        raise UnknownAreaError(area_id)

    def ordered_records(self) -> list[AreaRecord]:
        return [self.areas[a.id] for a in self.checklist]

    def pending_areas(self) -> list[ChecklistArea]:
        return [a for a in self.checklist if self.areas[a.id].status is AreaStatus.PENDING]

    @property
    def total_areas(self) -> int:
        return len(self.checklist)

    @property
    def completed_count(self) -> int:
        return sum(1 for r in self.areas.values() if r.status is not AreaStatus.PENDING)

    @property
    def progress_percent(self) -> int:
        return percent(self.completed_count, self.total_areas)

    # ── updates ───────────────────────────────────────────

    def _replace(self, record: AreaRecord) -> "InspectionForm":
        return self.model_copy(update={"areas": {**self.areas, record.area_id: record}})

    def with_status(self, area_id: str, status: AreaStatus | str) -> "InspectionForm":
        rec = self.record(area_id)
        return self._replace(rec.model_copy(update={"status": AreaStatus(status)}))

    def with_note(self, area_id: str, note: str) -> "InspectionForm":
        rec = self.record(area_id)
        return self._replace(rec.model_copy(update={"note": note}))

    def with_attachment(self, area_id: str, attachment: Attachment) -> "InspectionForm":
        rec = self.record(area_id)
        name = unique_name(attachment.name, rec.attachment_names)
        if name != attachment.name or attachment.area_id != area_id:
            attachment = attachment.model_copy(update={"name": name, "area_id": area_id})
        return self._replace(rec.model_copy(update={"attachments": rec.attachments + (attachment,)}))

    def without_attachment(self, area_id: str, name: str) -> "InspectionForm":
        rec = self.record(area_id)
        for i, a in enumerate(rec.attachments):
            if a.name == name:
                remaining = rec.attachments[:i] + rec.attachments[i + 1:]
                return self._replace(rec.model_copy(update={"attachments": remaining}))
        raise UnknownAttachmentError(area_id, name)

    def with_signature(self, image: str | None) -> "InspectionForm":
        return self.model_copy(update={"signature": image or None})

    def with_details(self, inspector_name: str | None = None, global_note: str | None = None) -> "InspectionForm":
        update = {}
        if inspector_name is not None:
            update["inspector_name"] = inspector_name
        if global_note is not None:
            update["global_note"] = global_note
        return self.model_copy(update=update)
