from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from roomcheck.schemas.area import AreaStatus, TransportFile

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AreaMeta(BaseModel):
    status: AreaStatus
    note: str = ""


class SubmitFields(BaseModel):
    building: str
    floor: str
    room_id: str
    inspector: str
    global_notes: str = ""
    tenant_signature: str

    model_config = _WIRE


class NestedPayload(BaseModel):
    """Canonical submission shape: identification grouped under ``fields``."""

    flow_id: str
    fields: SubmitFields
    meta_by_area: dict[str, AreaMeta]
    files: list[TransportFile] = Field(default_factory=list)

    model_config = _WIRE


class FlatPayload(BaseModel):
    """Legacy check-out shape: identification fields at the top level."""

    flow_id: str
    variant: str
    building: str
    floor: str
    room_id: str
    tenant_name: str = ""
    tenant_phone: str = ""
    inspector: str
    global_notes: str = ""
    tenant_signature: str
    meta_by_area: dict[str, AreaMeta]
    files: list[TransportFile] = Field(default_factory=list)

    model_config = _WIRE


class SubmitResponse(BaseModel):
    ok: bool = False
    room_id: str = ""
    pdf_url: str = ""
    signature_url: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class SubmitResult(BaseModel):
    pdf_url: str
    room_id: str
    signature_url: str | None = None
