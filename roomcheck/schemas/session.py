from __future__ import annotations
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SessionLookup(BaseModel):
    """Raw answer of the session lookup collaborator."""

    ok: bool = False
    flow_id: str = ""
    status: str = ""
    building: str = ""
    floor: str = ""
    room_id: str = ""
    tenant_name: str | None = None
    tenant_phone: str | None = None
    checkin_date: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class InspectionSession(BaseModel):
    flow_id: str
    building: str = ""
    floor: str = ""
    room_id: str = ""
    tenant_name: str | None = None
    tenant_phone: str | None = None
    checkin_date: str | None = None
    status: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_lookup(cls, lookup: SessionLookup, requested_flow_id: str) -> "InspectionSession":
        return cls(
            flow_id=lookup.flow_id or requested_flow_id,
            building=lookup.building,
            floor=lookup.floor,
            room_id=lookup.room_id,
            tenant_name=lookup.tenant_name,
            tenant_phone=lookup.tenant_phone,
            checkin_date=lookup.checkin_date,
            status=lookup.status,
        )
