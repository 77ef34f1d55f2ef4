from __future__ import annotations
from enum import Enum
from pydantic import BaseModel


class AreaStatus(str, Enum):
    PENDING = "pending"
    OK = "ok"
    PROBLEM = "problem"


class TransportFile(BaseModel):
    area: str
    name: str
    mime: str
    base64: str


class Attachment(BaseModel):
    area_id: str
    name: str
    mime_type: str = "image/jpeg"
    encoded_data: str  # base64, no data: prefix
    preview_data: str = ""  # full data URL, display only

    model_config = {"frozen": True}

    def transport(self) -> TransportFile:
        return TransportFile(
            area=self.area_id,
            name=self.name,
            mime=self.mime_type,
            base64=self.encoded_data,
        )


class AreaRecord(BaseModel):
    area_id: str
    status: AreaStatus = AreaStatus.PENDING
    note: str = ""
    attachments: tuple[Attachment, ...] = ()

    model_config = {"frozen": True}

    @property
    def attachment_names(self) -> list[str]:
        return [a.name for a in self.attachments]
