# purvita/schemas/admin_note.py
"""
Admin note payloads and attachment validation.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_ATTACHMENTS = 5
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024


class NoteAttachment(BaseModel):
    type: Literal['image', 'video', 'audio', 'document']
    url: str = Field(pattern=r'^https?://\S+$')
    name: str = Field(max_length=255)
    size: int = Field(ge=0, le=MAX_ATTACHMENT_SIZE)


class AdminNotePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    content: str
    attachments: List[NoteAttachment] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)

    @field_validator('content')
    @classmethod
    def _content_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Content is required')
        return value.strip()


class AdminNoteUpdatePayload(AdminNotePayload):
    id: str = Field(min_length=1)
    attachments: Optional[List[NoteAttachment]] = Field(default=None, max_length=MAX_ATTACHMENTS)
