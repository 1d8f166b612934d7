"""Editing session and audit entry schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.core.enums import AuditEntryState, SectionName


class EditingSessionCreate(BaseModel):
    actor: str = Field(..., min_length=1, max_length=255)


class EditingSessionResponse(BaseModel):
    id: UUID
    student_id: str
    actor: str
    opened_at: datetime
    top_sequence: int
    depth: int
    can_undo: bool


class AuditEntryResponse(BaseModel):
    id: UUID
    session_id: UUID
    student_id: str
    sequence: int
    section_name: SectionName
    before_snapshot: Optional[Any] = None
    after_snapshot: Optional[Any] = None
    actor: str
    state: AuditEntryState
    created_at: datetime
    reverted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
