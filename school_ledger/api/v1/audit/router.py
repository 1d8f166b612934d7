from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.sections import service as sections_service
from school_ledger.api.v1.sections.schemas import UndoResponse
from school_ledger.core.enums import ErrorKind
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import AuditEntryResponse, EditingSessionCreate, EditingSessionResponse
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["editing-sessions"])


@router.post(
    "/{student_id}/sessions",
    response_model=EditingSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def open_editing_session(
    student_id: str,
    payload: EditingSessionCreate,
    db: AsyncSession = Depends(get_db),
) -> EditingSessionResponse:
    """Open an editing session. Every change made through it lands on its own undo stack."""
    return await service.open_session(db, student_id, payload.actor)


@router.get("/{student_id}/sessions/{session_id}", response_model=EditingSessionResponse)
async def get_editing_session(
    student_id: str,
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> EditingSessionResponse:
    try:
        return await service.get_session_state(db, student_id, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{student_id}/sessions/{session_id}/history", response_model=List[AuditEntryResponse])
async def get_session_history(
    student_id: str,
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[AuditEntryResponse]:
    """Audit entries of the session, newest first. Reverted entries are included."""
    try:
        return await service.list_history(db, student_id, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{student_id}/sessions/{session_id}/undo", response_model=UndoResponse)
async def undo_last_change(
    student_id: str,
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> UndoResponse:
    """Revert the most recent change of the session. An empty stack is reported, not raised."""
    try:
        reverted = await sections_service.undo_last_change(db, student_id, session_id)
        state = await service.get_session_state(db, student_id, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    if reverted is None:
        return UndoResponse(status=ErrorKind.UNDO_STACK_EMPTY.value, reverted=None, can_undo=False)
    return UndoResponse(status="reverted", reverted=reverted, can_undo=state.can_undo)
