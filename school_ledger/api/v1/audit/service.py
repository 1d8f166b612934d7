"""
Audit/undo ledger. Each editing session owns one LIFO stack of audit entries.

States per entry: active (top of stack, revertible), superseded (a newer entry sits
above it), reverted (consumed by undo). The session row carries the explicit
top-of-stack pointer; there is no redo.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.enums import AuditEntryState, SectionName
from school_ledger.core.exceptions import NotFoundError
from school_ledger.core.models import AuditEntry, EditingSession

from .schemas import AuditEntryResponse, EditingSessionResponse


def _dump(snapshot: Optional[BaseModel]) -> Optional[dict]:
    if snapshot is None:
        return None
    return snapshot.model_dump(mode="json")


def entry_to_response(e: AuditEntry) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=e.id,
        session_id=e.session_id,
        student_id=e.student_id,
        sequence=e.sequence,
        section_name=e.section_name,
        before_snapshot=e.before_snapshot,
        after_snapshot=e.after_snapshot,
        actor=e.actor,
        state=e.state,
        created_at=e.created_at,
        reverted_at=e.reverted_at,
    )


async def _session_to_response(db: AsyncSession, s: EditingSession) -> EditingSessionResponse:
    depth = (
        await db.execute(
            select(func.count(AuditEntry.id)).where(
                AuditEntry.session_id == s.id,
                AuditEntry.state != AuditEntryState.reverted.value,
            )
        )
    ).scalar() or 0
    return EditingSessionResponse(
        id=s.id,
        student_id=s.student_id,
        actor=s.actor,
        opened_at=s.opened_at,
        top_sequence=s.top_sequence,
        depth=int(depth),
        can_undo=s.top_sequence > 0,
    )


async def open_session(db: AsyncSession, student_id: str, actor: str) -> EditingSessionResponse:
    s = EditingSession(
        student_id=student_id,
        actor=actor.strip(),
        next_sequence=1,
        top_sequence=0,
        opened_at=datetime.now(timezone.utc),
    )
    db.add(s)
    await db.commit()
    await db.refresh(s)
    return await _session_to_response(db, s)


async def get_session(db: AsyncSession, student_id: str, session_id: UUID) -> EditingSession:
    s = (
        await db.execute(
            select(EditingSession).where(
                EditingSession.id == session_id,
                EditingSession.student_id == student_id,
            )
        )
    ).scalar_one_or_none()
    if not s:
        raise NotFoundError("Editing session not found for this student")
    return s


async def get_session_state(db: AsyncSession, student_id: str, session_id: UUID) -> EditingSessionResponse:
    s = await get_session(db, student_id, session_id)
    return await _session_to_response(db, s)


async def list_history(db: AsyncSession, student_id: str, session_id: UUID) -> List[AuditEntryResponse]:
    """All entries of the session, newest first, including reverted ones."""
    s = await get_session(db, student_id, session_id)
    rows = (
        await db.execute(
            select(AuditEntry).where(AuditEntry.session_id == s.id).order_by(AuditEntry.sequence.desc())
        )
    ).scalars().all()
    return [entry_to_response(e) for e in rows]


async def peek_top(db: AsyncSession, session: EditingSession) -> Optional[AuditEntry]:
    if session.top_sequence <= 0:
        return None
    return (
        await db.execute(
            select(AuditEntry).where(
                AuditEntry.session_id == session.id,
                AuditEntry.sequence == session.top_sequence,
            )
        )
    ).scalar_one_or_none()


async def record_entry(
    db: AsyncSession,
    session: EditingSession,
    section_name: SectionName,
    before: Optional[BaseModel],
    after: Optional[BaseModel],
) -> AuditEntry:
    """Push an entry on the session stack and flush it. Caller commits together with the mutation."""
    top = await peek_top(db, session)
    if top is not None:
        top.state = AuditEntryState.superseded.value
    entry = AuditEntry(
        session_id=session.id,
        student_id=session.student_id,
        sequence=session.next_sequence,
        section_name=section_name.value,
        before_snapshot=_dump(before),
        after_snapshot=_dump(after),
        actor=session.actor,
        state=AuditEntryState.active.value,
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    session.top_sequence = session.next_sequence
    session.next_sequence = session.next_sequence + 1
    await db.flush()
    return entry


async def pop_top(db: AsyncSession, session: EditingSession) -> Optional[AuditEntry]:
    """Mark the active entry reverted and move the pointer down. None when the stack is empty."""
    top = await peek_top(db, session)
    if top is None:
        return None
    top.state = AuditEntryState.reverted.value
    top.reverted_at = datetime.now(timezone.utc)
    below = (
        await db.execute(
            select(AuditEntry)
            .where(
                AuditEntry.session_id == session.id,
                AuditEntry.state == AuditEntryState.superseded.value,
                AuditEntry.sequence < top.sequence,
            )
            .order_by(AuditEntry.sequence.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    if below is not None:
        below.state = AuditEntryState.active.value
        session.top_sequence = below.sequence
    else:
        session.top_sequence = 0
    await db.flush()
    return top
