"""Profile section storage. Caller commits."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.enums import SectionName
from school_ledger.core.models import StudentSection


async def _get_row(db: AsyncSession, student_id: str, section_name: SectionName) -> Optional[StudentSection]:
    return (
        await db.execute(
            select(StudentSection).where(
                StudentSection.student_id == student_id,
                StudentSection.section_name == section_name.value,
            )
        )
    ).scalar_one_or_none()


async def read_section(db: AsyncSession, student_id: str, section_name: SectionName) -> Optional[dict]:
    row = await _get_row(db, student_id, section_name)
    return dict(row.data) if row else None


async def write_section(
    db: AsyncSession,
    student_id: str,
    section_name: SectionName,
    data: Optional[dict],
    updated_by: Optional[str] = None,
) -> None:
    """Overwrite the section. data=None removes it (the section had no value before)."""
    row = await _get_row(db, student_id, section_name)
    if data is None:
        if row is not None:
            await db.delete(row)
        await db.flush()
        return
    if row is None:
        row = StudentSection(student_id=student_id, section_name=section_name.value, data=data)
        db.add(row)
    else:
        row.data = data
        row.updated_at = datetime.now(timezone.utc)
    row.updated_by = updated_by
    await db.flush()
