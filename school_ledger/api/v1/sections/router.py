from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.enums import SectionName
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import CommitResult, SectionMutationRequest, SectionResponse
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["student-sections"])


@router.get("/{student_id}/sections/{section_name}", response_model=SectionResponse)
async def read_section(
    student_id: str,
    section_name: SectionName,
    db: AsyncSession = Depends(get_db),
) -> SectionResponse:
    try:
        return await service.get_section(db, student_id, section_name)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put("/{student_id}/sections/{section_name}", response_model=CommitResult)
async def apply_section_mutation(
    student_id: str,
    section_name: SectionName,
    payload: SectionMutationRequest,
    db: AsyncSession = Depends(get_db),
) -> CommitResult:
    """
    Replace a section value (or, for FinancialTransaction, append a transaction / set an
    installment status). The previous value is recorded on the session's undo stack first.
    """
    try:
        return await service.apply_section_mutation(db, student_id, payload.session_id, section_name, payload.value)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
