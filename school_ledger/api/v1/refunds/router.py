from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.enums import RefundStatus
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import RefundApprove, RefundPay, RefundReject, RefundRequestCreate, RefundResponse
from . import service

router = APIRouter(prefix="/api/v1/refunds", tags=["refunds"])


@router.post(
    "/students/{student_id}",
    response_model=RefundResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_refund(
    student_id: str,
    payload: RefundRequestCreate,
    db: AsyncSession = Depends(get_db),
) -> RefundResponse:
    """Create a pending refund request. Deductions are computed from the year's payments."""
    try:
        return await service.request_refund(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/students/{student_id}", response_model=List[RefundResponse])
async def list_student_refunds(
    student_id: str,
    year_key: Optional[str] = None,
    refund_status: Optional[RefundStatus] = None,
    db: AsyncSession = Depends(get_db),
) -> List[RefundResponse]:
    return await service.list_refunds(db, student_id=student_id, year_key=year_key, status=refund_status)


@router.get("/pending", response_model=List[RefundResponse])
async def list_pending_refunds(db: AsyncSession = Depends(get_db)) -> List[RefundResponse]:
    return await service.list_refunds(db, status=RefundStatus.pending)


@router.get("/{refund_id}", response_model=RefundResponse)
async def get_refund(refund_id: UUID, db: AsyncSession = Depends(get_db)) -> RefundResponse:
    try:
        return await service.get_refund(db, refund_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{refund_id}/approve", response_model=RefundResponse)
async def approve_refund(
    refund_id: UUID,
    payload: RefundApprove,
    db: AsyncSession = Depends(get_db),
) -> RefundResponse:
    try:
        return await service.approve_refund(db, refund_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{refund_id}/reject", response_model=RefundResponse)
async def reject_refund(
    refund_id: UUID,
    payload: RefundReject,
    db: AsyncSession = Depends(get_db),
) -> RefundResponse:
    try:
        return await service.reject_refund(db, refund_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{refund_id}/pay", response_model=RefundResponse)
async def pay_refund(
    refund_id: UUID,
    payload: RefundPay,
    db: AsyncSession = Depends(get_db),
) -> RefundResponse:
    """Pay an approved refund. The refund transaction is recorded on the given editing session."""
    try:
        return await service.pay_refund(db, refund_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
