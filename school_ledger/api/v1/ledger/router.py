from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import (
    BaseFeesResponse,
    BaseFeesSetupRequest,
    FinancialCommitResponse,
    InstallmentStatusUpdate,
    TransactionCreate,
    TransactionResponse,
    YearFinancialSummary,
)
from . import service

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])


@router.post(
    "/{student_id}/years/{year_key}/base-fees",
    response_model=BaseFeesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def setup_base_fees(
    student_id: str,
    year_key: str,
    payload: BaseFeesSetupRequest,
    db: AsyncSession = Depends(get_db),
) -> BaseFeesResponse:
    """One-time base fee setup. Installments are generated from installment_count when not given."""
    try:
        return await service.setup_base_fees(db, student_id, year_key, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{student_id}/years/{year_key}/base-fees", response_model=BaseFeesResponse)
async def get_base_fees(
    student_id: str,
    year_key: str,
    db: AsyncSession = Depends(get_db),
) -> BaseFeesResponse:
    try:
        return await service.get_base_fees(db, student_id, year_key)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{student_id}/years/{year_key}/summary", response_model=YearFinancialSummary)
async def get_year_summary(
    student_id: str,
    year_key: str,
    db: AsyncSession = Depends(get_db),
) -> YearFinancialSummary:
    """Recomputed from base fees and the transaction log on every call."""
    try:
        return await service.get_year_financial_summary(db, student_id, year_key)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{student_id}/years/{year_key}/transactions", response_model=List[TransactionResponse])
async def list_transactions(
    student_id: str,
    year_key: str,
    db: AsyncSession = Depends(get_db),
) -> List[TransactionResponse]:
    return await service.list_transactions(db, student_id, year_key)


@router.post(
    "/{student_id}/transactions",
    response_model=FinancialCommitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_transaction(
    student_id: str,
    payload: TransactionCreate,
    db: AsyncSession = Depends(get_db),
) -> FinancialCommitResponse:
    """Append a transaction. It can be undone through the session, which posts a reversal."""
    try:
        return await service.record_financial_transaction(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{student_id}/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    student_id: str,
    transaction_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    try:
        return await service.get_transaction(db, student_id, transaction_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/{student_id}/years/{year_key}/installments/{sequence_number}/status",
    response_model=FinancialCommitResponse,
)
async def set_installment_status(
    student_id: str,
    year_key: str,
    sequence_number: int,
    payload: InstallmentStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> FinancialCommitResponse:
    try:
        return await service.set_installment_status(db, student_id, year_key, sequence_number, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
