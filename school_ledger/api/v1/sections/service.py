"""
Mutation coordinator: read current value -> record audit entry -> apply mutation ->
refresh derived aggregates. Also drives undo through the same section handlers.

The audit row and the mutation share one database transaction: the audit entry is
flushed first, and a single commit makes both durable.
"""

import logging
from typing import Any, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.audit import service as audit_service
from school_ledger.api.v1.ledger.schemas import TransactionSnapshot, YearFinancialSummary
from school_ledger.api.v1.ledger.summary import build_year_summary
from school_ledger.core.enums import SectionName, TransactionType
from school_ledger.core.events import PaymentRecorded, event_bus
from school_ledger.core.exceptions import (
    AuditWriteFailed,
    InvalidInputError,
    MutationFailed,
    ReadFailed,
    ServiceError,
)

from . import store
from .academic import compute_academic_summary
from .handlers import SectionHandler, get_handler
from .schemas import AcademicData, AcademicSummary, CommitResult, RevertedSection, SectionResponse

logger = logging.getLogger(__name__)


def _dump(value: Optional[BaseModel]) -> Optional[dict]:
    return value.model_dump(mode="json") if value is not None else None


async def _refresh_derived(
    db: AsyncSession,
    student_id: str,
    handler: SectionHandler,
    value: Optional[BaseModel],
) -> Tuple[Optional[YearFinancialSummary], Optional[AcademicSummary]]:
    financial_summary = None
    academic_summary = None
    if handler.affects_financials and value is not None:
        financial_summary = await build_year_summary(db, student_id, value.year_key)
    if handler.affects_academics:
        academic_summary = compute_academic_summary(value if value is not None else AcademicData())
    return financial_summary, academic_summary


async def get_section(db: AsyncSession, student_id: str, section_name: SectionName) -> SectionResponse:
    if section_name == SectionName.FINANCIAL_TRANSACTION:
        raise InvalidInputError("The financial section is read through the ledger endpoints")
    data = await store.read_section(db, student_id, section_name)
    return SectionResponse(student_id=student_id, section_name=section_name, value=data)


async def apply_section_mutation(
    db: AsyncSession,
    student_id: str,
    session_id: UUID,
    section_name: SectionName,
    new_value: Any,
) -> CommitResult:
    handler = get_handler(section_name)
    try:
        value = handler.prepare(handler.parse(new_value))
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {section_name.value} value: {e.errors()[0].get('msg', 'validation error')}")

    session = await audit_service.get_session(db, student_id, session_id)
    actor = session.actor

    # 1. before snapshot
    try:
        before = await handler.read_current(db, student_id, value)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Reading %s for student %s failed", section_name.value, student_id)
        raise ReadFailed(f"Could not read current {section_name.value}; nothing was changed")

    # 2. audit entry; fail closed
    try:
        entry = await audit_service.record_entry(db, session, section_name, before, value)
        entry_id, sequence = entry.id, entry.sequence
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Audit write for %s of student %s failed", section_name.value, student_id)
        raise AuditWriteFailed(f"Could not record the audit entry for {section_name.value}; nothing was changed")

    # 3. mutation, committed together with the audit entry
    try:
        await handler.write(db, student_id, value, actor)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Applying %s for student %s failed after audit entry %s", section_name.value, student_id, entry_id)
        raise MutationFailed(f"Saving {section_name.value} failed after the audit entry was written")

    logger.info(
        "Student %s: %s updated by %s (session %s, entry #%s)",
        student_id, section_name.value, actor, session_id, sequence,
    )

    # 4. refresh dependent aggregates
    financial_summary, academic_summary = await _refresh_derived(db, student_id, handler, value)

    transaction_id = None
    if isinstance(value, TransactionSnapshot):
        transaction_id = value.id
        # compensating entries do not notify
        if value.transaction_type == TransactionType.payment and value.reverses_id is None:
            await event_bus.publish(
                PaymentRecorded(
                    student_id=student_id,
                    year_key=value.year_key,
                    transaction_id=value.id,
                    amount=value.amount,
                    transaction_date=value.transaction_date,
                    payment_method=value.payment_method,
                    receipt_number=value.receipt_number,
                    payer_name=value.payer_name,
                )
            )

    return CommitResult(
        audit_entry_id=entry_id,
        sequence=sequence,
        section_name=section_name,
        value=_dump(value),
        transaction_id=transaction_id,
        financial_summary=financial_summary,
        academic_summary=academic_summary,
    )


async def undo_last_change(db: AsyncSession, student_id: str, session_id: UUID) -> Optional[RevertedSection]:
    """Revert the top entry of the session stack. None means the stack is empty."""
    session = await audit_service.get_session(db, student_id, session_id)
    actor = session.actor
    try:
        entry = await audit_service.pop_top(db, session)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Popping the undo stack of session %s failed", session_id)
        raise AuditWriteFailed("Could not update the undo stack; nothing was reverted")
    if entry is None:
        logger.warning("Undo requested for student %s with an empty stack (session %s)", student_id, session_id)
        return None

    section_name = SectionName(entry.section_name)
    handler = get_handler(section_name)
    entry_id, sequence = entry.id, entry.sequence
    before = handler.parse_snapshot(entry.before_snapshot)
    after = handler.parse_snapshot(entry.after_snapshot)

    try:
        restored, compensating_id = await handler.revert(db, student_id, before, after, actor)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Reverting entry %s (%s) for student %s failed", entry_id, section_name.value, student_id)
        raise MutationFailed(f"Reverting {section_name.value} failed")

    logger.info("Student %s: reverted %s entry #%s (session %s)", student_id, section_name.value, sequence, session_id)

    financial_summary, academic_summary = await _refresh_derived(db, student_id, handler, after if after is not None else before)
    if handler.affects_academics:
        academic_summary = compute_academic_summary(restored if restored is not None else AcademicData())

    return RevertedSection(
        audit_entry_id=entry_id,
        sequence=sequence,
        section_name=section_name,
        restored_value=_dump(restored),
        compensating_transaction_id=compensating_id,
        financial_summary=financial_summary,
        academic_summary=academic_summary,
    )
