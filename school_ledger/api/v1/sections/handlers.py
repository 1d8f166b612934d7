"""
One handler per tracked section. The mapping is closed over SectionName and checked
at import time, so a new section cannot be added without its read/write/revert logic.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple, Type
from uuid import UUID, uuid4

from pydantic import BaseModel, TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.ledger import registry
from school_ledger.api.v1.ledger.engine import cancelled_ids
from school_ledger.api.v1.ledger.schemas import InstallmentStatusSnapshot, TransactionSnapshot
from school_ledger.core.enums import SectionName, TransactionType
from school_ledger.core.exceptions import InvalidInputError, NotFoundError

from . import store
from .schemas import (
    AcademicData,
    EmergencyContacts,
    EnrollmentData,
    FinancialChange,
    GuardianData,
    LegalGuardianship,
    MotherData,
    PersonalData,
)

logger = logging.getLogger(__name__)

RevertOutcome = Tuple[Optional[BaseModel], Optional[UUID]]


class SectionHandler:
    section_name: SectionName
    affects_financials = False
    affects_academics = False

    def parse(self, value: Any) -> BaseModel:
        raise NotImplementedError

    def parse_snapshot(self, raw: Optional[dict]) -> Optional[BaseModel]:
        return None if raw is None else self.parse(raw)

    def prepare(self, value: BaseModel) -> BaseModel:
        """Fill in generated fields before the audit entry captures the after snapshot."""
        return value

    async def read_current(self, db: AsyncSession, student_id: str, value: BaseModel) -> Optional[BaseModel]:
        raise NotImplementedError

    async def write(self, db: AsyncSession, student_id: str, value: BaseModel, actor: str) -> None:
        raise NotImplementedError

    async def revert(
        self,
        db: AsyncSession,
        student_id: str,
        before: Optional[BaseModel],
        after: Optional[BaseModel],
        actor: str,
    ) -> RevertOutcome:
        raise NotImplementedError


class ProfileSectionHandler(SectionHandler):
    """Sections stored as a single document; revert overwrites with the before snapshot."""

    def __init__(self, section_name: SectionName, model: Type[BaseModel], affects_academics: bool = False) -> None:
        self.section_name = section_name
        self.model = model
        self.affects_academics = affects_academics

    def parse(self, value: Any) -> BaseModel:
        if isinstance(value, self.model):
            return value
        return self.model.model_validate(value)

    async def read_current(self, db: AsyncSession, student_id: str, value: BaseModel) -> Optional[BaseModel]:
        raw = await store.read_section(db, student_id, self.section_name)
        return self.parse_snapshot(raw)

    async def write(self, db: AsyncSession, student_id: str, value: BaseModel, actor: str) -> None:
        await store.write_section(db, student_id, self.section_name, value.model_dump(mode="json"), updated_by=actor)

    async def revert(
        self,
        db: AsyncSession,
        student_id: str,
        before: Optional[BaseModel],
        after: Optional[BaseModel],
        actor: str,
    ) -> RevertOutcome:
        data = before.model_dump(mode="json") if before is not None else None
        await store.write_section(db, student_id, self.section_name, data, updated_by=actor)
        return before, None


class FinancialSectionHandler(SectionHandler):
    """
    Financial section: appending to the transaction log, or flipping an installment's
    paid flag. Log rows are never removed; undoing an append posts a compensating entry.
    """

    section_name = SectionName.FINANCIAL_TRANSACTION
    affects_financials = True
    _adapter = TypeAdapter(FinancialChange)

    def parse(self, value: Any) -> BaseModel:
        if isinstance(value, (TransactionSnapshot, InstallmentStatusSnapshot)):
            return value
        return self._adapter.validate_python(value)

    def prepare(self, value: BaseModel) -> BaseModel:
        if isinstance(value, TransactionSnapshot) and value.id is None:
            return value.model_copy(update={"id": uuid4()})
        if isinstance(value, InstallmentStatusSnapshot):
            if not value.paid:
                return value.model_copy(update={"paid_date": None})
            if value.paid_date is None:
                return value.model_copy(update={"paid_date": date.today()})
        return value

    async def read_current(self, db: AsyncSession, student_id: str, value: BaseModel) -> Optional[BaseModel]:
        if isinstance(value, InstallmentStatusSnapshot):
            current = await registry.read_installment_status(db, student_id, value.year_key, value.sequence_number)
            if current is None:
                raise NotFoundError(
                    f"Installment {value.sequence_number} not found for year {value.year_key}"
                )
            return current
        if value.reverses_id is not None:
            await self._check_reversal(db, student_id, value)
        return None

    async def _check_reversal(self, db: AsyncSession, student_id: str, value: TransactionSnapshot) -> None:
        target = await registry.get_transaction(db, value.reverses_id)
        if target is None or target.student_id != student_id or target.year_key != value.year_key:
            raise NotFoundError("Transaction to reverse not found for this student-year")
        if target.reverses_id is not None:
            raise InvalidInputError("A compensating entry cannot itself be reversed")
        if target.transaction_type != value.transaction_type or target.amount != value.amount:
            raise InvalidInputError("A compensating entry must match the type and amount it reverses")
        existing = await registry.read_transactions(db, student_id, value.year_key)
        if target.id in cancelled_ids(existing):
            raise InvalidInputError("Transaction has already been reversed")

    async def write(self, db: AsyncSession, student_id: str, value: BaseModel, actor: str) -> None:
        if isinstance(value, TransactionSnapshot):
            await registry.append_transaction(db, student_id, value, created_by=actor)
        else:
            await registry.write_installment_status(db, student_id, value)

    async def revert(
        self,
        db: AsyncSession,
        student_id: str,
        before: Optional[BaseModel],
        after: Optional[BaseModel],
        actor: str,
    ) -> RevertOutcome:
        if isinstance(after, TransactionSnapshot):
            existing = await registry.read_transactions(db, student_id, after.year_key)
            if after.id in cancelled_ids(existing):
                logger.info(
                    "Transaction %s for student %s is already reversed; undo posts no compensating entry",
                    after.id,
                    student_id,
                )
                return None, None
            reversal = TransactionSnapshot(
                id=uuid4(),
                year_key=after.year_key,
                transaction_type=after.transaction_type,
                amount=after.amount,
                transaction_date=date.today(),
                description=(
                    f"Undo of reversal {after.id}"
                    if after.reverses_id is not None
                    else f"Reversal of {after.transaction_type.value} {after.id}"
                ),
                payment_method=after.payment_method,
                reverses_id=after.id,
            )
            await registry.append_transaction(db, student_id, reversal, created_by=actor)
            if after.transaction_type == TransactionType.payment and after.reverses_id is None:
                logger.warning(
                    "Payment %s for student %s reversed by undo; the guardian notification already sent is not retracted",
                    after.id,
                    student_id,
                )
            return None, reversal.id
        await registry.write_installment_status(db, student_id, before)
        return before, None


SECTION_HANDLERS: Dict[SectionName, SectionHandler] = {
    SectionName.PERSONAL_DATA: ProfileSectionHandler(SectionName.PERSONAL_DATA, PersonalData),
    SectionName.ENROLLMENT_DATA: ProfileSectionHandler(SectionName.ENROLLMENT_DATA, EnrollmentData),
    SectionName.GUARDIAN_DATA: ProfileSectionHandler(SectionName.GUARDIAN_DATA, GuardianData),
    SectionName.MOTHER_DATA: ProfileSectionHandler(SectionName.MOTHER_DATA, MotherData),
    SectionName.EMERGENCY_CONTACTS: ProfileSectionHandler(SectionName.EMERGENCY_CONTACTS, EmergencyContacts),
    SectionName.ACADEMIC_DATA: ProfileSectionHandler(SectionName.ACADEMIC_DATA, AcademicData, affects_academics=True),
    SectionName.LEGAL_GUARDIANSHIP: ProfileSectionHandler(SectionName.LEGAL_GUARDIANSHIP, LegalGuardianship),
    SectionName.FINANCIAL_TRANSACTION: FinancialSectionHandler(),
}

_unhandled = set(SectionName) - set(SECTION_HANDLERS)
if _unhandled:
    raise RuntimeError(f"Sections without a handler: {sorted(s.value for s in _unhandled)}")


def get_handler(section_name: SectionName) -> SectionHandler:
    return SECTION_HANDLERS[section_name]
