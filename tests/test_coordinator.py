import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.audit import service as audit_service
from school_ledger.api.v1.audit.schemas import EditingSessionResponse
from school_ledger.api.v1.sections import store
from school_ledger.api.v1.sections.handlers import SECTION_HANDLERS
from school_ledger.api.v1.sections.service import apply_section_mutation, get_section
from school_ledger.core.enums import SectionName
from school_ledger.core.exceptions import (
    AuditWriteFailed,
    InvalidInputError,
    MutationFailed,
    NotFoundError,
    ReadFailed,
)

from .conftest import STUDENT_ID


async def _fail(*args, **kwargs):
    raise SQLAlchemyError("simulated storage failure")


def test_every_section_has_a_handler() -> None:
    assert set(SECTION_HANDLERS) == set(SectionName)


async def test_audit_failure_leaves_section_unchanged(
    db_session: AsyncSession, editing_session: EditingSessionResponse, monkeypatch: pytest.MonkeyPatch
) -> None:
    sid = editing_session.id
    await apply_section_mutation(db_session, STUDENT_ID, sid, SectionName.PERSONAL_DATA, {"full_name": "Original"})
    monkeypatch.setattr(audit_service, "record_entry", _fail)

    with pytest.raises(AuditWriteFailed):
        await apply_section_mutation(db_session, STUDENT_ID, sid, SectionName.PERSONAL_DATA, {"full_name": "Changed"})

    stored = await store.read_section(db_session, STUDENT_ID, SectionName.PERSONAL_DATA)
    assert stored["full_name"] == "Original"


async def test_read_failure_writes_nothing(
    db_session: AsyncSession, editing_session: EditingSessionResponse, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(store, "read_section", _fail)

    with pytest.raises(ReadFailed):
        await apply_section_mutation(
            db_session, STUDENT_ID, editing_session.id, SectionName.ENROLLMENT_DATA, {"academic_year": "2025-2026"}
        )

    monkeypatch.undo()
    assert await audit_service.list_history(db_session, STUDENT_ID, editing_session.id) == []


async def test_mutation_failure_is_reported_as_possibly_inconsistent(
    db_session: AsyncSession, editing_session: EditingSessionResponse, monkeypatch: pytest.MonkeyPatch
) -> None:
    sid = editing_session.id
    monkeypatch.setattr(SECTION_HANDLERS[SectionName.GUARDIAN_DATA], "write", _fail)

    with pytest.raises(MutationFailed) as exc_info:
        await apply_section_mutation(db_session, STUDENT_ID, sid, SectionName.GUARDIAN_DATA, {"full_name": "Hassan"})

    detail = exc_info.value.to_detail()
    assert detail["kind"] == "MutationFailed"
    assert detail["state_may_be_inconsistent"] is True
    assert await store.read_section(db_session, STUDENT_ID, SectionName.GUARDIAN_DATA) is None
    # audit row and mutation share one transaction, so the entry is gone too
    assert await audit_service.list_history(db_session, STUDENT_ID, sid) == []


async def test_invalid_value_is_rejected_before_any_write(
    db_session: AsyncSession, editing_session: EditingSessionResponse
) -> None:
    with pytest.raises(InvalidInputError):
        await apply_section_mutation(
            db_session, STUDENT_ID, editing_session.id, SectionName.PERSONAL_DATA, {"national_id": "123"}
        )
    assert await audit_service.list_history(db_session, STUDENT_ID, editing_session.id) == []


async def test_session_of_another_student_is_not_found(
    db_session: AsyncSession, editing_session: EditingSessionResponse
) -> None:
    with pytest.raises(NotFoundError):
        await apply_section_mutation(
            db_session, "STU-9999", editing_session.id, SectionName.PERSONAL_DATA, {"full_name": "Someone"}
        )


async def test_get_section_returns_stored_value(
    db_session: AsyncSession, editing_session: EditingSessionResponse
) -> None:
    await apply_section_mutation(
        db_session,
        STUDENT_ID,
        editing_session.id,
        SectionName.LEGAL_GUARDIANSHIP,
        {"guardian_is_legal_custodian": False, "primary_legal_guardian": {"full_name": "Uncle Sami"}},
    )
    section = await get_section(db_session, STUDENT_ID, SectionName.LEGAL_GUARDIANSHIP)
    assert section.value["primary_legal_guardian"]["full_name"] == "Uncle Sami"
    assert section.value["guardian_is_legal_custodian"] is False


async def test_financial_section_is_not_read_as_a_document(db_session: AsyncSession) -> None:
    with pytest.raises(InvalidInputError):
        await get_section(db_session, STUDENT_ID, SectionName.FINANCIAL_TRANSACTION)
