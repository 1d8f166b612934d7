"""Section payloads (one schema per tracked section) and mutation request/response schemas."""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.api.v1.ledger.schemas import (
    InstallmentStatusSnapshot,
    TransactionSnapshot,
    YearFinancialSummary,
)
from school_ledger.core.enums import SectionName


# --- Profile sections ---
class PersonalData(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    national_id: Optional[str] = None
    date_of_birth: Optional[date] = None
    place_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    gender: Optional[str] = None
    religion: Optional[str] = None
    special_needs: Optional[str] = None


class EnrollmentData(BaseModel):
    academic_year: str
    stage: Optional[str] = None
    class_name: Optional[str] = None
    class_id: Optional[str] = None
    enrollment_type: Optional[str] = None
    enrollment_date: Optional[date] = None
    previous_school: Optional[str] = None
    transfer_reason: Optional[str] = None
    previous_level: Optional[str] = None
    second_language: Optional[str] = None
    curriculum_type: Optional[str] = None
    has_repeated: bool = False
    order_among_siblings: int = Field(1, ge=1)
    is_regular: bool = True


class GuardianData(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    relationship: Optional[str] = None
    national_id: Optional[str] = None
    job: Optional[str] = None
    workplace: Optional[str] = None
    education_level: Optional[str] = None
    phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    nationality: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    marital_status: Optional[str] = None
    has_legal_guardian: bool = False
    social_media: Optional[str] = None


class MotherData(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    national_id: Optional[str] = None
    job: Optional[str] = None
    workplace: Optional[str] = None
    phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    nationality: Optional[str] = None
    email: Optional[str] = None
    education_level: Optional[str] = None
    address: Optional[str] = None
    relationship: Optional[str] = None


class EmergencyContact(BaseModel):
    contact_name: str = Field(..., min_length=1)
    relationship: Optional[str] = None
    phone: str
    whatsapp_number: Optional[str] = None
    nationality: Optional[str] = None
    address: Optional[str] = None


class EmergencyContacts(BaseModel):
    contacts: List[EmergencyContact] = Field(default_factory=list)


class SubjectMark(BaseModel):
    subject_name: str
    mark: Decimal = Field(..., ge=0)
    max_mark: Decimal = Field(Decimal("100"), gt=0)


class AcademicData(BaseModel):
    current_gpa: Optional[Decimal] = None
    subjects: List[SubjectMark] = Field(default_factory=list)
    passing_status: Optional[str] = None
    academic_notes: Optional[str] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    last_exam_date: Optional[date] = None


class LegalGuardian(BaseModel):
    full_name: str
    relationship: Optional[str] = None
    national_id: Optional[str] = None
    nationality: Optional[str] = None
    phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    email: Optional[str] = None
    workplace: Optional[str] = None


class LegalGuardianship(BaseModel):
    guardian_is_legal_custodian: bool = True
    primary_legal_guardian: Optional[LegalGuardian] = None
    secondary_legal_guardian: Optional[LegalGuardian] = None


FinancialChange = Annotated[
    Union[TransactionSnapshot, InstallmentStatusSnapshot],
    Field(discriminator="kind"),
]


# --- Derived views ---
class AcademicSummary(BaseModel):
    subject_count: int
    total_marks: Decimal
    max_total: Decimal
    percentage: Optional[Decimal] = None
    passing_status: Optional[str] = None


# --- Requests / responses ---
class SectionMutationRequest(BaseModel):
    session_id: UUID
    value: Any


class SectionResponse(BaseModel):
    student_id: str
    section_name: SectionName
    value: Optional[Any] = None


class CommitResult(BaseModel):
    audit_entry_id: UUID
    sequence: int
    section_name: SectionName
    value: Any
    transaction_id: Optional[UUID] = None
    financial_summary: Optional[YearFinancialSummary] = None
    academic_summary: Optional[AcademicSummary] = None


class RevertedSection(BaseModel):
    audit_entry_id: UUID
    sequence: int
    section_name: SectionName
    restored_value: Optional[Any] = None
    compensating_transaction_id: Optional[UUID] = None
    financial_summary: Optional[YearFinancialSummary] = None
    academic_summary: Optional[AcademicSummary] = None


class UndoResponse(BaseModel):
    status: str
    reverted: Optional[RevertedSection] = None
    can_undo: bool
