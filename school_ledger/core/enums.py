from enum import Enum


class SectionName(str, Enum):
    """Tracked sections of a student profile. Closed set: every member needs a handler."""

    PERSONAL_DATA = "PersonalData"
    ENROLLMENT_DATA = "EnrollmentData"
    GUARDIAN_DATA = "GuardianData"
    MOTHER_DATA = "MotherData"
    EMERGENCY_CONTACTS = "EmergencyContacts"
    ACADEMIC_DATA = "AcademicData"
    LEGAL_GUARDIANSHIP = "LegalGuardianship"
    FINANCIAL_TRANSACTION = "FinancialTransaction"


class TransactionType(str, Enum):
    payment = "payment"
    additional_fee = "additional_fee"
    discount = "discount"
    penalty = "penalty"
    refund = "refund"


class AuditEntryState(str, Enum):
    active = "active"
    superseded = "superseded"
    reverted = "reverted"


class BalanceStatus(str, Enum):
    due = "due"
    settled = "settled"
    credit = "credit"


class RefundStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    paid = "paid"


class RefundDeductionType(str, Enum):
    ADMIN_FEE = "ADMIN_FEE"
    STUDIED_MONTHS = "STUDIED_MONTHS"
    REGISTRATION_FEE = "REGISTRATION_FEE"
    CONSUMED_SERVICE = "CONSUMED_SERVICE"


class ErrorKind(str, Enum):
    READ_FAILED = "ReadFailed"
    AUDIT_WRITE_FAILED = "AuditWriteFailed"
    MUTATION_FAILED = "MutationFailed"
    RECONCILIATION_INPUT_INVALID = "ReconciliationInputInvalid"
    UNDO_STACK_EMPTY = "UndoStackEmpty"
    DUPLICATE_BASE_FEES_SETUP = "DuplicateBaseFeesSetup"
    NOT_FOUND = "NotFound"
    INVALID_INPUT = "InvalidInput"
