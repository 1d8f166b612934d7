from school_ledger.core.models.audit_entry import AuditEntry
from school_ledger.core.models.base_fees import FeeInstallment, OtherExpense, StudentBaseFees
from school_ledger.core.models.editing_session import EditingSession
from school_ledger.core.models.financial_transaction import FinancialTransaction
from school_ledger.core.models.refund import Refund, RefundDeduction
from school_ledger.core.models.student_section import StudentSection

__all__ = [
    "AuditEntry",
    "EditingSession",
    "FeeInstallment",
    "FinancialTransaction",
    "OtherExpense",
    "Refund",
    "RefundDeduction",
    "StudentBaseFees",
    "StudentSection",
]
