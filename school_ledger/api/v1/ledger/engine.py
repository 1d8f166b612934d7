"""
Ledger reconciliation: combine a student-year's base fees with its transaction log
into the authoritative year summary.

Pure and synchronous. The caller filters transactions to the year; nothing here
checks that they belong to the same year as the base fees.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Set
from uuid import UUID

from school_ledger.core.enums import BalanceStatus, TransactionType
from school_ledger.core.exceptions import ReconciliationInputInvalid

from .schemas import BaseFees, OtherExpenseItem, TransactionResponse, YearFinancialSummary

ZERO = Decimal("0")

DISCOUNT_TYPES = (TransactionType.discount, TransactionType.penalty)


def _to_decimal(val) -> Decimal:
    if val is None:
        return ZERO
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _sum(values: Iterable) -> Decimal:
    total = ZERO
    for v in values:
        total += _to_decimal(v)
    return total


def _validate(base_fees: BaseFees, other_expenses: Sequence[OtherExpenseItem], transactions: Sequence[TransactionResponse]) -> None:
    if _to_decimal(base_fees.total_amount) < 0:
        raise ReconciliationInputInvalid("Base fee total cannot be negative")
    if _to_decimal(base_fees.advance_payment) < 0:
        raise ReconciliationInputInvalid("Advance payment cannot be negative")
    for inst in base_fees.installments:
        if _to_decimal(inst.amount) < 0:
            raise ReconciliationInputInvalid(f"Installment {inst.sequence_number} has a negative amount")
    for exp in other_expenses:
        if _to_decimal(exp.total_price) < 0:
            raise ReconciliationInputInvalid(f"Expense '{exp.expense_type}' has a negative price")
    for t in transactions:
        if _to_decimal(t.amount) < 0:
            raise ReconciliationInputInvalid(f"Transaction {t.id} has a negative amount")


def cancelled_ids(transactions: Sequence[TransactionResponse]) -> Set[UUID]:
    """
    Ids of entries cancelled by a compensating entry that is itself still in force.
    Reversal chains resolve pairwise: reversing a reversal puts the original back.
    """
    reversers: Dict[UUID, List[TransactionResponse]] = defaultdict(list)
    for t in transactions:
        if t.reverses_id is not None:
            reversers[t.reverses_id].append(t)
    in_force: Dict[UUID, bool] = {}

    def is_in_force(t: TransactionResponse) -> bool:
        if t.id not in in_force:
            in_force[t.id] = not any(is_in_force(r) for r in reversers.get(t.id, []))
        return in_force[t.id]

    return {t.id for t in transactions if not is_in_force(t)}


def effective_transactions(transactions: Sequence[TransactionResponse]) -> List[TransactionResponse]:
    """Drop compensating entries and the entries they currently cancel."""
    cancelled = cancelled_ids(transactions)
    return [t for t in transactions if t.reverses_id is None and t.id not in cancelled]


def balance_status(net_due: Decimal) -> BalanceStatus:
    if net_due > 0:
        return BalanceStatus.due
    if net_due < 0:
        return BalanceStatus.credit
    return BalanceStatus.settled


def compute_year_financials(
    base_fees: BaseFees,
    other_expenses: Sequence[OtherExpenseItem],
    transactions: Sequence[TransactionResponse],
) -> YearFinancialSummary:
    _validate(base_fees, other_expenses, transactions)
    live = effective_transactions(transactions)

    def total_of(*types: TransactionType) -> Decimal:
        return _sum(t.amount for t in live if t.transaction_type in types)

    total_study_expenses = _to_decimal(base_fees.total_amount)
    advance_payment = _to_decimal(base_fees.advance_payment)
    paid_from_transactions = total_of(TransactionType.payment)
    paid_from_installments = _sum(i.amount for i in base_fees.installments if i.paid)
    # One real payment may be recorded both as a payment transaction and by flagging
    # its installment paid; take the larger of the two so it is never counted twice.
    total_paid = advance_payment + max(paid_from_transactions, paid_from_installments)
    total_additional_fees = total_of(TransactionType.additional_fee)
    total_discounts = total_of(*DISCOUNT_TYPES)
    total_refunds = total_of(TransactionType.refund)

    net_due = total_study_expenses + total_additional_fees - total_paid - total_discounts - total_refunds

    return YearFinancialSummary(
        total_study_expenses=total_study_expenses,
        advance_payment=advance_payment,
        paid_from_transactions=paid_from_transactions,
        paid_from_installments=paid_from_installments,
        total_paid=total_paid,
        total_additional_fees=total_additional_fees,
        total_discounts=total_discounts,
        total_refunds=total_refunds,
        total_other_expenses=_sum(e.total_price for e in other_expenses),
        net_due=net_due,
        balance_status=balance_status(net_due),
        transaction_count=len(live),
    )
