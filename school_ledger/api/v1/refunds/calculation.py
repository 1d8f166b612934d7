"""Refund amount calculation: non-refundable fees, studied months and an admin fee are deducted."""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from school_ledger.core.enums import RefundDeductionType

CENT = Decimal("0.01")
ZERO = Decimal("0")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class Deduction:
    deduction_type: RefundDeductionType
    description: str
    amount: Decimal
    percentage: Optional[Decimal] = None
    reason: Optional[str] = None


@dataclass
class RefundCalculation:
    total_refundable: Decimal
    total_deductions: Decimal
    final_refund_amount: Decimal
    deductions: List[Deduction] = field(default_factory=list)


def calculate_months_studied(enrollment_date: date, withdrawal_date: date) -> int:
    """Calendar months touched between enrollment and withdrawal, at least one."""
    months = (withdrawal_date.year - enrollment_date.year) * 12 + (withdrawal_date.month - enrollment_date.month)
    return max(1, months + 1)


def calculate_refund_amount(
    total_paid: Decimal,
    total_study_expenses: Decimal,
    months_studied: int,
    total_months_in_year: int,
    admin_fee_percentage: Decimal = ZERO,
    monthly_tuition_fee: Optional[Decimal] = None,
    admin_fee_fixed: Optional[Decimal] = None,
    registration_fee_amount: Decimal = ZERO,
    other_non_refundable_fees: Decimal = ZERO,
) -> RefundCalculation:
    if total_months_in_year < 1:
        raise ValueError("total_months_in_year must be at least 1")
    deductions: List[Deduction] = []
    total_deductions = ZERO

    if registration_fee_amount > 0:
        deductions.append(
            Deduction(
                RefundDeductionType.REGISTRATION_FEE,
                "Admission and registration fees (non-refundable)",
                _money(registration_fee_amount),
                reason="School policy",
            )
        )
        total_deductions += registration_fee_amount

    monthly_fee = monthly_tuition_fee or (total_study_expenses / total_months_in_year)
    studied_cost = _money(monthly_fee * months_studied)
    if studied_cost > 0:
        deductions.append(
            Deduction(
                RefundDeductionType.STUDIED_MONTHS,
                f"Tuition for {months_studied} studied month(s)",
                studied_cost,
                percentage=_money(Decimal(months_studied) * 100 / total_months_in_year),
                reason=f"Student attended {months_studied} month(s) of the school year",
            )
        )
        total_deductions += studied_cost

    # a fixed admin fee wins over the percentage
    admin_fee = admin_fee_fixed or ZERO
    if not admin_fee_fixed and admin_fee_percentage > 0:
        remaining = max(ZERO, total_paid - total_deductions)
        admin_fee = _money(remaining * admin_fee_percentage / 100)
    if admin_fee > 0:
        deductions.append(
            Deduction(
                RefundDeductionType.ADMIN_FEE,
                "Administrative fee for processing the refund",
                _money(admin_fee),
                percentage=admin_fee_percentage if not admin_fee_fixed else None,
                reason="Processing costs",
            )
        )
        total_deductions += admin_fee

    if other_non_refundable_fees > 0:
        deductions.append(
            Deduction(
                RefundDeductionType.CONSUMED_SERVICE,
                "Consumed services (books, uniform, etc.)",
                _money(other_non_refundable_fees),
                reason="Services consumed during the enrollment period",
            )
        )
        total_deductions += other_non_refundable_fees

    total_refundable = max(ZERO, total_paid - registration_fee_amount - other_non_refundable_fees)
    final_amount = max(ZERO, total_refundable - studied_cost - admin_fee)
    return RefundCalculation(
        total_refundable=_money(total_refundable),
        total_deductions=_money(min(total_deductions, total_paid)),
        final_refund_amount=_money(final_amount),
        deductions=deductions,
    )
