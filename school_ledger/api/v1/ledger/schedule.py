"""Installment plan generation for the one-time base fee setup."""

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from school_ledger.core.config import settings
from school_ledger.core.exceptions import InvalidInputError

from .schemas import InstallmentCreate


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def default_first_due_date(today: Optional[date] = None) -> date:
    today = today or date.today()
    return date(today.year, settings.schedule_start_month, 1)


def build_installment_schedule(
    total_amount: Decimal,
    advance_payment: Decimal,
    installment_count: int,
    first_due_date: Optional[date] = None,
) -> List[InstallmentCreate]:
    """
    Split (total - advance) into monthly installments rounded to whole units.
    The last installment absorbs the rounding difference so the plan sums exactly.
    """
    if installment_count < 1:
        raise InvalidInputError("installment_count must be at least 1")
    remaining = total_amount - advance_payment
    if remaining < 0:
        raise InvalidInputError("Advance payment cannot exceed the total amount")
    start = first_due_date or default_first_due_date()
    per_installment = (remaining / installment_count).quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    amounts = [per_installment] * (installment_count - 1)
    amounts.append(remaining - per_installment * (installment_count - 1))
    if amounts[-1] < 0:
        raise InvalidInputError("Installment count too large for the remaining amount")
    return [
        InstallmentCreate(
            sequence_number=i + 1,
            amount=amount.quantize(Decimal("0.01")),
            due_date=add_months(start, i),
        )
        for i, amount in enumerate(amounts)
    ]


def validate_installment_plan(installments: Sequence[InstallmentCreate]) -> None:
    """Sequence numbers must be exactly 1..n and due dates non-decreasing by sequence."""
    if not installments:
        raise InvalidInputError("At least one installment is required")
    ordered = sorted(installments, key=lambda i: i.sequence_number)
    numbers = [i.sequence_number for i in ordered]
    if numbers != list(range(1, len(ordered) + 1)):
        raise InvalidInputError("Installment sequence numbers must be unique and run 1..n")
    for prev, cur in zip(ordered, ordered[1:]):
        if cur.due_date < prev.due_date:
            raise InvalidInputError(
                f"Installment {cur.sequence_number} is due before installment {prev.sequence_number}"
            )
