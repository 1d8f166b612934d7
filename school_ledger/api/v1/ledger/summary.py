"""Year summary: always recomputed from base fees + transaction log, never from a stored balance."""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from . import registry
from .engine import compute_year_financials
from .schemas import BaseFees, YearFinancialSummary


async def build_year_summary(db: AsyncSession, student_id: str, year_key: str) -> YearFinancialSummary:
    base_fees = await registry.read_base_fees(db, student_id, year_key)
    transactions = await registry.read_transactions(db, student_id, year_key)
    if base_fees is None:
        summary = compute_year_financials(BaseFees(total_amount=Decimal("0")), [], transactions)
        return summary.model_copy(
            update={"student_id": student_id, "year_key": year_key, "base_fees_configured": False}
        )
    summary = compute_year_financials(base_fees, base_fees.other_expenses, transactions)
    return summary.model_copy(update={"student_id": student_id, "year_key": year_key})
