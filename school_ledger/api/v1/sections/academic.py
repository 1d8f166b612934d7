"""Academic summary derived from the AcademicData section."""

from decimal import ROUND_HALF_UP, Decimal

from .schemas import AcademicData, AcademicSummary

PASS_PERCENTAGE = Decimal("50")


def compute_academic_summary(data: AcademicData) -> AcademicSummary:
    total = sum((s.mark for s in data.subjects), Decimal("0"))
    max_total = sum((s.max_mark for s in data.subjects), Decimal("0"))
    percentage = None
    status = data.passing_status
    if max_total > 0:
        percentage = (total * 100 / max_total).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if status is None:
            status = "pass" if percentage >= PASS_PERCENTAGE else "fail"
    return AcademicSummary(
        subject_count=len(data.subjects),
        total_marks=total,
        max_total=max_total,
        percentage=percentage,
        passing_status=status,
    )
