"""Monthly sales-tax report built from per-payment tax records."""

import calendar
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from services.club_store_service.errors import InvalidMonth
from services.club_store_service.models import SalesTaxRecord, TaxRate
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, slots=True)
class TaxRateLine:
    tax_rate_id: str
    name: str
    rate_percent: Decimal
    total_tax_cents: int
    transaction_count: int


@dataclass(slots=True)
class SalesTaxReport:
    month: str
    total_tax_cents: int = 0
    transaction_count: int = 0
    rates: list[TaxRateLine] = field(default_factory=list)


def parse_month(month: str) -> tuple[date, date]:
    """First and last day of a ``YYYY-MM`` month."""
    match = MONTH_PATTERN.match((month or "").strip())
    if not match:
        raise InvalidMonth("month must be in YYYY-MM format", month=month)
    year, month_number = int(match.group(1)), int(match.group(2))
    if not 1 <= month_number <= 12:
        raise InvalidMonth("month must be in YYYY-MM format", month=month)
    last_day = calendar.monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


def _as_uuid(value: str):
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def sales_tax_report(db: AsyncSession, month: str) -> SalesTaxReport:
    start, end = parse_month(month)

    result = await db.execute(
        select(SalesTaxRecord).where(
            SalesTaxRecord.recorded_on >= start,
            SalesTaxRecord.recorded_on <= end,
        )
    )
    records = list(result.scalars().all())

    totals: dict[str, int] = {}
    counts: dict[str, int] = {}
    for record in records:
        for rate_id, cents in (record.tax_breakdown or {}).items():
            cents = int(cents or 0)
            totals[rate_id] = totals.get(rate_id, 0) + cents
            if cents > 0:
                counts[rate_id] = counts.get(rate_id, 0) + 1

    rate_ids = [parsed for parsed in map(_as_uuid, totals) if parsed is not None]
    rates: dict[str, TaxRate] = {}
    if rate_ids:
        rate_result = await db.execute(select(TaxRate).where(TaxRate.id.in_(rate_ids)))
        rates = {str(rate.id): rate for rate in rate_result.scalars().all()}

    report = SalesTaxReport(month=f"{start:%Y-%m}", transaction_count=len(records))
    for rate_id in sorted(totals):
        rate = rates.get(rate_id)
        report.rates.append(
            TaxRateLine(
                tax_rate_id=rate_id,
                name=rate.name if rate else rate_id,
                rate_percent=rate.rate_percent if rate else Decimal("0"),
                total_tax_cents=totals[rate_id],
                transaction_count=counts.get(rate_id, 0),
            )
        )
        report.total_tax_cents += totals[rate_id]
    return report
