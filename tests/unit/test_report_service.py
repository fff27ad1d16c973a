"""Unit tests for the sales-tax report and the tip pool."""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from services.club_store_service.errors import (
    InsufficientTipBalance,
    InvalidMonth,
    InvalidQuantity,
)
from services.club_store_service.services.report_service import sales_tax_report
from services.club_store_service.services.tip_service import (
    credit_tips,
    get_tip_pool,
    withdraw_tips,
)
from tests.factories import SalesTaxRecordFactory, TaxRateFactory

# ---------------------------------------------------------------------------
# Sales-tax report
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_report_sums_by_rate_for_the_month_only(db_session, standard_rate):
    exempt = TaxRateFactory.create(name="Tax exempt", rate_percent=Decimal("0"))
    db_session.add(exempt)
    standard, zero = str(standard_rate.id), str(exempt.id)
    db_session.add_all(
        [
            SalesTaxRecordFactory.create(
                recorded_on=date(2026, 5, 1), tax_breakdown={standard: 495, zero: 0}
            ),
            SalesTaxRecordFactory.create(
                recorded_on=date(2026, 5, 31), tax_breakdown={standard: 165}
            ),
            # Outside the month
            SalesTaxRecordFactory.create(
                recorded_on=date(2026, 6, 1), tax_breakdown={standard: 1000}
            ),
        ]
    )
    await db_session.commit()

    report = await sales_tax_report(db_session, "2026-05")

    assert report.month == "2026-05"
    assert report.total_tax_cents == 660
    assert report.transaction_count == 2
    by_rate = {line.tax_rate_id: line for line in report.rates}
    assert by_rate[standard].total_tax_cents == 660
    assert by_rate[standard].transaction_count == 2
    assert by_rate[standard].name == "Standard"
    assert by_rate[zero].transaction_count == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_report_falls_back_for_deleted_rate(db_session):
    gone = str(uuid.uuid4())
    db_session.add(
        SalesTaxRecordFactory.create(
            recorded_on=date(2026, 2, 10), tax_breakdown={gone: 42}
        )
    )
    await db_session.commit()

    report = await sales_tax_report(db_session, "2026-02")

    [line] = report.rates
    assert line.name == gone
    assert line.rate_percent == Decimal("0")
    assert line.total_tax_cents == 42


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("month", ["2026-13", "2026-5", "May 2026", ""])
async def test_report_rejects_bad_month(db_session, month):
    with pytest.raises(InvalidMonth):
        await sales_tax_report(db_session, month)


# ---------------------------------------------------------------------------
# Tip pool
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_withdraw_reduces_balance(db_session):
    await credit_tips(db_session, 1000)
    await credit_tips(db_session, 500)
    await db_session.commit()

    withdrawal, balance = await withdraw_tips(
        db_session, amount_cents=600, note="  staff party  ", withdrawn_by="manager"
    )

    assert balance == 900
    assert withdrawal.note == "staff party"
    pool = await get_tip_pool(db_session)
    assert pool.available_cents == 900
    assert [w.id for w in pool.withdrawals] == [withdrawal.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_withdraw_beyond_balance_rejected(db_session):
    await credit_tips(db_session, 200)
    await db_session.commit()

    with pytest.raises(InsufficientTipBalance) as exc_info:
        await withdraw_tips(db_session, amount_cents=201)

    assert exc_info.value.detail["available_cents"] == 200
    assert (await get_tip_pool(db_session)).available_cents == 200


@pytest.mark.asyncio
@pytest.mark.unit
async def test_withdraw_from_empty_pool_rejected(db_session):
    with pytest.raises(InsufficientTipBalance):
        await withdraw_tips(db_session, amount_cents=1)


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("amount", [0, -5, 1.5])
async def test_withdraw_requires_positive_amount(db_session, amount):
    with pytest.raises(InvalidQuantity):
        await withdraw_tips(db_session, amount_cents=amount)
