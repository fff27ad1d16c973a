"""Seed script for club store data.

Creates the default clubs, tax rates and a sample preorder product so the
allocation, checkout and pickup flows can be tried end-to-end.

Usage:
    python -m services.club_store_service.seed_store_data
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from libs.common.config import get_settings
from libs.db.config import build_engine
from services.club_store_service.models import (
    Club,
    MembershipOffering,
    Product,
    ProductClubPrice,
    TaxRate,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

settings = get_settings()

engine = build_engine(settings.DATABASE_URL, echo=True)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

DEFAULT_CLUBS = [
    ("WOOD", "Wood Club", "Barrel-aged releases"),
    ("SAP", "Sap Club", "Maple and sap-inspired releases"),
    ("CELLARS", "Cellars Club", "Cellar-worthy bottles"),
    ("FOUNDERS", "Founders Club", "Founding members"),
]

DEFAULT_TAX_RATES = [
    ("Standard", Decimal("8.25")),
    ("Tax exempt", Decimal("0")),
]


async def seed_store_data():
    async with AsyncSessionLocal() as db:
        print("Seeding club store data...")

        # Check if data already exists
        count = (await db.execute(select(func.count(Club.id)))).scalar()
        if count and count > 0:
            print(f"Club store data already exists ({count} clubs). Skipping seed.")
            return

        # =========================================================================
        # 1. CLUBS
        # =========================================================================
        clubs = [
            Club(code=code, name=name, description=description)
            for code, name, description in DEFAULT_CLUBS
        ]
        db.add_all(clubs)

        # =========================================================================
        # 2. TAX RATES
        # =========================================================================
        tax_rates = [
            TaxRate(name=name, rate_percent=rate) for name, rate in DEFAULT_TAX_RATES
        ]
        db.add_all(tax_rates)
        await db.flush()

        # =========================================================================
        # 3. SAMPLE PREORDER PRODUCT
        # =========================================================================
        stout = Product(
            name="Barrel-Aged Stout 2026",
            description="Wood Club release. Limit 2 per member.",
            base_price_cents=3400,
            currency=settings.CURRENCY,
            allowed_club_codes=["WOOD", "FOUNDERS"],
            tax_rate_id=tax_rates[0].id,
            is_preorder=True,
            preorder_start_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            preorder_end_at=datetime(2026, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
            release_at=datetime(2026, 5, 1, tzinfo=timezone.utc),
            inventory_quantity=120,
        )
        db.add(stout)
        await db.flush()
        db.add(ProductClubPrice(product_id=stout.id, club_code="WOOD", price_cents=3000))

        # =========================================================================
        # 4. MEMBERSHIP OFFERINGS
        # =========================================================================
        year = datetime.now(timezone.utc).year
        offerings = [
            MembershipOffering(
                club_code=code,
                name=f"{name} {year}",
                year=year,
                price_cents=15000,
            )
            for code, name, _ in DEFAULT_CLUBS
        ]
        db.add_all(offerings)

        await db.commit()
        print("=" * 60)
        print("Club store data seeded successfully!")
        print("=" * 60)
        print(f"  Clubs: {len(clubs)}")
        print(f"  Tax rates: {len(tax_rates)}")
        print("  Products: 1")
        print(f"  Membership offerings: {len(offerings)}")
        print("=" * 60)


if __name__ == "__main__":
    asyncio.run(seed_store_data())
