"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    product = ProductFactory.create(inventory_quantity=5)
    db_session.add(product)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class ClubFactory:
    @staticmethod
    def create(**overrides):
        from services.club_store_service.models import Club

        code = overrides.pop("code", f"C{uuid.uuid4().hex[:6].upper()}")
        defaults = {
            "id": _uuid(),
            "code": code,
            "name": f"{code.title()} Club",
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Club(**defaults)


class MemberFactory:
    @staticmethod
    def create(**overrides):
        from services.club_store_service.models import Member

        defaults = {
            "id": _uuid(),
            "name": "Test Member",
            "email": _unique_email(),
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Member(**defaults)


class ClubMembershipFactory:
    @staticmethod
    def create(member, club, **overrides):
        from services.club_store_service.models import ClubMembership, MembershipStatus

        defaults = {
            "id": _uuid(),
            "member_id": member.id,
            "club_id": club.id,
            "status": MembershipStatus.ACTIVE,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return ClubMembership(**defaults)


class TaxRateFactory:
    @staticmethod
    def create(**overrides):
        from services.club_store_service.models import TaxRate

        defaults = {
            "id": _uuid(),
            "name": "Standard",
            "rate_percent": Decimal("8.25"),
            "created_at": _now(),
        }
        defaults.update(overrides)
        return TaxRate(**defaults)


class ProductFactory:
    @staticmethod
    def create(**overrides):
        from services.club_store_service.models import Product

        defaults = {
            "id": _uuid(),
            "name": f"Test Release {uuid.uuid4().hex[:4]}",
            "base_price_cents": 3400,
            "currency": "USD",
            "allowed_club_codes": [],
            "tax_rate_id": None,
            "is_active": True,
            "is_preorder": False,
            "preorder_start_at": None,
            "preorder_end_at": None,
            "release_at": None,
            "inventory_quantity": 0,
            "ordered_not_picked_up_count": 0,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Product(**defaults)

    @staticmethod
    def create_preorder(release_in: timedelta = timedelta(days=30), **overrides):
        """Preorder whose window is open now and whose release is in the future."""
        now = _now()
        defaults = {
            "is_preorder": True,
            "preorder_start_at": now - timedelta(days=7),
            "preorder_end_at": now + timedelta(days=7),
            "release_at": now + release_in,
        }
        defaults.update(overrides)
        return ProductFactory.create(**defaults)


class ProductClubPriceFactory:
    @staticmethod
    def create(product, club_code: str, price_cents: int, **overrides):
        from services.club_store_service.models import ProductClubPrice

        defaults = {
            "id": _uuid(),
            "product_id": product.id,
            "club_code": club_code,
            "price_cents": price_cents,
        }
        defaults.update(overrides)
        return ProductClubPrice(**defaults)


class MembershipOfferingFactory:
    @staticmethod
    def create(**overrides):
        from services.club_store_service.models import MembershipOffering

        defaults = {
            "id": _uuid(),
            "club_code": "WOOD",
            "name": "Wood Club 2026",
            "year": 2026,
            "price_cents": 15000,
            "is_active": True,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return MembershipOffering(**defaults)


# ---------------------------------------------------------------------------
# Fulfillment
# ---------------------------------------------------------------------------


class EntitlementFactory:
    @staticmethod
    def create(member, product, **overrides):
        from services.club_store_service.models import (
            Entitlement,
            EntitlementSource,
            EntitlementStatus,
        )

        defaults = {
            "id": _uuid(),
            "member_id": member.id,
            "product_id": product.id,
            "allocation_id": None,
            "quantity": 1,
            "status": EntitlementStatus.READY_FOR_PICKUP,
            "source": EntitlementSource.ORDER,
            "release_at": None,
            "picked_up_at": None,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Entitlement(**defaults)


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


class SalesTaxRecordFactory:
    @staticmethod
    def create(**overrides):
        from services.club_store_service.models import SalesTaxRecord

        defaults = {
            "id": _uuid(),
            "payment_reference": f"pi_{uuid.uuid4().hex[:12]}",
            "member_id": None,
            "recorded_on": _now().date(),
            "tax_breakdown": {},
            "subtotal_cents": 0,
            "tip_cents": 0,
            "total_cents": 0,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return SalesTaxRecord(**defaults)
