"""Club Store Service models package."""

from services.club_store_service.models.cart import (
    MAX_CART_ITEM_QUANTITY,
    Cart,
    CartItem,
)
from services.club_store_service.models.catalog import (
    Club,
    ClubMembership,
    Member,
    MembershipOffering,
    Product,
    ProductClubPrice,
    TaxRate,
)
from services.club_store_service.models.checkout import (
    TIP_POOL_ID,
    SalesTaxRecord,
    TipPool,
    TipWithdrawal,
)
from services.club_store_service.models.enums import (
    AllocationTargetType,
    EntitlementSource,
    EntitlementStatus,
    MembershipStatus,
    PaymentMethod,
)
from services.club_store_service.models.fulfillment import Allocation, Entitlement

__all__ = [
    "Allocation",
    "AllocationTargetType",
    "Cart",
    "CartItem",
    "Club",
    "ClubMembership",
    "Entitlement",
    "EntitlementSource",
    "EntitlementStatus",
    "MAX_CART_ITEM_QUANTITY",
    "Member",
    "MembershipOffering",
    "MembershipStatus",
    "PaymentMethod",
    "Product",
    "ProductClubPrice",
    "SalesTaxRecord",
    "TIP_POOL_ID",
    "TaxRate",
    "TipPool",
    "TipWithdrawal",
]
