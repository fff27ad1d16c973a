"""Club store service routers package."""

from services.club_store_service.routers.admin import router as admin_router
from services.club_store_service.routers.cart import router as cart_router
from services.club_store_service.routers.checkout import router as checkout_router
from services.club_store_service.routers.internal import router as internal_router
from services.club_store_service.routers.member import router as member_router
from services.club_store_service.routers.staff import router as staff_router

__all__ = [
    "admin_router",
    "cart_router",
    "checkout_router",
    "internal_router",
    "member_router",
    "staff_router",
]
