"""FastAPI application for the Club Store Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.club_store_service.routers import (
    admin_router,
    cart_router,
    checkout_router,
    internal_router,
    member_router,
    staff_router,
)


def create_app() -> FastAPI:
    """Create and configure the Club Store Service FastAPI app."""
    app = FastAPI(
        title="Cellar Club Store Service",
        version="0.1.0",
        description="Member allocations, preorders, pickup fulfillment and checkout pricing.",
    )
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "club-store"}

    # Member-facing routes
    app.include_router(member_router)
    app.include_router(cart_router)
    app.include_router(checkout_router)

    # Pickup desk
    app.include_router(staff_router)

    # Admin routes
    app.include_router(admin_router)

    # Internal service-to-service routes (payments relay, scheduler)
    app.include_router(internal_router)

    return app


app = create_app()
