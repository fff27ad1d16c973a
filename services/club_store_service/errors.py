"""Business errors raised by the club store core.

Each error is an ``HTTPException`` so FastAPI renders it directly, with a
structured ``detail`` payload:

    {"error": "insufficient_inventory", "message": "...", "required": 6, "available": 5}
"""

from typing import Any, Iterable, Optional

from fastapi import HTTPException, status


class ClubStoreError(HTTPException):
    """Base class for caller-facing rejections."""

    code = "club_store_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(
            status_code=self.status_code,
            detail={"error": self.code, "message": message, **context},
        )

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Validation / business rules (400)
# ---------------------------------------------------------------------------


class InvalidQuantity(ClubStoreError):
    code = "invalid_quantity"


class InvalidTarget(ClubStoreError):
    code = "invalid_target"


class UnknownClub(ClubStoreError):
    code = "unknown_club"

    def __init__(self, club_code: Optional[str], valid_codes: Iterable[str]):
        valid = sorted(valid_codes)
        if valid:
            message = f"club code must be one of: {', '.join(valid)}"
        else:
            message = "No clubs defined. Create clubs in admin first."
        super().__init__(message, club_code=club_code, valid_codes=valid)


class UnknownMember(ClubStoreError):
    code = "unknown_member"

    def __init__(self, missing_ids: Iterable[Any]):
        missing = [str(member_id) for member_id in missing_ids]
        super().__init__(
            "One or more member ids are not valid members", missing_ids=missing
        )


class EmptyTarget(ClubStoreError):
    code = "empty_target"


class InsufficientInventory(ClubStoreError):
    code = "insufficient_inventory"

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient inventory. Required: {required}, Available: {available}",
            required=required,
            available=available,
        )


class PreorderWindowClosed(ClubStoreError):
    code = "preorder_window_closed"

    def __init__(self, product_id: Any, product_name: Optional[str] = None):
        label = product_name or str(product_id)
        super().__init__(
            f"Preorder for '{label}' is outside its purchase window",
            product_id=str(product_id),
        )


class BelowMinimumCharge(ClubStoreError):
    code = "below_minimum_charge"

    def __init__(self, total_cents: int, minimum_cents: int):
        super().__init__(
            f"Minimum charge is {minimum_cents} cents",
            total_cents=total_cents,
            minimum_cents=minimum_cents,
        )


class UnknownMembershipOffering(ClubStoreError):
    code = "unknown_membership_offering"


class InsufficientTipBalance(ClubStoreError):
    code = "insufficient_tip_balance"

    def __init__(self, requested_cents: int, available_cents: int):
        super().__init__(
            "Insufficient tip balance",
            requested_cents=requested_cents,
            available_cents=available_cents,
        )


class InvalidMonth(ClubStoreError):
    code = "invalid_month"


class InvalidCartSession(ClubStoreError):
    code = "invalid_cart_session"


# ---------------------------------------------------------------------------
# Missing entities (404)
# ---------------------------------------------------------------------------


class ProductNotFound(ClubStoreError):
    code = "product_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, product_id: Any):
        super().__init__("Product not found", product_id=str(product_id))


class EntitlementNotFound(ClubStoreError):
    code = "entitlement_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entitlement_id: Any):
        super().__init__("Entitlement not found", entitlement_id=str(entitlement_id))


class MemberNotFound(ClubStoreError):
    code = "member_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, member_id: Any):
        super().__init__("Member not found", member_id=str(member_id))


class CartNotFound(ClubStoreError):
    code = "cart_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, session_id: str):
        super().__init__("Cart not found", cart_session_id=session_id)


# ---------------------------------------------------------------------------
# State machine (409) and storage (503)
# ---------------------------------------------------------------------------


class InvalidTransition(ClubStoreError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, entitlement_id: Any, current: str, expected: str):
        super().__init__(
            f"Entitlement is {current}; expected {expected}",
            entitlement_id=str(entitlement_id),
            current_status=current,
            expected_status=expected,
        )


class StorageFailure(ClubStoreError):
    """The database failed mid-operation; nothing was committed."""

    code = "storage_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
