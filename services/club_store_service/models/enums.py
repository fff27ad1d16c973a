"""Enum definitions for club store models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class MembershipStatus(str, enum.Enum):
    ACTIVE = "active"
    LAPSED = "lapsed"


class AllocationTargetType(str, enum.Enum):
    CLUB = "club"
    MEMBERS = "members"


class EntitlementStatus(str, enum.Enum):
    NOT_READY = "not_ready"
    READY_FOR_PICKUP = "ready_for_pickup"
    PICKED_UP = "picked_up"
    # Declared terminal state; nothing transitions into it yet.
    EXPIRED = "expired"


class EntitlementSource(str, enum.Enum):
    ALLOCATION = "allocation"
    PREORDER = "preorder"
    ORDER = "order"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    US_BANK_ACCOUNT = "us_bank_account"
