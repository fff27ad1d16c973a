"""Money helpers for the club store.

Internal storage unit: cents (smallest USD unit, 100 cents = $1).
API unit: integer cents as well; formatting is only for logs and emails.

Tax percentages are stored as two-decimal Numeric values (e.g. 8.25) and are
applied with Decimal arithmetic so rounding never depends on float error.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ─── constants ───────────────────────────────────────────────────────────────

CENTS_PER_DOLLAR: int = 100
PERCENT_QUANT = Decimal("0.01")

# ─── helpers ──────────────────────────────────────────────────────────────────


def to_percent(value: Union[Decimal, float, int, str]) -> Decimal:
    """Normalise a tax percentage to two-decimal Decimal precision."""
    return Decimal(str(value)).quantize(PERCENT_QUANT, rounding=ROUND_HALF_UP)


def percent_of_cents(cents: int, percent: Union[Decimal, float, int, str]) -> int:
    """Return ``percent`` % of ``cents``, rounded half-up to a whole cent.

    >>> percent_of_cents(6000, "8.25")
    495
    """
    raw = Decimal(cents) * to_percent(percent) / Decimal(100)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_cents(cents: int, currency: str = "USD") -> str:
    """Render cents for humans, e.g. ``6495 -> '$64.95'``."""
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), CENTS_PER_DOLLAR)
    symbol = "$" if currency.upper() == "USD" else f"{currency.upper()} "
    return f"{sign}{symbol}{dollars:,}.{remainder:02d}"
