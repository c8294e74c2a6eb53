# Overview: Pure money arithmetic for invoice line items and their parent aggregates.

"""
Line-item amount calculation and aggregate delta arithmetic.

Everything here is pure: no database access, no Flask context. The services
that persist products and goods-return lines call these functions and then
write the returned values explicitly.

ROUNDING: half-up (ties away from zero) to 2 decimals, applied to the
shortest decimal representation of the float. So 1.005 rounds to 1.01 and
2.675 rounds to 2.68, which is what a person reading the number expects,
even though the binary float sits slightly below the tie.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")


def round_money(value) -> float:
    """Round a monetary amount half-up to 2 decimal places."""
    if value is None:
        return 0.0
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("Amount must be a finite number")
    rounded = Decimal(repr(number)).quantize(_CENT, rounding=ROUND_HALF_UP)
    # Normalise -0.0 so totals that cancel out compare and serialize as 0.0
    return float(rounded) + 0.0


@dataclass(frozen=True)
class LineAmounts:
    """The four money fields shared by line items and their parent aggregates."""
    gross: float = 0.0
    discount: float = 0.0
    tax: float = 0.0
    net: float = 0.0

    def to_dict(self) -> dict:
        return {
            "gross": self.gross,
            "discount": self.discount,
            "tax": self.tax,
            "net": self.net,
        }


ZERO_AMOUNTS = LineAmounts()


def compute_amounts(rate, quantity, discount_rate=0, gst_rate=0) -> LineAmounts:
    """
    gross -> discount -> taxable -> tax -> net, each step rounded.

    Negative inputs are not rejected here; request validation owns that.
    """
    rate = float(rate or 0)
    quantity = float(quantity or 0)
    discount_rate = float(discount_rate or 0)
    gst_rate = float(gst_rate or 0)

    gross = round_money(rate * quantity)
    discount = round_money(gross * discount_rate / 100) if discount_rate > 0 else 0.0
    tax = round_money((gross - discount) * gst_rate / 100)
    net = round_money(gross - discount + tax)
    return LineAmounts(gross=gross, discount=discount, tax=tax, net=net)


def apply_line_item_delta(
    parent: LineAmounts,
    old: LineAmounts | None,
    new: LineAmounts | None,
) -> LineAmounts:
    """
    Return the parent's aggregates after replacing `old` with `new`.

    old=None is a create, new=None is a delete. Each field is re-rounded so
    repeated edits never accumulate float drift.
    """
    old = old or ZERO_AMOUNTS
    new = new or ZERO_AMOUNTS
    return LineAmounts(
        gross=round_money(parent.gross + new.gross - old.gross),
        discount=round_money(parent.discount + new.discount - old.discount),
        tax=round_money(parent.tax + new.tax - old.tax),
        net=round_money(parent.net + new.net - old.net),
    )


def sum_amounts(items) -> LineAmounts:
    """Fresh total over an iterable of LineAmounts (used for reconciliation)."""
    total = ZERO_AMOUNTS
    for item in items:
        total = apply_line_item_delta(total, None, item)
    return total


def commission_amount(net_amount, commission_rate) -> float:
    return round_money(float(net_amount or 0) * float(commission_rate or 0) / 100)
