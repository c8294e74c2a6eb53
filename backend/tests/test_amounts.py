"""
Line-item money arithmetic.

Verifies:
- Half-up rounding to 2 decimals on the decimal reading of a float
- gross -> discount -> tax -> net pricing
- Parent aggregate deltas for create / update / delete
"""

import pytest

from brokerbook.services.amounts import (
    LineAmounts,
    ZERO_AMOUNTS,
    apply_line_item_delta,
    commission_amount,
    compute_amounts,
    round_money,
    sum_amounts,
)


class TestRoundMoney:
    """round_money rounds ties away from zero."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1.005, 1.01),
            (2.675, 2.68),
            (0.125, 0.13),
            (-1.005, -1.01),
            (48.6, 48.6),
            (10, 10.0),
            (None, 0.0),
        ],
    )
    def test_half_up(self, value, expected):
        assert round_money(value) == expected

    def test_negative_zero_is_normalised(self):
        result = round_money(-0.001)
        assert result == 0.0
        assert str(result) == "0.0"

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError):
            round_money(float("inf"))


class TestComputeAmounts:
    def test_discount_then_tax(self):
        amounts = compute_amounts(rate=100, quantity=3, discount_rate=10, gst_rate=18)
        assert amounts == LineAmounts(gross=300.0, discount=30.0, tax=48.6, net=318.6)

    def test_requantified_line(self):
        amounts = compute_amounts(rate=100, quantity=5, discount_rate=10, gst_rate=18)
        assert amounts == LineAmounts(gross=500.0, discount=50.0, tax=81.0, net=531.0)

    def test_zero_discount_rate_skips_discount(self):
        amounts = compute_amounts(rate=19.99, quantity=3, gst_rate=5)
        assert amounts.discount == 0.0
        assert amounts.gross == 59.97
        assert amounts.tax == 3.0
        assert amounts.net == 62.97

    def test_missing_inputs_price_to_zero(self):
        assert compute_amounts(None, None) == ZERO_AMOUNTS

    def test_recomputing_is_stable(self):
        """Pricing the same rounded inputs twice gives identical output."""
        first = compute_amounts(rate=33.33, quantity=7, discount_rate=12.5, gst_rate=18)
        second = compute_amounts(rate=33.33, quantity=7, discount_rate=12.5, gst_rate=18)
        assert first == second
        assert round_money(first.net) == first.net


class TestLineItemDelta:
    def test_create_adds(self):
        new = compute_amounts(100, 3, 10, 18)
        assert apply_line_item_delta(ZERO_AMOUNTS, None, new).net == 318.6

    def test_update_replaces_old_with_new(self):
        old = compute_amounts(100, 3, 10, 18)
        new = compute_amounts(100, 5, 10, 18)
        parent = apply_line_item_delta(ZERO_AMOUNTS, None, old)
        assert apply_line_item_delta(parent, old, new) == new

    def test_delete_subtracts(self):
        first = compute_amounts(100, 3, 10, 18)
        second = compute_amounts(10.1, 3, 0, 5)
        parent = sum_amounts([first, second])
        assert apply_line_item_delta(parent, first, None) == second

    def test_many_edits_do_not_drift(self):
        parent = ZERO_AMOUNTS
        current = None
        for quantity in (0.1, 0.2, 0.3, 0.7, 1.1, 0.3):
            new = compute_amounts(0.1, quantity, 0, 18)
            parent = apply_line_item_delta(parent, current, new)
            current = new
        assert parent == current


class TestCommissionAmount:
    def test_percentage_of_net(self):
        assert commission_amount(318.6, 2) == 6.37

    def test_missing_rate_is_zero(self):
        assert commission_amount(1000, None) == 0.0
