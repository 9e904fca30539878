# Overview: Pytest coverage for line pricing arithmetic and catalog default resolution.

from decimal import Decimal
from types import SimpleNamespace

import pytest

from retailpos.errors import InvalidInput
from retailpos.services.pricing_service import (
    clamp_percent_bps,
    percent_to_bps,
    price_line,
    resolve_discount_bps,
    resolve_tax_bps,
    sum_totals,
    to_cents,
)


def _closed_form_cents(price_cents, quantity, discount_bps, tax_bps) -> Decimal:
    d = Decimal(discount_bps) / 10000
    t = Decimal(tax_bps) / 10000
    return Decimal(price_cents * quantity) * (1 - d) * (1 + t)


class TestPriceLine:
    def test_gst_only_line(self):
        """100.00 at 18% GST, no discount -> 118.00."""
        line = price_line(10000, 1, 0, 1800)
        assert line.line_subtotal_cents == 10000
        assert line.discount_cents == 0
        assert line.taxable_cents == 10000
        assert line.tax_cents == 1800
        assert line.line_total_cents == 11800

    def test_discount_then_tax(self):
        line = price_line(999, 3, 1000, 1800)
        assert line.line_subtotal_cents == 2997
        assert line.discount_cents == 300      # 299.7
        assert line.taxable_cents == 2697
        assert line.tax_cents == 486           # 2697.3 * 0.18 = 485.514
        assert line.line_total_cents == 3183

    def test_line_total_stays_within_one_cent_of_closed_form(self):
        cases = [
            (1, 1, 0, 0),
            (1, 7, 3333, 1250),
            (333, 3, 1550, 500),
            (1999, 4, 250, 2800),
            (12345, 11, 9999, 1),
            (5, 1, 5000, 5000),
            (0, 9, 1200, 1800),
            (99999, 2, 10000, 10000),
        ]
        for price, qty, disc, tax in cases:
            line = price_line(price, qty, disc, tax)
            expected = _closed_form_cents(price, qty, disc, tax)
            assert abs(Decimal(line.line_total_cents) - expected) <= 1, (price, qty, disc, tax)
            assert line.line_total_cents == line.taxable_cents + line.tax_cents
            assert line.taxable_cents == line.line_subtotal_cents - line.discount_cents

    def test_full_discount_zeroes_line(self):
        line = price_line(500, 2, 10000, 1800)
        assert line.discount_cents == 1000
        assert line.tax_cents == 0
        assert line.line_total_cents == 0

    def test_tax_is_rounded_from_unrounded_taxable_amount(self):
        # 5 - 0.5 discount rounds to taxable 4, but tax is 100% of 4.5
        line = price_line(5, 1, 1000, 10000)

        assert line.discount_cents == 1
        assert line.taxable_cents == 4
        assert line.tax_cents == 5
        assert line.line_total_cents == line.taxable_cents + line.tax_cents == 9

    def test_zero_price_is_allowed(self):
        assert price_line(0, 5, 0, 1800).line_total_cents == 0

    @pytest.mark.parametrize("args", [
        (10000, 0, 0, 0),
        (10000, -1, 0, 0),
        (-1, 1, 0, 0),
        (10000, 1, 10001, 0),
        (10000, 1, 0, -1),
        (10000, True, 0, 0),
        (100.5, 1, 0, 0),
    ])
    def test_rejects_invalid_input(self, args):
        with pytest.raises(InvalidInput):
            price_line(*args)


class TestTotals:
    def test_aggregates_are_sums_of_line_components(self):
        lines = [
            price_line(10000, 1, 0, 1800),
            price_line(999, 3, 1000, 1800),
            price_line(250, 4, 500, 0),
        ]
        totals = sum_totals(lines)
        assert totals.subtotal_cents == sum(l.line_subtotal_cents for l in lines)
        assert totals.discount_total_cents == sum(l.discount_cents for l in lines)
        assert totals.tax_total_cents == sum(l.tax_cents for l in lines)
        assert totals.grand_total_cents == sum(l.line_total_cents for l in lines)
        assert totals.grand_total_cents == (
            totals.subtotal_cents - totals.discount_total_cents + totals.tax_total_cents
        )

    def test_empty_cart_totals_are_zero(self):
        totals = sum_totals([])
        assert totals.to_dict() == {
            "subtotal_cents": 0,
            "discount_total_cents": 0,
            "tax_total_cents": 0,
            "grand_total_cents": 0,
        }


class TestDefaultResolution:
    def test_tax_override_wins_even_when_zero(self):
        product = SimpleNamespace(tax_override_bps=0)
        category = SimpleNamespace(default_gst_bps=1800)
        assert resolve_tax_bps(product, category) == 0

    def test_tax_falls_back_to_category_then_zero(self):
        product = SimpleNamespace(tax_override_bps=None)
        assert resolve_tax_bps(product, SimpleNamespace(default_gst_bps=1200)) == 1200
        assert resolve_tax_bps(product, None) == 0

    def test_store_global_discount_wins_when_non_zero(self):
        category = SimpleNamespace(default_discount_bps=1000)
        assert resolve_discount_bps(SimpleNamespace(global_discount_bps=500), category) == 500
        assert resolve_discount_bps(SimpleNamespace(global_discount_bps=0), category) == 1000
        assert resolve_discount_bps(None, None) == 0

    def test_clamp(self):
        assert clamp_percent_bps(-5) == 0
        assert clamp_percent_bps(12000) == 10000
        assert clamp_percent_bps(1250) == 1250


class TestBoundaryConversion:
    def test_to_cents(self):
        assert to_cents(19.99) == 1999
        assert to_cents("19.99") == 1999
        assert to_cents(100) == 10000
        # Binary float noise does not leak into cents
        assert to_cents(0.1 + 0.2) == 30

    def test_percent_to_bps(self):
        assert percent_to_bps(18) == 1800
        assert percent_to_bps("12.5") == 1250
        assert percent_to_bps(0) == 0

    @pytest.mark.parametrize("value", [None, "abc", True, "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(InvalidInput):
            to_cents(value)

    def test_rejects_values_beyond_decimal_precision(self):
        with pytest.raises(InvalidInput):
            to_cents("1e40")
        with pytest.raises(InvalidInput):
            percent_to_bps("1e40")
