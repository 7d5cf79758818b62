"""
Test pricing and aggregation calculator.
"""

from decimal import Decimal

import pytest

from quote_workflow.models.quote import LineItem
from quote_workflow.pricing.calculator import (
    ERROR_NEGATIVE_CUSTOMER_PRICE,
    ERROR_NEGATIVE_VENDOR_COST,
    ERROR_PRICE_BELOW_COST,
    ERROR_PRODUCT_REQUIRED,
    calculate_totals,
    format_money,
    is_ready_to_send,
    line_figures,
    line_margin_percent,
    to_money,
    validate_line_pricing,
)
from quote_workflow.utils.error_handler import ValidationError


def make_line(line_id='cart-1', quantity=1, vendor_cost=None, customer_price=None, product_id='prod-1'):
    return LineItem(
        id=line_id,
        product_id=product_id,
        quantity=quantity,
        vendor_cost=Decimal(str(vendor_cost)) if vendor_cost is not None else None,
        customer_price=Decimal(str(customer_price)) if customer_price is not None else None,
    )


class TestLineFigures:
    """Test per-line derived figures."""

    def test_fully_priced_line(self):
        """Test: total, margin and margin percent"""
        figures = line_figures(make_line(quantity=10, vendor_cost=100, customer_price=150))
        assert figures.line_total == Decimal('1500.00')
        assert figures.margin == Decimal('500.00')
        assert figures.margin_percent == Decimal('50.0')

    def test_missing_customer_price(self):
        """Test: no total or margin without a customer price"""
        figures = line_figures(make_line(quantity=3, vendor_cost=10))
        assert figures.line_total is None
        assert figures.margin is None
        assert figures.margin_percent is None
        assert figures.is_priced is False

    def test_missing_vendor_cost(self):
        """Test: total computed, margin undefined without vendor cost"""
        figures = line_figures(make_line(quantity=2, customer_price='19.99'))
        assert figures.line_total == Decimal('39.98')
        assert figures.margin is None
        assert figures.margin_percent is None

    def test_zero_vendor_cost_never_divides(self):
        """Test: margin percent is None, not 0, when vendor cost is zero"""
        assert line_margin_percent(Decimal('0'), Decimal('10')) is None

    def test_margin_percent_rounded_to_one_decimal(self):
        """Test: (10 - 3) / 3 * 100 = 233.3"""
        assert line_margin_percent(Decimal('3'), Decimal('10')) == Decimal('233.3')

    def test_zero_margin_flag(self):
        """Test: equal price and cost is a zero-margin line"""
        assert line_figures(make_line(vendor_cost=50, customer_price=50)).is_zero_margin is True


class TestQuoteTotals:
    """Test whole-quote aggregation."""

    def test_two_line_scenario(self, sample_line_items):
        """Test: vendor {100,200} price {150,300} qty {10,5}"""
        totals = calculate_totals(sample_line_items)
        assert totals.vendor_total == Decimal('2000.00')
        assert totals.customer_total == Decimal('3000.00')
        assert totals.margin_total == Decimal('1000.00')
        assert totals.margin_percent == Decimal('50.00')
        assert totals.is_ready_to_send is True

    def test_zero_vendor_total(self):
        """Test: blended margin is 0 when vendor total is 0"""
        totals = calculate_totals([make_line(quantity=4, customer_price=25)])
        assert totals.vendor_total == Decimal('0.00')
        assert totals.margin_percent == Decimal('0')
        assert totals.margin_total == Decimal('100.00')

    def test_empty_quote(self):
        """Test: no lines -> zero totals, not ready"""
        totals = calculate_totals([])
        assert totals.customer_total == Decimal('0')
        assert totals.margin_percent == Decimal('0')
        assert totals.is_ready_to_send is False

    def test_missing_values_count_as_zero(self):
        """Test: unpriced lines add nothing to the sums"""
        totals = calculate_totals([
            make_line('a', quantity=2, vendor_cost=10, customer_price=15),
            make_line('b', quantity=5),
        ])
        assert totals.vendor_total == Decimal('20.00')
        assert totals.customer_total == Decimal('30.00')
        assert totals.priced_count == 1
        assert totals.line_count == 2

    def test_blended_margin_rounded_to_two_decimals(self):
        """Test: 1/3 markup -> 33.33"""
        totals = calculate_totals([make_line(quantity=1, vendor_cost=3, customer_price=4)])
        assert totals.margin_percent == Decimal('33.33')

    def test_to_dict(self, sample_line_items):
        """Test: summary dict uses two-decimal money strings"""
        data = calculate_totals(sample_line_items).to_dict()
        assert data['vendorTotal'] == '2000.00'
        assert data['isReadyToSend'] is True


class TestReadyToSend:
    """Test the ready-to-send predicate."""

    def test_missing_quote(self):
        """Test: no quote is never ready"""
        assert is_ready_to_send(None) is False

    def test_no_line_items(self, quote_factory):
        """Test: a quote without lines is not ready"""
        assert is_ready_to_send(quote_factory(line_items=())) is False

    def test_vendor_cost_not_required(self, quote_factory):
        """Test: every customer price set, vendor costs missing -> ready"""
        quote = quote_factory(line_items=(
            make_line('a', customer_price=10),
            make_line('b', customer_price='0.01'),
        ))
        assert is_ready_to_send(quote) is True

    def test_zero_price_not_ready(self, quote_factory):
        """Test: a zero customer price blocks sending"""
        quote = quote_factory(line_items=(
            make_line('a', customer_price=10),
            make_line('b', customer_price=0, vendor_cost=0),
        ))
        assert is_ready_to_send(quote) is False

    def test_null_price_not_ready(self, quote_factory):
        """Test: a missing customer price blocks sending"""
        quote = quote_factory(line_items=(make_line('a', vendor_cost=5),))
        assert is_ready_to_send(quote) is False


class TestValidateLinePricing:
    """Test validation of a single line edit."""

    def test_price_below_cost_rejected(self):
        """Test: customer price < vendor cost"""
        errors = validate_line_pricing('prod-1', Decimal('100'), Decimal('99.99'))
        assert errors == [ERROR_PRICE_BELOW_COST]

    def test_equal_price_and_cost_accepted(self):
        """Test: zero margin is not a validation failure"""
        assert validate_line_pricing('prod-1', Decimal('100'), Decimal('100')) == []

    def test_nulls_accepted(self):
        """Test: partial pricing is valid mid-workflow"""
        assert validate_line_pricing('prod-1', None, None) == []
        assert validate_line_pricing('prod-1', Decimal('5'), None) == []
        assert validate_line_pricing('prod-1', None, Decimal('5')) == []

    def test_zero_values_accepted(self):
        """Test: zero cost and price are valid edits"""
        assert validate_line_pricing('prod-1', Decimal('0'), Decimal('0')) == []

    def test_negative_values_rejected(self):
        """Test: negative cost or price"""
        assert ERROR_NEGATIVE_VENDOR_COST in validate_line_pricing('prod-1', Decimal('-1'), None)
        assert ERROR_NEGATIVE_CUSTOMER_PRICE in validate_line_pricing('prod-1', None, Decimal('-1'))

    def test_product_required(self):
        """Test: empty product id"""
        assert validate_line_pricing('', None, None) == [ERROR_PRODUCT_REQUIRED]
        assert validate_line_pricing(None, None, None) == [ERROR_PRODUCT_REQUIRED]


class TestMoneyParsing:
    """Test money parsing and formatting."""

    @pytest.mark.parametrize("value,expected", [
        ("150.50", Decimal("150.50")),
        (" 1,200.00 ", Decimal("1200.00")),
        (12, Decimal("12")),
        (0.1, Decimal("0.1")),
        (Decimal("3.333"), Decimal("3.333")),
    ])
    def test_parse(self, value, expected):
        """Test: strings, ints, floats and Decimals parse"""
        assert to_money(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_is_none(self, value):
        """Test: missing values parse to None"""
        assert to_money(value) is None

    @pytest.mark.parametrize("value", ["abc", "1.2.3", "NaN", "Infinity", True])
    def test_invalid(self, value):
        """Test: non-numbers raise ValidationError"""
        with pytest.raises(ValidationError):
            to_money(value)

    def test_format_money(self):
        """Test: two decimals, half up"""
        assert format_money(Decimal('102')) == '102.00'
        assert format_money(Decimal('1.005')) == '1.01'
        assert format_money(None) == ''
