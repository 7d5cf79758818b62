"""
Pricing and aggregation calculator.

Per-line and whole-quote pricing figures, the ready-to-send predicate, and
validation of a single line pricing edit. All money math uses Decimal.

Rounding:
- Line totals and margin amounts: cents (2 decimals)
- Line margin percent: 1 decimal
- Blended quote margin percent: 2 decimals
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional

from quote_workflow.models.quote import LineItem, Quote
from quote_workflow.utils.error_handler import ValidationError


logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
ONE_DECIMAL = Decimal('0.1')
ZERO = Decimal('0')
HUNDRED = Decimal('100')

ERROR_PRODUCT_REQUIRED = 'Product ID is required'
ERROR_NEGATIVE_VENDOR_COST = 'Vendor cost cannot be negative'
ERROR_NEGATIVE_CUSTOMER_PRICE = 'Customer price cannot be negative'
ERROR_PRICE_BELOW_COST = 'Customer price must be greater than or equal to vendor cost'


def to_money(value: Any) -> Optional[Decimal]:
    """
    Parse a money value.

    Args:
        value: Decimal, int, float, numeric string, or None/blank

    Returns:
        Decimal, or None for missing values

    Raises:
        ValidationError: If the value is not a number

    Examples:
        >>> to_money("150.50")
        Decimal('150.50')
        >>> to_money("")
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"'{value}' is not a valid amount")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        text = str(value).strip().replace(',', '')
        if text == '':
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"'{value}' is not a valid amount")

    if not amount.is_finite():
        raise ValidationError(f"'{value}' is not a valid amount")
    return amount


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(amount: Optional[Decimal]) -> str:
    """Two-decimal string for an amount ('' for None)."""
    if amount is None:
        return ''
    return str(round_money(amount))


# ============================================================================
# Per-line figures
# ============================================================================

@dataclass(frozen=True)
class LineFigures:
    """Derived pricing figures for one line."""
    line_id: str
    product_id: Optional[str]
    quantity: int
    vendor_cost: Optional[Decimal]
    customer_price: Optional[Decimal]
    line_total: Optional[Decimal]
    margin: Optional[Decimal]
    margin_percent: Optional[Decimal]

    @property
    def is_priced(self) -> bool:
        return self.customer_price is not None and self.customer_price > 0

    @property
    def is_zero_margin(self) -> bool:
        """Customer price equals vendor cost (allowed, worth a warning)."""
        return self.margin is not None and self.margin == 0


def line_total(customer_price: Optional[Decimal], quantity: int) -> Optional[Decimal]:
    if customer_price is None:
        return None
    return round_money(customer_price * quantity)


def line_margin(
    vendor_cost: Optional[Decimal],
    customer_price: Optional[Decimal],
    quantity: int
) -> Optional[Decimal]:
    if vendor_cost is None or customer_price is None:
        return None
    return round_money((customer_price - vendor_cost) * quantity)


def line_margin_percent(
    vendor_cost: Optional[Decimal],
    customer_price: Optional[Decimal]
) -> Optional[Decimal]:
    """Markup over vendor cost; None when cost is missing or zero."""
    if vendor_cost is None or customer_price is None or vendor_cost == 0:
        return None
    percent = (customer_price - vendor_cost) / vendor_cost * HUNDRED
    return percent.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def line_figures(line: LineItem) -> LineFigures:
    """Compute the derived figures for a line item."""
    return LineFigures(
        line_id=line.id,
        product_id=line.product_id,
        quantity=line.quantity,
        vendor_cost=line.vendor_cost,
        customer_price=line.customer_price,
        line_total=line_total(line.customer_price, line.quantity),
        margin=line_margin(line.vendor_cost, line.customer_price, line.quantity),
        margin_percent=line_margin_percent(line.vendor_cost, line.customer_price),
    )


# ============================================================================
# Aggregates
# ============================================================================

@dataclass(frozen=True)
class QuoteTotals:
    """Whole-quote pricing summary."""
    vendor_total: Decimal = ZERO
    customer_total: Decimal = ZERO
    margin_total: Decimal = ZERO
    margin_percent: Decimal = ZERO
    line_count: int = 0
    priced_count: int = 0
    is_ready_to_send: bool = False
    lines: List[LineFigures] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'vendorTotal': format_money(self.vendor_total),
            'customerTotal': format_money(self.customer_total),
            'marginTotal': format_money(self.margin_total),
            'marginPercent': str(self.margin_percent),
            'lineCount': self.line_count,
            'pricedCount': self.priced_count,
            'isReadyToSend': self.is_ready_to_send,
        }


def calculate_totals(line_items: Iterable[LineItem]) -> QuoteTotals:
    """
    Aggregate pricing over a set of line items.

    Missing vendor costs and customer prices count as 0 in the sums. The
    blended margin percent is margin_total / vendor_total * 100, and 0 when
    vendor_total is 0.

    Example:
        vendor {100, 200}, price {150, 300}, qty {10, 5}
        -> vendor_total 2000, customer_total 3000, margin_total 1000, 50%
    """
    items = list(line_items)
    vendor_total = ZERO
    customer_total = ZERO

    for item in items:
        cost = item.vendor_cost if item.vendor_cost is not None else ZERO
        price = item.customer_price if item.customer_price is not None else ZERO
        vendor_total += cost * item.quantity
        customer_total += price * item.quantity

    margin_total = customer_total - vendor_total

    if vendor_total == 0:
        margin_percent = ZERO
    else:
        margin_percent = (margin_total / vendor_total * HUNDRED).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )

    lines = [line_figures(item) for item in items]

    return QuoteTotals(
        vendor_total=round_money(vendor_total),
        customer_total=round_money(customer_total),
        margin_total=round_money(margin_total),
        margin_percent=margin_percent,
        line_count=len(items),
        priced_count=sum(1 for figures in lines if figures.is_priced),
        is_ready_to_send=_all_priced(items),
        lines=lines,
    )


def _all_priced(items: List[LineItem]) -> bool:
    if not items:
        return False
    return all(
        item.customer_price is not None and item.customer_price > 0
        for item in items
    )


def is_ready_to_send(quote: Optional[Quote]) -> bool:
    """
    True iff the quote has line items and every one carries a customer
    price greater than zero. Vendor cost is not considered.
    """
    if quote is None:
        return False
    return _all_priced(list(quote.line_items))


# ============================================================================
# Validation
# ============================================================================

def validate_line_pricing(
    product_id: Optional[str],
    vendor_cost: Optional[Decimal],
    customer_price: Optional[Decimal]
) -> List[str]:
    """
    Validate a single line pricing edit.

    Nulls are accepted in either field. Customer price equal to vendor cost
    is accepted.

    Args:
        product_id: Line or product identifier being edited
        vendor_cost: Proposed vendor cost
        customer_price: Proposed customer price

    Returns:
        List of error messages (empty when valid)
    """
    errors = []

    if not product_id or not str(product_id).strip():
        errors.append(ERROR_PRODUCT_REQUIRED)

    if vendor_cost is not None and vendor_cost < 0:
        errors.append(ERROR_NEGATIVE_VENDOR_COST)

    if customer_price is not None and customer_price < 0:
        errors.append(ERROR_NEGATIVE_CUSTOMER_PRICE)

    if (
        vendor_cost is not None
        and customer_price is not None
        and customer_price < vendor_cost
    ):
        errors.append(ERROR_PRICE_BELOW_COST)

    if errors:
        logger.debug(f"Pricing edit for {product_id} rejected: {errors}")

    return errors
