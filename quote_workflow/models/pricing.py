"""
Pricing engine request/response records.

The pricing engine runs a waterfall of rules per product:
catalog base price -> customer contract price -> volume tier -> margin floor.
These models carry its results into the core; they are never persisted.
"""

from decimal import Decimal
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quote_workflow.utils.date_utils import normalize_identifier


def margin_band(margin_percent: Optional[Decimal], healthy: float, warning: float) -> str:
    """
    Classify a margin percentage.

    Args:
        margin_percent: Effective margin, None when the engine hides it
        healthy: Margin at or above this is healthy
        warning: Margin at or above this (and below healthy) is a warning

    Returns:
        'healthy', 'warning', 'critical', or 'unknown'
    """
    if margin_percent is None:
        return 'unknown'
    if margin_percent >= Decimal(str(healthy)):
        return 'healthy'
    if margin_percent >= Decimal(str(warning)):
        return 'warning'
    return 'critical'


class PricingRequest(BaseModel):
    """One entry of a bulk pricing request."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    customer_id: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    include_breakdown: bool = True

    @field_validator("product_id", mode="before")
    @classmethod
    def normalize_product_id(cls, v: Any) -> str:
        normalized = normalize_identifier(v)
        if normalized is None:
            raise ValueError("product_id is required")
        return normalized

    @field_validator("customer_id", mode="before")
    @classmethod
    def normalize_customer_id(cls, v: Any) -> Optional[str]:
        return normalize_identifier(v)


class AppliedRule(BaseModel):
    """A single step of the pricing waterfall."""

    model_config = ConfigDict(frozen=True)

    order: int = 0
    rule_type: str = ''
    rule_name: str = ''
    price_before: Decimal = Decimal('0')
    price_after: Decimal = Decimal('0')
    adjustment: Decimal = Decimal('0')
    explanation: str = ''

    @property
    def is_discount(self) -> bool:
        return self.adjustment < 0


class PricingResult(BaseModel):
    """Priced result for one product."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    base_price: Decimal = Decimal('0')
    final_price: Decimal = Decimal('0')
    total_discount: Decimal = Decimal('0')
    effective_margin_percent: Optional[Decimal] = None
    margin_protected: bool = False
    applied_rules: Tuple[AppliedRule, ...] = ()

    @field_validator("product_id", mode="before")
    @classmethod
    def normalize_product_id(cls, v: Any) -> str:
        normalized = normalize_identifier(v)
        if normalized is None:
            raise ValueError("product_id is required")
        return normalized

    @property
    def discount_percent(self) -> Decimal:
        """Discount as a percentage of the base price (0 when base price is 0)."""
        if self.base_price == 0:
            return Decimal('0')
        return self.total_discount / self.base_price * 100

    def margin_status(self, healthy: float, warning: float) -> str:
        return margin_band(self.effective_margin_percent, healthy, warning)


class SuggestedPrice(BaseModel):
    """Pricing engine suggestion merged onto a quote line."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    base_price: Decimal
    suggested_price: Decimal
    discount_amount: Decimal
    margin_percent: Optional[Decimal] = None
    margin_protected: bool = False
    applied_rules: Tuple[AppliedRule, ...] = ()
    has_special_pricing: bool = False

    @classmethod
    def from_result(cls, result: PricingResult) -> "SuggestedPrice":
        """Build a suggestion from a pricing result."""
        # More than one rule means something beyond the catalog base price fired
        has_special_pricing = (
            len(result.applied_rules) > 1
            or result.total_discount != 0
            or result.margin_protected
        )
        return cls(
            product_id=result.product_id,
            base_price=result.base_price,
            suggested_price=result.final_price,
            discount_amount=result.total_discount,
            margin_percent=result.effective_margin_percent,
            margin_protected=result.margin_protected,
            applied_rules=result.applied_rules,
            has_special_pricing=has_special_pricing,
        )

    @property
    def rule_types(self) -> List[str]:
        return [rule.rule_type for rule in self.applied_rules]

    def margin_status(self, healthy: float, warning: float) -> str:
        return margin_band(self.margin_percent, healthy, warning)
