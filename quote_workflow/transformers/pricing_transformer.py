"""
Pricing transformer.
Maps bulk pricing requests and results between the pricing engine and models.
"""

import logging
from typing import Any, Dict, List

from quote_workflow.models.pricing import AppliedRule, PricingRequest, PricingResult
from quote_workflow.transformers.base_transformer import BaseTransformer
from quote_workflow.utils.error_handler import TransformationError


logger = logging.getLogger(__name__)


class PricingTransformer(BaseTransformer):
    """Transform pricing engine payloads."""

    REQUIRED_FIELDS = ['productId']

    def to_model(self, payload: Dict[str, Any]) -> PricingResult:
        """
        Transform one pricing result payload.

        Args:
            payload: Result with productId, basePrice, finalPrice,
                totalDiscount, effectiveMarginPercent, marginProtected and
                appliedRules

        Returns:
            PricingResult with rules sorted by their waterfall order
        """
        if not self.validate_required_fields(payload, self.REQUIRED_FIELDS):
            raise TransformationError(f"Missing required fields in pricing result {payload}")

        rules = sorted(
            (self.rule_to_model(rule) for rule in self.safe_get(payload, 'appliedRules', [])),
            key=lambda rule: rule.order,
        )

        return self.build(
            PricingResult,
            'pricing result',
            product_id=payload['productId'],
            base_price=self.parse_decimal(payload.get('basePrice')) or 0,
            final_price=self.parse_decimal(payload.get('finalPrice')) or 0,
            total_discount=self.parse_decimal(payload.get('totalDiscount')) or 0,
            effective_margin_percent=self.parse_decimal(payload.get('effectiveMarginPercent')),
            margin_protected=bool(self.safe_get(payload, 'marginProtected', False)),
            applied_rules=tuple(rules),
        )

    def rule_to_model(self, payload: Dict[str, Any]) -> AppliedRule:
        return self.build(
            AppliedRule,
            'applied rule',
            order=self.safe_get(payload, 'order', 0),
            rule_type=str(self.safe_get(payload, 'ruleType', '')),
            rule_name=str(self.safe_get(payload, 'ruleName', '')),
            price_before=self.parse_decimal(payload.get('priceBefore')) or 0,
            price_after=self.parse_decimal(payload.get('priceAfter')) or 0,
            adjustment=self.parse_decimal(payload.get('adjustment')) or 0,
            explanation=str(self.safe_get(payload, 'explanation', '')),
        )

    def to_results(self, payloads: List[Dict[str, Any]]) -> List[PricingResult]:
        return [self.to_model(payload) for payload in payloads or []]

    def request_to_payload(self, request: PricingRequest) -> Dict[str, Any]:
        """Bulk request item for one product."""
        item = {
            'productId': request.product_id,
            'quantity': request.quantity,
            'includeBreakdown': request.include_breakdown,
        }
        if request.customer_id:
            item['customerId'] = request.customer_id
        return item
