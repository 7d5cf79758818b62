"""
Line item transformer.
Maps quote products (cart products) between the platform API and LineItem.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from quote_workflow.models.quote import LineItem
from quote_workflow.transformers.base_transformer import BaseTransformer
from quote_workflow.utils.date_utils import normalize_identifier
from quote_workflow.utils.error_handler import TransformationError


logger = logging.getLogger(__name__)


class LineItemTransformer(BaseTransformer):
    """Transform quote product payloads to LineItem and back."""

    REQUIRED_FIELDS = ['id']

    def to_model(self, payload: Dict[str, Any]) -> LineItem:
        """
        Transform a quote product payload to a LineItem.

        The display name comes from the nested product when present:
        part number (sku) + ' ' + name.

        Args:
            payload: Quote product payload

        Returns:
            LineItem

        Raises:
            TransformationError: If required fields are missing or invalid
        """
        if not self.validate_required_fields(payload, self.REQUIRED_FIELDS):
            raise TransformationError(f"Missing required fields in line item {payload}")

        product = self.safe_get(payload, 'product', {})
        product_id = self.first_of(payload, 'productId') or self.safe_get(product, 'id')

        sku = self.safe_get(product, 'sku', '')
        name = self.safe_get(product, 'name', '') or self.safe_get(payload, 'productName', '')
        product_name = (
            f"{sku} {name}".strip()
            or f"Product {normalize_identifier(product_id) or ''}".strip()
        )

        line = self.build(
            LineItem,
            'line item',
            id=payload['id'],
            product_id=product_id,
            product_name=product_name,
            quantity=self.safe_get(payload, 'quantity', 1),
            vendor_cost=self.parse_decimal(payload.get('vendorCost')),
            customer_price=self.parse_decimal(payload.get('customerPrice')),
        )

        logger.debug(f"Transformed line item {line.id} ({line.product_id})")
        return line

    def to_payload(self, line: LineItem) -> Dict[str, Any]:
        """
        Full quote product payload for a LineItem.

        Money is sent as decimal strings, never floats.
        """
        return {
            'id': line.id,
            'productId': line.product_id,
            'productName': line.product_name or None,
            'quantity': line.quantity,
            'vendorCost': _money_text(line.vendor_cost),
            'customerPrice': _money_text(line.customer_price),
        }


def _money_text(amount: Optional[Decimal]) -> Optional[str]:
    return str(amount) if amount is not None else None
