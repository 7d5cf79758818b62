"""
Suggested pricing from the pricing rules engine.

One batched call per refresh: every unique product on the quote becomes one
request entry (quantities of repeated products are summed). Results are
merged back onto lines by product id, never by position.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from quote_workflow.clients.pricing_client import PricingClient
from quote_workflow.config import get_settings
from quote_workflow.models.pricing import PricingRequest, SuggestedPrice
from quote_workflow.models.quote import LineItem, Quote
from quote_workflow.pricing.calculator import format_money
from quote_workflow.utils.error_handler import PricingAPIError


logger = logging.getLogger(__name__)


def build_pricing_requests(quote: Optional[Quote]) -> List[PricingRequest]:
    """
    Build the bulk pricing request for a quote.

    Args:
        quote: Quote to price

    Returns:
        One PricingRequest per unique product id, in first-seen order.
        Lines without a product id are skipped.
    """
    if quote is None:
        return []

    quantities: "OrderedDict[str, int]" = OrderedDict()
    for line in quote.line_items:
        if not line.product_id:
            logger.debug(f"Line {line.id} has no product id, skipping pricing")
            continue
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity

    return [
        PricingRequest(
            product_id=product_id,
            customer_id=quote.customer_id,
            quantity=quantity,
            include_breakdown=True,
        )
        for product_id, quantity in quantities.items()
    ]


@dataclass(frozen=True)
class MarginThresholds:
    """Margin health bands, in percent."""
    healthy: float = 20.0
    warning: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> "MarginThresholds":
        return cls(
            healthy=settings.margin_healthy_percent,
            warning=settings.margin_warning_percent,
        )



class SuggestedPricingService:
    """
    Holds pricing engine suggestions for one quote.

    A failed refresh keeps the previous suggestions and records the error in
    last_error.
    """

    def __init__(
        self,
        pricing_client: PricingClient,
        thresholds: Optional[MarginThresholds] = None
    ):
        """
        Args:
            pricing_client: Pricing engine client
            thresholds: Margin health bands (defaults to settings)
        """
        self.pricing_client = pricing_client
        self.thresholds = thresholds or MarginThresholds.from_settings(get_settings())
        self.suggestions: Dict[str, SuggestedPrice] = {}
        self.last_error: Optional[str] = None

    def refresh(self, quote: Optional[Quote]) -> Dict[str, SuggestedPrice]:
        """
        Fetch suggestions for every product on the quote.

        Args:
            quote: Quote to price

        Returns:
            Suggestions keyed by product id
        """
        requests_ = build_pricing_requests(quote)
        if not requests_:
            self.suggestions = {}
            self.last_error = None
            return self.suggestions

        try:
            results = self.pricing_client.batch_price_quote(requests_)
        except PricingAPIError as e:
            logger.error(f"Failed to fetch suggested pricing for quote {quote.id}: {e}")
            self.last_error = str(e)
            return self.suggestions

        requested = {request.product_id for request in requests_}
        suggestions = {}
        for result in results:
            if result.product_id not in requested:
                logger.debug(f"Discarding pricing result for product {result.product_id} not on quote {quote.id}")
                continue
            suggestions[result.product_id] = SuggestedPrice.from_result(result)

        self.suggestions = suggestions
        self.last_error = None

        logger.info(
            f"Quote {quote.id}: {len(suggestions)} suggestions for {len(requested)} products"
            f" ({sum(1 for s in suggestions.values() if s.has_special_pricing)} with special pricing)"
        )
        return self.suggestions

    def suggestion_for(self, line: LineItem) -> Optional[SuggestedPrice]:
        """Suggestion for a line, or None if the engine returned nothing for it."""
        if not line.product_id:
            return None
        return self.suggestions.get(line.product_id)

    def suggested_price_text(self, line: LineItem) -> Optional[str]:
        """Suggested unit price as a two-decimal string, for the scratch field."""
        suggestion = self.suggestion_for(line)
        if suggestion is None:
            return None
        return format_money(suggestion.suggested_price)

    def margin_status(self, line: LineItem) -> Optional[str]:
        """Margin health of the suggestion for a line, or None without a suggestion."""
        suggestion = self.suggestion_for(line)
        if suggestion is None:
            return None
        return suggestion.margin_status(self.thresholds.healthy, self.thresholds.warning)

    @property
    def has_any_special_pricing(self) -> bool:
        return any(s.has_special_pricing for s in self.suggestions.values())
