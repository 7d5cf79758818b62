"""
Per-line pricing edit session.

While a pricing field has focus its text lives in a scratch value. On blur
the scratch values of the line (committed values for untouched fields) are
parsed and validated:
- valid:   a single-line update goes through the workflow, then the scratch
           values are discarded and the committed record is the source of truth
- invalid: the scratch value is kept and the error is stored for the line
"""

import logging
from typing import Dict, List, Optional

from quote_workflow.pricing.calculator import format_money, to_money, validate_line_pricing
from quote_workflow.pricing.suggestions import SuggestedPricingService
from quote_workflow.utils.error_handler import ActionNotPermittedError, ValidationError
from quote_workflow.workflow.quote_actions import (
    ACTION_MESSAGES,
    ActionKind,
    ActionResult,
    QuoteWorkflow,
)


logger = logging.getLogger(__name__)

VENDOR_COST = 'vendor_cost'
CUSTOMER_PRICE = 'customer_price'
PRICING_FIELDS = (VENDOR_COST, CUSTOMER_PRICE)


class PricingEditSession:
    """Scratch values and inline errors for pricing edits on one quote."""

    def __init__(
        self,
        workflow: QuoteWorkflow,
        suggestions: Optional[SuggestedPricingService] = None
    ):
        self.workflow = workflow
        self.suggestions = suggestions
        self.scratch: Dict[str, Dict[str, str]] = {}
        self.errors: Dict[str, List[str]] = {}

    @property
    def is_editable(self) -> bool:
        """Pricing is editable only for internal staff on a Read quote they may update."""
        return not self.workflow.closed and self.workflow.capabilities.can_edit_pricing

    def _line(self, line_id: str):
        line = self.workflow.quote.find_line(line_id)
        if line is None:
            raise KeyError(f"Line {line_id} not found on quote {self.workflow.quote.id}")
        return line

    def edit(self, line_id: str, field: str, text: str) -> None:
        """
        Record typed text for a pricing field.

        Raises:
            ActionNotPermittedError: If pricing is not editable
            KeyError: If the line or field is unknown
        """
        if not self.is_editable:
            raise ActionNotPermittedError('update_line_pricing', self.workflow.quote.id)
        if field not in PRICING_FIELDS:
            raise KeyError(f"Unknown pricing field: {field}")

        line = self._line(line_id)
        self.scratch.setdefault(line.id, {})[field] = text

    def apply_suggestion(self, line_id: str) -> bool:
        """
        Copy the suggested price into the scratch customer price.

        Nothing is committed until the field is blurred.

        Returns:
            True if a suggestion was applied
        """
        if self.suggestions is None:
            return False
        line = self._line(line_id)
        text = self.suggestions.suggested_price_text(line)
        if text is None:
            return False
        self.edit(line.id, CUSTOMER_PRICE, text)
        return True

    def display_value(self, line_id: str, field: str) -> str:
        """Scratch text if present, otherwise the committed value."""
        line = self._line(line_id)
        pending = self.scratch.get(line.id, {})
        if field in pending:
            return pending[field]
        return format_money(getattr(line, field))

    def has_pending(self, line_id: str) -> bool:
        return bool(self.scratch.get(self._line(line_id).id))

    def discard(self, line_id: str) -> None:
        line = self._line(line_id)
        self.scratch.pop(line.id, None)
        self.errors.pop(line.id, None)

    def blur(self, line_id: str) -> ActionResult:
        """
        Validate and commit the scratch values of a line.

        Returns:
            ActionResult of the commit (noop when nothing is pending)
        """
        line = self._line(line_id)
        pending = self.scratch.get(line.id)
        if not pending:
            return ActionResult.noop('No pricing changes')

        failure_message = ACTION_MESSAGES['update_line_pricing'][1]

        try:
            vendor_cost = to_money(pending[VENDOR_COST]) if VENDOR_COST in pending else line.vendor_cost
            customer_price = to_money(pending[CUSTOMER_PRICE]) if CUSTOMER_PRICE in pending else line.customer_price
        except ValidationError as e:
            self.errors[line.id] = e.errors
            return ActionResult.failure(ActionKind.VALIDATION, failure_message, e.errors)

        errors = validate_line_pricing(line.product_id or line.id, vendor_cost, customer_price)
        if errors:
            self.errors[line.id] = errors
            return ActionResult.failure(ActionKind.VALIDATION, failure_message, errors)

        result = self.workflow.update_line_pricing(line.id, vendor_cost, customer_price)

        if result.success:
            self.scratch.pop(line.id, None)
            self.errors.pop(line.id, None)
        elif result.kind == ActionKind.VALIDATION:
            self.errors[line.id] = result.errors
        else:
            logger.warning(f"Pricing commit for line {line.id} failed ({result.kind}): {result.message}")

        return result
