"""
Quote transformer.
Maps platform API quote payloads (camelCase JSON) to the Quote model and back.

FIELD MAPPING:
1. id                  -> id
2. status              -> status (integer wire value, see QuoteStatus)
3. priority            -> priority (integer or name, defaults to Standard)
4. createdAt           -> created_at
5. validUntil          -> valid_until
6. assignedSalesRepId  -> assigned_handler_id
7. assignedAt          -> assigned_at
8. customerId          -> customer_id
9. firstName/lastName/emailAddress/phoneNumber/companyName -> contact
10. description        -> description
11. products           -> line_items

The reverse mapping emits the full record; the platform replaces the quote
wholesale on update.
"""

import logging
from typing import Any, Dict

from quote_workflow.models.quote import Quote, QuoteContact, QuotePriority
from quote_workflow.transformers.base_transformer import BaseTransformer
from quote_workflow.transformers.line_item_transformer import LineItemTransformer
from quote_workflow.utils.date_utils import parse_api_datetime, to_api_datetime, utc_now
from quote_workflow.utils.error_handler import TransformationError
from quote_workflow.workflow.status_machine import parse_status


logger = logging.getLogger(__name__)


class QuoteTransformer(BaseTransformer):
    """Transform platform quote payloads to Quote models and back."""

    REQUIRED_FIELDS = ['id', 'status']

    def __init__(self, line_item_transformer: LineItemTransformer = None):
        self.line_item_transformer = line_item_transformer or LineItemTransformer()

    def to_model(self, payload: Dict[str, Any]) -> Quote:
        """
        Transform a quote payload to a Quote.

        Args:
            payload: Quote payload from the platform API

        Returns:
            Quote

        Raises:
            TransformationError: If required fields are missing, the status is
                unknown, or a field fails validation
        """
        if not isinstance(payload, dict):
            raise TransformationError(f"Quote payload must be an object, got {type(payload).__name__}")

        if not self.validate_required_fields(payload, self.REQUIRED_FIELDS):
            raise TransformationError(f"Missing required fields in quote {payload.get('id')}")

        created_at = parse_api_datetime(payload.get('createdAt'))
        if created_at is None:
            logger.warning(f"Quote {payload['id']} has no createdAt, using current time")
            created_at = utc_now()

        contact = self.build(
            QuoteContact,
            'quote contact',
            first_name=self.safe_get(payload, 'firstName', ''),
            last_name=self.safe_get(payload, 'lastName', ''),
            email=self.first_of(payload, 'emailAddress', 'email'),
            phone=self.first_of(payload, 'phoneNumber', 'phone'),
            company_name=self.safe_get(payload, 'companyName'),
        )

        line_items = tuple(
            self.line_item_transformer.to_model(product)
            for product in self.safe_get(payload, 'products', [])
        )

        quote = self.build(
            Quote,
            'quote',
            id=payload['id'],
            status=parse_status(payload['status']),
            priority=self.parse_priority(payload.get('priority')),
            created_at=created_at,
            valid_until=parse_api_datetime(payload.get('validUntil')),
            assigned_handler_id=self.first_of(payload, 'assignedSalesRepId', 'assignedTo'),
            assigned_at=parse_api_datetime(payload.get('assignedAt')),
            customer_id=self.first_of(payload, 'customerId'),
            contact=contact,
            description=self.safe_get(payload, 'description', ''),
            line_items=line_items,
        )

        logger.debug(
            f"Transformed quote {quote.id}: status={quote.status.name}, "
            f"{len(quote.line_items)} line items"
        )
        return quote

    def parse_priority(self, value: Any) -> QuotePriority:
        """Priority from an integer or a name; missing means Standard."""
        if value is None or value == '':
            return QuotePriority.STANDARD
        if isinstance(value, str) and not value.strip().isdigit():
            try:
                return QuotePriority[value.strip().upper()]
            except KeyError:
                raise TransformationError(f"Unknown quote priority: {value!r}")
        try:
            return QuotePriority(int(value))
        except (TypeError, ValueError):
            raise TransformationError(f"Unknown quote priority: {value!r}")

    def to_payload(self, quote: Quote) -> Dict[str, Any]:
        """
        Full quote payload for an update.

        Args:
            quote: Quote to serialize

        Returns:
            Quote payload (camelCase)
        """
        return {
            'id': quote.id,
            'status': int(quote.status),
            'priority': int(quote.priority),
            'createdAt': to_api_datetime(quote.created_at),
            'validUntil': to_api_datetime(quote.valid_until),
            'assignedSalesRepId': quote.assigned_handler_id,
            'assignedAt': to_api_datetime(quote.assigned_at),
            'customerId': quote.customer_id,
            'firstName': quote.contact.first_name,
            'lastName': quote.contact.last_name,
            'emailAddress': quote.contact.email,
            'phoneNumber': quote.contact.phone,
            'companyName': quote.contact.company_name,
            'description': quote.description,
            'products': [
                self.line_item_transformer.to_payload(line)
                for line in quote.line_items
            ],
        }
