"""
Quote lifecycle status machine.

QUOTE STATUSES (6 total):
0. Unread    - Submitted by customer, not yet reviewed by staff
1. Read      - Reviewed by staff, pricing in progress
2. Approved  - Pricing approved, quote sent to customer
3. Converted - Customer accepted, converted to order [terminal]
4. Rejected  - Declined by staff or customer [terminal]
5. Expired   - Validity period passed without action [terminal]

TRANSITION RULES:
1. Unread   -> Read | Rejected
2. Read     -> Approved | Rejected
3. Approved -> Converted | Rejected
4. Terminal statuses never move
5. Expired is never set explicitly; it is derived from valid_until on read
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional

from quote_workflow.models.quote import QuoteStatus
from quote_workflow.utils.error_handler import TransformationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusMetadata:
    """Display metadata for a quote status."""
    display: str
    variant: str
    description: str
    needs_attention: bool = False


STATUS_METADATA: Dict[QuoteStatus, StatusMetadata] = {
    QuoteStatus.UNREAD: StatusMetadata(
        display='Unread',
        variant='warning',
        description='Quote request has not been reviewed by staff yet',
        needs_attention=True,
    ),
    QuoteStatus.READ: StatusMetadata(
        display='Read',
        variant='info',
        description='Quote request has been reviewed by staff',
    ),
    QuoteStatus.APPROVED: StatusMetadata(
        display='Approved',
        variant='success',
        description='Staff approved pricing, quote sent to customer',
    ),
    QuoteStatus.CONVERTED: StatusMetadata(
        display='Converted',
        variant='success',
        description='Customer accepted, quote converted to order',
    ),
    QuoteStatus.REJECTED: StatusMetadata(
        display='Rejected',
        variant='error',
        description='Quote declined by staff or customer',
    ),
    QuoteStatus.EXPIRED: StatusMetadata(
        display='Expired',
        variant='warning',
        description='Quote passed validity period without action',
    ),
}

_missing_metadata = set(QuoteStatus) - set(STATUS_METADATA)
if _missing_metadata:
    raise RuntimeError(f"Status metadata missing for: {sorted(_missing_metadata)}")


class QuoteStatusLogic:
    """Quote status transitions and lazy expiry."""

    TRANSITIONS: Dict[QuoteStatus, FrozenSet[QuoteStatus]] = {
        QuoteStatus.UNREAD: frozenset({QuoteStatus.READ, QuoteStatus.REJECTED}),
        QuoteStatus.READ: frozenset({QuoteStatus.APPROVED, QuoteStatus.REJECTED}),
        QuoteStatus.APPROVED: frozenset({QuoteStatus.CONVERTED, QuoteStatus.REJECTED}),
        QuoteStatus.CONVERTED: frozenset(),
        QuoteStatus.REJECTED: frozenset(),
        QuoteStatus.EXPIRED: frozenset(),
    }

    TERMINAL_STATUSES = frozenset({
        QuoteStatus.CONVERTED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
    })

    @staticmethod
    def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
        """
        Check whether moving from current to target is a legal transition.

        Args:
            current: Current status
            target: Requested status

        Returns:
            True if the transition is legal
        """
        allowed = target in QuoteStatusLogic.TRANSITIONS.get(current, frozenset())
        if not allowed:
            logger.debug(f"Blocking transition '{current.name}' -> '{target.name}'")
        return allowed

    @staticmethod
    def is_terminal(status: QuoteStatus) -> bool:
        return status in QuoteStatusLogic.TERMINAL_STATUSES

    @staticmethod
    def effective_status(
        status: QuoteStatus,
        valid_until: Optional[datetime],
        now: datetime
    ) -> QuoteStatus:
        """
        Status as seen at `now`, with expiry applied lazily.

        A non-terminal quote whose validity deadline has passed reads as
        Expired. The stored status is not touched.

        Args:
            status: Stored status
            valid_until: Validity deadline (None means no deadline)
            now: Evaluation time

        Returns:
            Effective status
        """
        if valid_until is None or QuoteStatusLogic.is_terminal(status):
            return status
        if now > valid_until:
            return QuoteStatus.EXPIRED
        return status


def get_metadata(status: QuoteStatus) -> StatusMetadata:
    return STATUS_METADATA[status]


def needs_review(status: QuoteStatus) -> bool:
    """True if the status requires staff attention."""
    return STATUS_METADATA[status].needs_attention


def statuses_needing_attention() -> List[QuoteStatus]:
    return [status for status, meta in STATUS_METADATA.items() if meta.needs_attention]


def is_valid_status(value: Any) -> bool:
    """True if value is a known wire status."""
    if isinstance(value, bool):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    try:
        QuoteStatus(int(value))
    except (TypeError, ValueError):
        return False
    return True


def parse_status(value: Any) -> QuoteStatus:
    """
    Parse a wire status value.

    Raises:
        TransformationError: If the value is not a known status
    """
    if not is_valid_status(value):
        raise TransformationError(f"Unknown quote status: {value!r}")
    return QuoteStatus(int(value))
