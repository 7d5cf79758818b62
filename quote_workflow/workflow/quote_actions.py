"""
Quote workflow orchestrator.

One QuoteWorkflow is the interaction surface for one quote and one actor.
Every action follows the same sequence:

1. Busy gate      - a second action while one is in flight is rejected, not queued
2. Capability     - calling an action that is not offered raises ActionNotPermittedError
3. Domain guard   - legal transition, ready-to-send, input validation
4. Boundary call  - full updated record sent to the platform
5. Refresh        - quote re-fetched and capabilities re-derived

Boundary failures are returned as ActionResult; they never propagate.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from quote_workflow.clients.quote_client import QuoteClient
from quote_workflow.models.activity import HistoryEntry
from quote_workflow.models.quote import Actor, Quote, QuoteStatus
from quote_workflow.pricing.calculator import is_ready_to_send, to_money, validate_line_pricing
from quote_workflow.utils.date_utils import normalize_identifier, utc_now
from quote_workflow.utils.error_handler import (
    ActionNotPermittedError,
    ErrorContext,
    QuoteNotFoundError,
    QuoteWorkflowError,
    ValidationError,
)
from quote_workflow.workflow.capabilities import NO_CAPABILITIES, CapabilitySet, resolve_capabilities
from quote_workflow.workflow.permissions import RoleLevels, default_role_levels
from quote_workflow.workflow.status_machine import QuoteStatusLogic


logger = logging.getLogger(__name__)


class ActionKind:
    SUCCESS = 'success'
    NOOP = 'noop'
    VALIDATION = 'validation'
    TRANSIENT = 'transient'
    NOT_FOUND = 'not_found'
    BUSY = 'busy'


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a workflow action."""
    success: bool
    message: str
    kind: str = ActionKind.SUCCESS
    data: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, message: str, **data) -> "ActionResult":
        return cls(success=True, message=message, kind=ActionKind.SUCCESS, data=data)

    @classmethod
    def noop(cls, message: str) -> "ActionResult":
        return cls(success=True, message=message, kind=ActionKind.NOOP)

    @classmethod
    def failure(cls, kind: str, message: str, errors: Optional[List[str]] = None) -> "ActionResult":
        return cls(success=False, message=message, kind=kind, errors=list(errors or []))


# action -> (success message, failure message)
ACTION_MESSAGES = {
    'mark_read': ('Quote marked as read', 'Failed to mark quote as read'),
    'approve': ('Quote approved successfully', 'Failed to approve quote'),
    'reject': ('Quote rejected', 'Failed to reject quote'),
    'assign': ('Quote assigned successfully', 'Failed to assign quote'),
    'unassign': ('Quote unassigned', 'Failed to unassign quote'),
    'convert_to_order': ('Order created successfully', 'Failed to create order from quote'),
    'update_line_pricing': ('Pricing updated', 'Failed to update pricing'),
}

NOT_READY_TO_SEND = 'Every line item needs a customer price greater than zero before approval'
HANDLER_REQUIRED = 'Handler ID is required'


class QuoteWorkflow:
    """Workflow actions for one quote and one actor."""

    def __init__(
        self,
        quote_client: QuoteClient,
        actor: Actor,
        quote: Quote,
        levels: Optional[RoleLevels] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize a workflow session.

        Args:
            quote_client: Platform API client
            actor: Current actor
            quote: Quote as last fetched
            levels: Role thresholds (defaults to settings)
            clock: Source of the current time
        """
        self.quote_client = quote_client
        self.actor = actor
        self.quote = quote
        self.levels = levels or default_role_levels()
        self.clock = clock
        self.closed = False
        self._lock = threading.Lock()
        self.capabilities: CapabilitySet = self._derive_capabilities()

    @classmethod
    def load(
        cls,
        quote_client: QuoteClient,
        quote_id: str,
        actor: Optional[Actor] = None,
        levels: Optional[RoleLevels] = None
    ) -> "QuoteWorkflow":
        """
        Fetch the actor (if not given) and the quote, then open a session.

        Raises:
            QuoteNotFoundError: If the quote does not exist
            QuoteAPIError: If the platform cannot be reached
        """
        actor = actor or quote_client.get_current_actor()
        quote = quote_client.get_quote(quote_id)
        return cls(quote_client, actor, quote, levels=levels)

    # ========================================================================
    # State
    # ========================================================================

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    @property
    def effective_status(self) -> QuoteStatus:
        return QuoteStatusLogic.effective_status(
            self.quote.status, self.quote.valid_until, self.clock()
        )

    def _derive_capabilities(self) -> CapabilitySet:
        return resolve_capabilities(self.actor, self.quote, now=self.clock(), levels=self.levels)

    def available_actions(self) -> List[str]:
        """Actions currently offered to the actor, in display order."""
        if self.closed:
            return []

        caps = self.capabilities
        actions = []
        if caps.can_mark_read:
            actions.append('mark_read')
        if caps.can_edit_pricing:
            actions.append('update_line_pricing')
        if caps.can_approve:
            actions.append('approve')
        if caps.can_submit_for_approval:
            actions.append('submit_for_approval')
        if caps.can_reject:
            actions.append('reject')
        if caps.can_assign:
            actions.append('assign')
            if self.quote.assigned_handler_id:
                actions.append('unassign')
        if caps.can_convert:
            actions.append('convert_to_order')
        return actions

    def _commit(self, updated: Quote) -> None:
        """
        Adopt an updated record, then refresh from the platform.

        Raises:
            QuoteNotFoundError: If the quote disappeared before the refresh
        """
        self.quote = updated
        try:
            self.quote = self.quote_client.get_quote(updated.id)
        except QuoteNotFoundError:
            logger.warning(f"Quote {updated.id} vanished after update, closing session")
            raise
        except QuoteWorkflowError as e:
            logger.warning(f"Refresh of quote {updated.id} failed, keeping updated record: {e}")
        self.capabilities = self._derive_capabilities()

    def _refuse_transition(self, action: str, target: QuoteStatus) -> Optional[ActionResult]:
        """Validation failure if the quote cannot move to target, else None."""
        current = self.effective_status
        if QuoteStatusLogic.can_transition(current, target):
            return None
        return ActionResult.failure(
            ActionKind.VALIDATION,
            ACTION_MESSAGES[action][1],
            [f"Cannot move quote from {current.name} to {target.name}"]
        )

    def _execute(
        self,
        action: str,
        permitted: bool,
        perform: Callable[[], ActionResult]
    ) -> ActionResult:
        """
        Run one action through the busy gate, capability check and boundary
        error mapping.

        Raises:
            ActionNotPermittedError: If the actor lacks the capability
        """
        success_message, failure_message = ACTION_MESSAGES[action]

        if self.closed:
            return ActionResult.failure(
                ActionKind.NOT_FOUND, f"Quote {self.quote.id} no longer exists"
            )

        if not self._lock.acquire(blocking=False):
            logger.info(f"Rejecting '{action}' on quote {self.quote.id}: another action is in progress")
            return ActionResult.failure(ActionKind.BUSY, 'Another action is in progress')

        try:
            if not permitted:
                logger.error(f"Actor {self.actor.id} attempted '{action}' on quote {self.quote.id} without capability")
                raise ActionNotPermittedError(action, self.quote.id)

            try:
                with ErrorContext(action, quote_id=self.quote.id, actor_id=self.actor.id):
                    return perform()
            except QuoteNotFoundError:
                self.closed = True
                self.capabilities = NO_CAPABILITIES
                return ActionResult.failure(
                    ActionKind.NOT_FOUND, f"Quote {self.quote.id} no longer exists"
                )
            except ValidationError as e:
                return ActionResult.failure(ActionKind.VALIDATION, failure_message, e.errors)
            except QuoteWorkflowError as e:
                logger.error(f"{failure_message} ({self.quote.id}): {e}")
                return ActionResult.failure(ActionKind.TRANSIENT, failure_message, [str(e)])
        finally:
            self._lock.release()

    # ========================================================================
    # Status actions
    # ========================================================================

    def mark_read(self) -> ActionResult:
        """Unread -> Read. A quote that is no longer Unread is a no-op."""
        def perform() -> ActionResult:
            if self.effective_status != QuoteStatus.UNREAD:
                logger.debug(f"Quote {self.quote.id} already read")
                return ActionResult.noop('Quote already marked as read')
            refused = self._refuse_transition('mark_read', QuoteStatus.READ)
            if refused:
                return refused
            self._commit(self.quote_client.update_quote(self.quote.with_status(QuoteStatus.READ)))
            return ActionResult.ok(ACTION_MESSAGES['mark_read'][0])

        return self._execute('mark_read', self.capabilities.can_update, perform)

    def approve(self) -> ActionResult:
        """Read -> Approved, only when every line is priced."""
        def perform() -> ActionResult:
            if not is_ready_to_send(self.quote):
                return ActionResult.failure(
                    ActionKind.VALIDATION, ACTION_MESSAGES['approve'][1], [NOT_READY_TO_SEND]
                )
            refused = self._refuse_transition('approve', QuoteStatus.APPROVED)
            if refused:
                return refused
            self._commit(self.quote_client.update_quote(self.quote.with_status(QuoteStatus.APPROVED)))
            return ActionResult.ok(ACTION_MESSAGES['approve'][0])

        return self._execute('approve', self.capabilities.can_approve, perform)

    def reject(self) -> ActionResult:
        """Unread/Read -> Rejected."""
        def perform() -> ActionResult:
            refused = self._refuse_transition('reject', QuoteStatus.REJECTED)
            if refused:
                return refused
            self._commit(self.quote_client.update_quote(self.quote.with_status(QuoteStatus.REJECTED)))
            return ActionResult.ok(ACTION_MESSAGES['reject'][0])

        return self._execute('reject', self.capabilities.can_reject, perform)

    def convert_to_order(self) -> ActionResult:
        """
        Approved -> Converted through the order-creation call.

        On failure the quote stays Approved.
        """
        def perform() -> ActionResult:
            refused = self._refuse_transition('convert_to_order', QuoteStatus.CONVERTED)
            if refused:
                return refused
            order_id = self.quote_client.create_order_from_quote(self.quote.id)
            self._commit(self.quote.with_status(QuoteStatus.CONVERTED))
            return ActionResult.ok(ACTION_MESSAGES['convert_to_order'][0], order_id=order_id)

        return self._execute('convert_to_order', self.capabilities.can_convert, perform)

    # ========================================================================
    # Assignment
    # ========================================================================

    def assign(self, handler_id: Any) -> ActionResult:
        """Assign the quote to a handler and stamp assigned_at."""
        def perform() -> ActionResult:
            handler = normalize_identifier(handler_id)
            if handler is None:
                return ActionResult.failure(
                    ActionKind.VALIDATION, ACTION_MESSAGES['assign'][1], [HANDLER_REQUIRED]
                )
            self._commit(self.quote_client.update_quote(
                self.quote.with_assignment(handler, self.clock())
            ))
            return ActionResult.ok(ACTION_MESSAGES['assign'][0], handler_id=handler)

        return self._execute('assign', self.capabilities.can_assign, perform)

    def unassign(self) -> ActionResult:
        """Clear the assigned handler and assigned_at."""
        def perform() -> ActionResult:
            if not self.quote.assigned_handler_id:
                return ActionResult.noop('Quote is not assigned')
            self._commit(self.quote_client.update_quote(self.quote.with_assignment(None, None)))
            return ActionResult.ok(ACTION_MESSAGES['unassign'][0])

        return self._execute('unassign', self.capabilities.can_assign, perform)

    # ========================================================================
    # Pricing
    # ========================================================================

    def update_line_pricing(
        self,
        line_id: Any,
        vendor_cost: Any,
        customer_price: Any
    ) -> ActionResult:
        """
        Set vendor cost and customer price on one line.

        Args:
            line_id: Line id on this quote (product ids are not line keys)
            vendor_cost: New vendor cost (None clears it)
            customer_price: New customer price (None clears it)
        """
        def perform() -> ActionResult:
            key = normalize_identifier(line_id)
            cost: Optional[Decimal] = to_money(vendor_cost)
            price: Optional[Decimal] = to_money(customer_price)

            errors = validate_line_pricing(key, cost, price)
            if errors:
                return ActionResult.failure(
                    ActionKind.VALIDATION, ACTION_MESSAGES['update_line_pricing'][1], errors
                )

            if self.quote.find_line(key) is None:
                return ActionResult.failure(
                    ActionKind.VALIDATION,
                    ACTION_MESSAGES['update_line_pricing'][1],
                    [f"Line item {key} not found on quote"]
                )

            self._commit(self.quote_client.update_quote(
                self.quote.with_line_pricing(key, cost, price)
            ))
            return ActionResult.ok(ACTION_MESSAGES['update_line_pricing'][0], line_id=key)

        return self._execute('update_line_pricing', self.capabilities.can_edit_pricing, perform)

    # ========================================================================
    # Read-only projections
    # ========================================================================

    def history(self) -> List[HistoryEntry]:
        """Activity history; empty unless the actor may view it."""
        if self.closed or not self.capabilities.can_view_history:
            return []
        try:
            return self.quote_client.get_quote_activity(self.quote.id)
        except QuoteWorkflowError as e:
            logger.error(f"Failed to load history for quote {self.quote.id}: {e}")
            return []

    def sales_team(self) -> List[Actor]:
        """Handlers the quote can be assigned to; empty unless the actor may assign."""
        if self.closed or not self.capabilities.can_assign:
            return []
        try:
            return self.quote_client.get_accounts_by_role(
                [self.levels.handler, self.levels.team_scope]
            )
        except QuoteWorkflowError as e:
            logger.error(f"Failed to load sales team: {e}")
            return []
