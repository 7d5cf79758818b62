"""
Capability resolver.

Maps (actor role, relationship to quote, effective quote status) to the set
of actions the actor may take. Every rule is an independent OR over the
relationship paths; no rule depends on another rule's result except
can_mark_read, can_reject, can_submit_for_approval and can_edit_pricing,
which narrow can_update by status.

Capability sets are derived per (actor, quote) pair and never cached beyond
that pair.
"""

import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import List, Optional

from quote_workflow.models.quote import Actor, Quote, QuoteStatus
from quote_workflow.utils.date_utils import utc_now
from quote_workflow.workflow.permissions import (
    Actions,
    Contexts,
    Resources,
    RoleLevels,
    default_role_levels,
    has_minimum_role,
    has_permission,
)
from quote_workflow.workflow.relationships import (
    NO_RELATIONSHIP,
    RelationshipContext,
    classify_relationship,
)
from quote_workflow.workflow.status_machine import QuoteStatusLogic


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapabilitySet:
    """What an actor may do with one quote."""
    can_view: bool = False
    can_update: bool = False
    can_mark_read: bool = False
    can_approve: bool = False
    can_reject: bool = False
    can_assign: bool = False
    can_convert: bool = False
    can_delete: bool = False
    can_annotate: bool = False
    can_view_history: bool = False
    can_submit_for_approval: bool = False
    can_edit_pricing: bool = False
    relationship: RelationshipContext = NO_RELATIONSHIP

    @property
    def is_own(self) -> bool:
        return self.relationship.is_own

    @property
    def is_assigned(self) -> bool:
        return self.relationship.is_assigned

    @property
    def is_team_scope(self) -> bool:
        return self.relationship.is_team_scope

    @property
    def is_org_scope(self) -> bool:
        return self.relationship.is_org_scope

    def granted(self) -> List[str]:
        """Names of the capabilities that are granted."""
        return [
            f.name for f in fields(self)
            if f.name.startswith('can_') and getattr(self, f.name)
        ]

    def to_dict(self) -> dict:
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self) if f.name.startswith('can_')
        }
        result.update({
            'is_own': self.is_own,
            'is_assigned': self.is_assigned,
            'is_team_scope': self.is_team_scope,
            'is_org_scope': self.is_org_scope,
        })
        return result


NO_CAPABILITIES = CapabilitySet()


def build_capability_set(
    role_level: int,
    relationship: RelationshipContext,
    status: QuoteStatus,
    levels: Optional[RoleLevels] = None
) -> CapabilitySet:
    """
    Apply the capability rules to an already classified relationship.

    Args:
        role_level: Actor's role level
        relationship: Actor's relationship to the quote
        status: Effective quote status
        levels: Role thresholds (defaults to settings)

    Returns:
        CapabilitySet for the pair
    """
    levels = levels or default_role_levels()

    def allowed(resource: str, action: str, context: Optional[str] = None) -> bool:
        return has_permission(role_level, resource, action, context, levels)

    can_view = (
        (relationship.is_own and allowed(Resources.QUOTES, Actions.READ, Contexts.OWN))
        or (relationship.is_assigned and allowed(Resources.QUOTES, Actions.READ, Contexts.ASSIGNED))
        or (relationship.is_team_scope and allowed(Resources.QUOTES, Actions.READ, Contexts.TEAM))
        or (relationship.is_org_scope and allowed(Resources.QUOTES, Actions.READ, Contexts.ALL))
    )

    # Team scope alone never grants update
    can_update = (
        (relationship.is_own and allowed(Resources.QUOTES, Actions.UPDATE, Contexts.OWN))
        or (relationship.is_assigned and allowed(Resources.QUOTES, Actions.UPDATE, Contexts.ASSIGNED))
        or allowed(Resources.QUOTES, Actions.UPDATE, Contexts.ALL)
    )

    can_approve_any = allowed(Resources.QUOTES, Actions.APPROVE)
    is_handler = has_minimum_role(role_level, levels.handler)

    return CapabilitySet(
        can_view=can_view,
        can_update=can_update,
        can_mark_read=can_update and status == QuoteStatus.UNREAD,
        can_approve=can_approve_any and status == QuoteStatus.READ,
        can_reject=can_update and status in (QuoteStatus.UNREAD, QuoteStatus.READ),
        can_assign=allowed(Resources.QUOTES, Actions.ASSIGN),
        can_convert=allowed(Resources.ORDERS, Actions.CREATE) and status == QuoteStatus.APPROVED,
        can_delete=allowed(Resources.QUOTES, Actions.DELETE),
        can_annotate=is_handler,
        can_view_history=is_handler,
        can_submit_for_approval=(
            can_update
            and status == QuoteStatus.READ
            and not can_approve_any
            and is_handler
        ),
        can_edit_pricing=can_update and status == QuoteStatus.READ and is_handler,
        relationship=relationship,
    )


def resolve_capabilities(
    actor: Optional[Actor],
    quote: Optional[Quote],
    now: Optional[datetime] = None,
    levels: Optional[RoleLevels] = None
) -> CapabilitySet:
    """
    Resolve the capability set for an actor on a quote.

    Rules are evaluated against the effective status, so a quote whose
    validity deadline has passed resolves as Expired.

    Args:
        actor: Current actor, or None
        quote: Quote, or None
        now: Evaluation time (defaults to current UTC time)
        levels: Role thresholds (defaults to settings)

    Returns:
        CapabilitySet; all-false when actor or quote is missing
    """
    if actor is None or quote is None:
        return NO_CAPABILITIES

    levels = levels or default_role_levels()
    now = now or utc_now()

    relationship = classify_relationship(actor, quote, levels)
    status = QuoteStatusLogic.effective_status(quote.status, quote.valid_until, now)

    capabilities = build_capability_set(actor.role_level, relationship, status, levels)
    logger.debug(
        f"Capabilities for actor {actor.id} on quote {quote.id} "
        f"({status.name}): {capabilities.granted()}"
    )
    return capabilities
