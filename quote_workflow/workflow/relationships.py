"""
Relationship classification between an actor and a quote.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from quote_workflow.models.quote import Actor, Quote
from quote_workflow.workflow.permissions import RoleLevels, default_role_levels


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationshipContext:
    """How an actor relates to a quote."""
    is_own: bool = False
    is_assigned: bool = False
    is_team_scope: bool = False
    is_org_scope: bool = False


NO_RELATIONSHIP = RelationshipContext()


def _text_matches(left: Optional[str], right: Optional[str], casefold: bool = False) -> bool:
    """Equality of two non-empty strings; empty values never match."""
    if not left or not right:
        return False
    left, right = left.strip(), right.strip()
    if not left or not right:
        return False
    if casefold:
        return left.casefold() == right.casefold()
    return left == right


def is_own_quote(actor: Actor, quote: Quote) -> bool:
    """
    Check whether the quote belongs to the actor's customer account.

    Customer ids decide when both sides carry one. Otherwise the contact
    email is compared, then the company name; the first match wins.
    """
    if actor.customer_id and quote.customer_id:
        return actor.customer_id == quote.customer_id

    if _text_matches(actor.email, quote.email, casefold=True):
        return True

    return _text_matches(actor.company_name, quote.company_name)


def is_assigned_handler(actor: Actor, quote: Quote) -> bool:
    """True if the actor is the quote's assigned handler."""
    if not quote.assigned_handler_id:
        return False
    return actor.id == quote.assigned_handler_id


def is_team_scope(role_level: int, levels: RoleLevels) -> bool:
    return role_level >= levels.team_scope


def is_org_scope(role_level: int, levels: RoleLevels) -> bool:
    return role_level >= levels.org_scope


def classify_relationship(
    actor: Optional[Actor],
    quote: Optional[Quote],
    levels: Optional[RoleLevels] = None
) -> RelationshipContext:
    """
    Classify the actor's relationship to a quote.

    Args:
        actor: Current actor (None when unauthenticated)
        quote: Quote being viewed (None while loading)
        levels: Role thresholds (defaults to settings)

    Returns:
        RelationshipContext; all flags False when either side is missing
    """
    if actor is None or quote is None:
        return NO_RELATIONSHIP

    levels = levels or default_role_levels()

    context = RelationshipContext(
        is_own=is_own_quote(actor, quote),
        is_assigned=is_assigned_handler(actor, quote),
        is_team_scope=is_team_scope(actor.role_level, levels),
        is_org_scope=is_org_scope(actor.role_level, levels),
    )
    logger.debug(f"Actor {actor.id} on quote {quote.id}: {context}")
    return context
