"""
Role permission ladder.

Permissions are cumulative by role level: every role holds the permissions of
the roles below it.

    Customer (1000)+        quotes:read:own, quotes:create, quotes:update:own
    Sales Rep (3000)+       quotes:read:assigned, quotes:update:assigned, orders:create
    Sales Manager (4000)+   quotes:read:team, quotes:read:all, quotes:update:all,
                            quotes:approve, quotes:assign
    Admin (5000)+           quotes:delete, and every other check passes

Level thresholds come from settings so they can track the platform's RBAC.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from quote_workflow.config import get_settings


logger = logging.getLogger(__name__)


class Resources:
    QUOTES = 'quotes'
    ORDERS = 'orders'


class Actions:
    READ = 'read'
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'
    APPROVE = 'approve'
    ASSIGN = 'assign'


class Contexts:
    OWN = 'own'
    ASSIGNED = 'assigned'
    TEAM = 'team'
    ALL = 'all'


@dataclass(frozen=True)
class Permission:
    """A (resource, action, context) grant; context None means any context."""
    resource: str
    action: str
    context: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.resource, self.action]
        if self.context:
            parts.append(self.context)
        return ':'.join(parts)


@dataclass(frozen=True)
class RoleLevels:
    """Role level thresholds."""
    customer: int = 1000
    fulfillment_coordinator: int = 2000
    handler: int = 3000
    team_scope: int = 4000
    org_scope: int = 4000
    admin: int = 5000
    super_admin: int = 9999

    @classmethod
    def from_settings(cls, settings) -> "RoleLevels":
        return cls(
            customer=settings.customer_level,
            fulfillment_coordinator=settings.fulfillment_coordinator_level,
            handler=settings.handler_min_level,
            team_scope=settings.team_scope_min_level,
            org_scope=settings.org_scope_min_level,
            admin=settings.admin_min_level,
            super_admin=settings.super_admin_level,
        )


def default_role_levels() -> RoleLevels:
    """Role levels from the current settings."""
    return RoleLevels.from_settings(get_settings())


CUSTOMER_PERMISSIONS = frozenset({
    Permission(Resources.QUOTES, Actions.READ, Contexts.OWN),
    Permission(Resources.QUOTES, Actions.CREATE),
    Permission(Resources.QUOTES, Actions.UPDATE, Contexts.OWN),
})

HANDLER_PERMISSIONS = frozenset({
    Permission(Resources.QUOTES, Actions.READ, Contexts.ASSIGNED),
    Permission(Resources.QUOTES, Actions.UPDATE, Contexts.ASSIGNED),
    Permission(Resources.ORDERS, Actions.CREATE),
})

TEAM_LEAD_PERMISSIONS = frozenset({
    Permission(Resources.QUOTES, Actions.READ, Contexts.TEAM),
    Permission(Resources.QUOTES, Actions.READ, Contexts.ALL),
    Permission(Resources.QUOTES, Actions.UPDATE, Contexts.ALL),
    Permission(Resources.QUOTES, Actions.APPROVE),
    Permission(Resources.QUOTES, Actions.ASSIGN),
})

ADMIN_PERMISSIONS = frozenset({
    Permission(Resources.QUOTES, Actions.DELETE),
})


def permissions_for_role(
    role_level: int,
    levels: Optional[RoleLevels] = None
) -> FrozenSet[Permission]:
    """
    Collect every permission granted at a role level.

    Args:
        role_level: Actor's role level
        levels: Role thresholds (defaults to settings)

    Returns:
        Frozen set of granted permissions
    """
    levels = levels or default_role_levels()
    granted = set()

    if role_level >= levels.customer:
        granted |= CUSTOMER_PERMISSIONS
    if role_level >= levels.handler:
        granted |= HANDLER_PERMISSIONS
    if role_level >= levels.team_scope:
        granted |= TEAM_LEAD_PERMISSIONS
    if role_level >= levels.admin:
        granted |= ADMIN_PERMISSIONS

    return frozenset(granted)


def has_permission(
    role_level: int,
    resource: str,
    action: str,
    context: Optional[str] = None,
    levels: Optional[RoleLevels] = None
) -> bool:
    """
    Check a single permission for a role level.

    A check passes on an exact grant, a context-free grant for the same
    resource and action, or an 'all' grant. Admins pass every check.

    Example:
        >>> has_permission(4000, Resources.QUOTES, Actions.UPDATE, Contexts.OWN)
        True
    """
    levels = levels or default_role_levels()
    if role_level >= levels.admin:
        return True

    granted = permissions_for_role(role_level, levels)
    return (
        Permission(resource, action, context) in granted
        or Permission(resource, action) in granted
        or Permission(resource, action, Contexts.ALL) in granted
    )


def has_minimum_role(role_level: int, min_level: int) -> bool:
    return role_level >= min_level
