"""
Test capability resolution for (actor, quote) pairs.
"""

from datetime import timedelta

import pytest

from quote_workflow.models.quote import Actor, QuoteStatus
from quote_workflow.workflow.capabilities import (
    NO_CAPABILITIES,
    build_capability_set,
    resolve_capabilities,
)
from quote_workflow.workflow.relationships import RelationshipContext


class TestAbsentInputs:
    """Test that missing inputs never grant anything."""

    def test_absent_actor(self, quote_factory, now, levels):
        """Test: no actor -> every capability false"""
        caps = resolve_capabilities(None, quote_factory(), now, levels)
        assert caps == NO_CAPABILITIES
        assert caps.granted() == []

    def test_absent_quote(self, admin_actor, now, levels):
        """Test: no quote -> every capability false, even for admins"""
        caps = resolve_capabilities(admin_actor, None, now, levels)
        assert caps.granted() == []
        assert not caps.is_own and not caps.is_org_scope


class TestScenarios:
    """Test the reference actor/quote scenarios."""

    def test_customer_viewing_own_unread_quote(self, quote_factory, customer_actor, now, levels):
        """Test: customer 300 on quote owned by 300 at Unread"""
        quote = quote_factory(status=QuoteStatus.UNREAD, customer_id=300, assigned_handler_id=None)
        caps = resolve_capabilities(customer_actor, quote, now, levels)

        assert caps.is_own is True
        assert caps.can_view is True
        assert caps.can_update is True
        assert caps.can_approve is False
        assert caps.can_annotate is False
        assert caps.can_view_history is False
        assert caps.can_edit_pricing is False

    def test_assigned_handler_at_approved(self, quote_factory, sales_rep_actor, now, levels):
        """Test: assigned handler on an Approved quote can convert only"""
        caps = resolve_capabilities(sales_rep_actor, quote_factory(status=QuoteStatus.APPROVED), now, levels)

        assert caps.is_assigned is True
        assert caps.can_convert is True
        assert caps.can_mark_read is False
        assert caps.can_reject is False

    def test_team_lead_on_unrelated_read_quote(self, quote_factory, sales_manager_actor, now, levels):
        """Test: team lead with no ownership or assignment at Read"""
        quote = quote_factory(customer_id='999', assigned_handler_id='201')
        caps = resolve_capabilities(sales_manager_actor, quote, now, levels)

        assert caps.is_own is False
        assert caps.is_assigned is False
        assert caps.can_view is True
        assert caps.can_approve is True
        assert caps.can_assign is True
        assert caps.can_delete is False


class TestCapabilityRules:
    """Test individual capability rules."""

    @pytest.mark.parametrize("status", list(QuoteStatus))
    def test_mark_read_requires_update_and_unread(self, quote_factory, sales_rep_actor, now, levels, status):
        """Test: can_mark_read iff can_update and status is Unread"""
        caps = resolve_capabilities(sales_rep_actor, quote_factory(status=status), now, levels)
        assert caps.can_mark_read == (caps.can_update and status == QuoteStatus.UNREAD)

    @pytest.mark.parametrize("status", list(QuoteStatus))
    def test_approve_ignores_relationship(self, quote_factory, now, levels, status):
        """Test: can_approve iff approve permission and status Read"""
        unrelated_manager = Actor(id='999', role_level=4000)
        caps = resolve_capabilities(
            unrelated_manager,
            quote_factory(status=status, customer_id='1', assigned_handler_id=None),
            now,
            levels
        )
        assert caps.can_approve == (status == QuoteStatus.READ)

    def test_assigned_handler_cannot_approve(self, quote_factory, sales_rep_actor, now, levels):
        """Test: assignment does not grant approval"""
        caps = resolve_capabilities(sales_rep_actor, quote_factory(), now, levels)
        assert caps.can_approve is False
        assert caps.can_submit_for_approval is True
        assert caps.can_edit_pricing is True

    def test_unassigned_rep_sees_nothing(self, quote_factory, other_sales_rep_actor, now, levels):
        """Test: rep neither assigned nor owner cannot view or update"""
        caps = resolve_capabilities(other_sales_rep_actor, quote_factory(), now, levels)
        assert caps.can_view is False
        assert caps.can_update is False
        assert caps.can_annotate is True

    def test_team_scope_alone_does_not_grant_update(self, levels):
        """Test: update comes from 'update all', not from team scope"""
        relationship = RelationshipContext(is_team_scope=True)
        caps = build_capability_set(3000, relationship, QuoteStatus.READ, levels)
        assert caps.is_team_scope is True
        assert caps.can_update is False

    def test_manager_does_not_submit_for_approval(self, quote_factory, sales_manager_actor, now, levels):
        """Test: approvers never need the hand-off hint"""
        caps = resolve_capabilities(sales_manager_actor, quote_factory(), now, levels)
        assert caps.can_submit_for_approval is False

    def test_reject_statuses(self, quote_factory, sales_manager_actor, now, levels):
        """Test: reject offered only at Unread and Read"""
        for status in QuoteStatus:
            caps = resolve_capabilities(sales_manager_actor, quote_factory(status=status), now, levels)
            assert caps.can_reject == (status in (QuoteStatus.UNREAD, QuoteStatus.READ))

    def test_admin_can_delete(self, quote_factory, admin_actor, now, levels):
        """Test: only the admin tier deletes"""
        assert resolve_capabilities(admin_actor, quote_factory(), now, levels).can_delete is True

    def test_expired_quote_resolves_as_expired(self, quote_factory, sales_manager_actor, now, levels):
        """Test: rules use the effective status"""
        quote = quote_factory(valid_until=now - timedelta(hours=1))
        caps = resolve_capabilities(sales_manager_actor, quote, now, levels)
        assert caps.can_view is True
        assert caps.can_approve is False
        assert caps.can_reject is False
        assert caps.can_edit_pricing is False

    def test_to_dict_includes_relationship(self, quote_factory, sales_rep_actor, now, levels):
        """Test: dict form carries capabilities and relationship flags"""
        data = resolve_capabilities(sales_rep_actor, quote_factory(), now, levels).to_dict()
        assert data['is_assigned'] is True
        assert data['can_view'] is True
        assert 'relationship' not in data
