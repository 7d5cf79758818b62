"""
Test quote status machine and status metadata.
"""

from datetime import timedelta

import pytest

from quote_workflow.models.quote import QuoteStatus
from quote_workflow.utils.error_handler import TransformationError
from quote_workflow.workflow.status_machine import (
    STATUS_METADATA,
    QuoteStatusLogic,
    get_metadata,
    is_valid_status,
    needs_review,
    parse_status,
    statuses_needing_attention,
)


class TestQuoteStatusLogic:
    """Test status transitions and lazy expiry."""

    def test_terminal_statuses(self):
        """Test: terminal iff Converted, Rejected or Expired"""
        for status in QuoteStatus:
            expected = status in {QuoteStatus.CONVERTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED}
            assert QuoteStatusLogic.is_terminal(status) == expected

    def test_terminal_statuses_have_no_transitions(self):
        """Test: terminal statuses have an empty legal-transition set"""
        for status in QuoteStatusLogic.TERMINAL_STATUSES:
            assert QuoteStatusLogic.TRANSITIONS[status] == frozenset()
            for target in QuoteStatus:
                assert QuoteStatusLogic.can_transition(status, target) is False

    def test_forward_transitions(self):
        """Test: Unread -> Read -> Approved -> Converted"""
        assert QuoteStatusLogic.can_transition(QuoteStatus.UNREAD, QuoteStatus.READ)
        assert QuoteStatusLogic.can_transition(QuoteStatus.READ, QuoteStatus.APPROVED)
        assert QuoteStatusLogic.can_transition(QuoteStatus.APPROVED, QuoteStatus.CONVERTED)

    def test_reject_from_any_open_status(self):
        """Test: Unread, Read and Approved can all be rejected"""
        for status in (QuoteStatus.UNREAD, QuoteStatus.READ, QuoteStatus.APPROVED):
            assert QuoteStatusLogic.can_transition(status, QuoteStatus.REJECTED)

    def test_no_backward_or_skipping_transitions(self):
        """Test: Approved -> Read and Unread -> Approved are illegal"""
        assert not QuoteStatusLogic.can_transition(QuoteStatus.APPROVED, QuoteStatus.READ)
        assert not QuoteStatusLogic.can_transition(QuoteStatus.READ, QuoteStatus.UNREAD)
        assert not QuoteStatusLogic.can_transition(QuoteStatus.UNREAD, QuoteStatus.APPROVED)
        assert not QuoteStatusLogic.can_transition(QuoteStatus.READ, QuoteStatus.CONVERTED)

    def test_expired_is_never_an_explicit_transition(self):
        """Test: no status transitions to Expired directly"""
        for status in QuoteStatus:
            assert not QuoteStatusLogic.can_transition(status, QuoteStatus.EXPIRED)

    def test_effective_status_expires_open_quote(self, now):
        """Test: open quote past valid_until reads as Expired"""
        past = now - timedelta(minutes=1)
        assert QuoteStatusLogic.effective_status(QuoteStatus.READ, past, now) == QuoteStatus.EXPIRED
        assert QuoteStatusLogic.effective_status(QuoteStatus.APPROVED, past, now) == QuoteStatus.EXPIRED

    def test_effective_status_keeps_terminal(self, now):
        """Test: terminal statuses do not expire"""
        past = now - timedelta(days=1)
        assert QuoteStatusLogic.effective_status(QuoteStatus.CONVERTED, past, now) == QuoteStatus.CONVERTED
        assert QuoteStatusLogic.effective_status(QuoteStatus.REJECTED, past, now) == QuoteStatus.REJECTED

    def test_effective_status_without_deadline(self, now):
        """Test: no valid_until means no expiry"""
        assert QuoteStatusLogic.effective_status(QuoteStatus.UNREAD, None, now) == QuoteStatus.UNREAD

    def test_effective_status_before_deadline(self, now):
        """Test: quote still within validity keeps its status"""
        future = now + timedelta(days=3)
        assert QuoteStatusLogic.effective_status(QuoteStatus.READ, future, now) == QuoteStatus.READ


class TestStatusMetadata:
    """Test status display metadata."""

    def test_every_status_has_metadata(self):
        """Test: metadata table covers every status"""
        assert set(STATUS_METADATA) == set(QuoteStatus)

    def test_only_unread_needs_attention(self):
        """Test: Unread is the only status needing attention"""
        assert statuses_needing_attention() == [QuoteStatus.UNREAD]
        assert needs_review(QuoteStatus.UNREAD) is True
        assert needs_review(QuoteStatus.READ) is False

    def test_metadata_values(self):
        """Test: variants and descriptions"""
        assert get_metadata(QuoteStatus.UNREAD).variant == 'warning'
        assert get_metadata(QuoteStatus.READ).variant == 'info'
        assert get_metadata(QuoteStatus.APPROVED).variant == 'success'
        assert get_metadata(QuoteStatus.REJECTED).variant == 'error'
        assert get_metadata(QuoteStatus.CONVERTED).description == 'Customer accepted, quote converted to order'


class TestStatusParsing:
    """Test wire status parsing."""

    @pytest.mark.parametrize("value,expected", [
        (0, QuoteStatus.UNREAD),
        ("1", QuoteStatus.READ),
        (2.0, QuoteStatus.APPROVED),
        (5, QuoteStatus.EXPIRED),
    ])
    def test_parse_known_values(self, value, expected):
        """Test: integer, string and float wire values parse"""
        assert parse_status(value) == expected

    @pytest.mark.parametrize("value", [6, -1, "Approved", None, True, 1.5])
    def test_unknown_values_rejected(self, value):
        """Test: unknown wire values raise TransformationError"""
        assert is_valid_status(value) is False
        with pytest.raises(TransformationError):
            parse_status(value)
