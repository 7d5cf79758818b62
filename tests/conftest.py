"""
Pytest configuration and fixtures for tests.

This module provides shared fixtures and configuration for all test modules.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict
from unittest.mock import Mock

import pytest

from quote_workflow.models.quote import Actor, LineItem, Quote, QuoteContact, QuoteStatus
from quote_workflow.utils.error_handler import QuoteNotFoundError
from quote_workflow.workflow.permissions import RoleLevels
from quote_workflow.workflow.quote_actions import QuoteWorkflow


NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed evaluation time."""
    return NOW


@pytest.fixture
def levels():
    """Default role thresholds."""
    return RoleLevels()


@pytest.fixture
def mock_settings():
    """Mock settings for testing."""
    settings = Mock()
    settings.quote_api_base_url = "https://test.example.com/api"
    settings.quote_api_token = "test_token"
    settings.pricing_api_base_url = None
    settings.effective_pricing_api_base_url = "https://test.example.com/api"
    settings.request_timeout = 10.0
    settings.http_max_retries = 0
    settings.customer_level = 1000
    settings.fulfillment_coordinator_level = 2000
    settings.handler_min_level = 3000
    settings.team_scope_min_level = 4000
    settings.org_scope_min_level = 4000
    settings.admin_min_level = 5000
    settings.super_admin_level = 9999
    settings.margin_healthy_percent = 20.0
    settings.margin_warning_percent = 10.0
    settings.log_level = "INFO"
    settings.environment = "development"
    return settings


# ============================================================================
# Actors
# ============================================================================

@pytest.fixture
def customer_actor():
    """Customer belonging to customer account 300."""
    return Actor(
        id='500',
        role_level=1000,
        customer_id='300',
        email='customer@hospital.com',
        company_name='Test Hospital',
        name='Casey Customer',
    )


@pytest.fixture
def sales_rep_actor():
    """Sales rep (handler) with id 200."""
    return Actor(id=200, role_level=3000, email='rep@medsource.com', name='Riley Rep')


@pytest.fixture
def other_sales_rep_actor():
    """Sales rep not assigned to the sample quote."""
    return Actor(id='201', role_level=3000, email='other.rep@medsource.com', name='Other Rep')


@pytest.fixture
def sales_manager_actor():
    """Sales manager (team lead)."""
    return Actor(id='400', role_level=4000, email='manager@medsource.com', name='Morgan Manager')


@pytest.fixture
def admin_actor():
    """Administrator."""
    return Actor(id='1', role_level=5000, email='admin@medsource.com', name='Avery Admin')


# ============================================================================
# Quotes
# ============================================================================

@pytest.fixture
def sample_line_items():
    """Two fully priced lines: vendor {100, 200}, price {150, 300}, qty {10, 5}."""
    return (
        LineItem(
            id='cart-1',
            product_id='prod-1',
            product_name='P1 Product 1',
            quantity=10,
            vendor_cost=Decimal('100'),
            customer_price=Decimal('150'),
        ),
        LineItem(
            id='cart-2',
            product_id='prod-2',
            product_name='P2 Product 2',
            quantity=5,
            vendor_cost=Decimal('200'),
            customer_price=Decimal('300'),
        ),
    )


@pytest.fixture
def quote_factory(sample_line_items):
    """Build a Quote with sensible defaults; keyword arguments override fields."""
    def build(**overrides: Any) -> Quote:
        fields: Dict[str, Any] = dict(
            id='quote-123',
            status=QuoteStatus.READ,
            created_at=NOW - timedelta(hours=2),
            valid_until=None,
            assigned_handler_id='200',
            customer_id='300',
            contact=QuoteContact(
                first_name='Casey',
                last_name='Customer',
                email='customer@hospital.com',
                company_name='Test Hospital',
            ),
            description='Monthly restock',
            line_items=sample_line_items,
        )
        fields.update(overrides)
        return Quote(**fields)

    return build


@pytest.fixture
def sample_quote_payload():
    """Sample platform quote payload."""
    return {
        "id": "quote-123",
        "status": 1,
        "priority": 1,
        "createdAt": "2025-01-15T10:00:00Z",
        "validUntil": "2025-02-15T00:00:00",
        "assignedSalesRepId": 200,
        "assignedAt": "2025-01-15T11:00:00Z",
        "customerId": 300,
        "firstName": "Casey",
        "lastName": "Customer",
        "emailAddress": "customer@hospital.com",
        "phoneNumber": "555-0100",
        "companyName": "Test Hospital",
        "description": "Monthly restock",
        "products": [
            {
                "id": "cart-1",
                "productId": "prod-1",
                "quantity": 10,
                "vendorCost": 100,
                "customerPrice": 150.5,
                "product": {"id": "prod-1", "name": "Exam Gloves", "sku": "GLV-100"}
            },
            {
                "id": "cart-2",
                "productId": "prod-2",
                "quantity": 5,
                "vendorCost": None,
                "customerPrice": None,
                "product": {"id": "prod-2", "name": "Gauze Pads", "sku": "GZ-200"}
            }
        ]
    }


@pytest.fixture
def sample_pricing_result_payload():
    """Sample pricing engine result with a contract price and volume tier."""
    return {
        "productId": "prod-1",
        "basePrice": 120,
        "finalPrice": 102,
        "totalDiscount": 18,
        "effectiveMarginPercent": 15.5,
        "marginProtected": False,
        "appliedRules": [
            {
                "order": 2,
                "ruleType": "VolumeTier",
                "ruleName": "10+ units",
                "priceBefore": 108,
                "priceAfter": 102,
                "adjustment": -6,
                "explanation": "Volume tier for 10 or more units"
            },
            {
                "order": 1,
                "ruleType": "ContractPrice",
                "ruleName": "Hospital contract",
                "priceBefore": 120,
                "priceAfter": 108,
                "adjustment": -12,
                "explanation": "Customer contract price"
            },
            {
                "order": 0,
                "ruleType": "BasePrice",
                "ruleName": "Catalog",
                "priceBefore": 120,
                "priceAfter": 120,
                "adjustment": 0,
                "explanation": "Catalog base price"
            }
        ]
    }


# ============================================================================
# Workflow
# ============================================================================

@pytest.fixture
def quote_store():
    """In-memory record store behind the mock client."""
    return {}


@pytest.fixture
def quote_client(quote_store):
    """Mock platform client backed by quote_store."""
    client = Mock()

    def update_quote(quote):
        if quote.id not in quote_store:
            raise QuoteNotFoundError(quote.id)
        quote_store[quote.id] = quote
        return quote

    def get_quote(quote_id):
        if quote_id not in quote_store:
            raise QuoteNotFoundError(quote_id)
        return quote_store[quote_id]

    def create_order_from_quote(quote_id):
        quote_store[quote_id] = quote_store[quote_id].with_status(QuoteStatus.CONVERTED)
        return 'order-900'

    client.update_quote = Mock(side_effect=update_quote)
    client.get_quote = Mock(side_effect=get_quote)
    client.create_order_from_quote = Mock(side_effect=create_order_from_quote)
    client.get_quote_activity = Mock(return_value=[])
    client.get_accounts_by_role = Mock(return_value=[])
    return client


@pytest.fixture
def workflow_factory(quote_client, quote_store, levels):
    """Open a QuoteWorkflow for (actor, quote) at the fixed time."""
    def open_workflow(actor: Actor, quote: Quote) -> QuoteWorkflow:
        quote_store[quote.id] = quote
        return QuoteWorkflow(quote_client, actor, quote, levels=levels, clock=lambda: NOW)

    return open_workflow
