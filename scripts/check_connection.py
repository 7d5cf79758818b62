#!/usr/bin/env python3
"""
Check API connections for the platform API and the pricing engine.

This script verifies that both API clients can reach their services with
the configured credentials.
"""

import os
import sys

# Add parent directory to path to import quote_workflow modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from quote_workflow.clients.pricing_client import PricingClient
from quote_workflow.clients.quote_client import QuoteClient
from quote_workflow.config import get_settings
from quote_workflow.utils.error_handler import QuoteWorkflowError
from quote_workflow.utils.logger import setup_logging


def main():
    """Check API connections."""
    print("=" * 60)
    print("Quote Workflow - Connection Check")
    print("=" * 60)
    print()

    setup_logging(level="INFO")

    settings = get_settings()
    print(f"Environment: {settings.environment}")
    print(f"Platform API: {settings.quote_api_base_url}")
    print(f"Pricing API:  {settings.effective_pricing_api_base_url}")
    print()

    quote_client = QuoteClient.from_settings(settings)
    platform_ok = quote_client.test_connection()

    if platform_ok:
        print("Platform API connection SUCCESSFUL")
        try:
            actor = quote_client.get_current_actor()
            print(f"   Signed in as {actor.name or actor.id} (role {actor.role_level})")
        except QuoteWorkflowError as e:
            print(f"   Account lookup failed: {e}")
    else:
        print("Platform API connection FAILED")

    print()

    pricing_client = PricingClient.from_settings(settings)
    pricing_ok = pricing_client.test_connection()
    print(f"Pricing engine connection {'SUCCESSFUL' if pricing_ok else 'FAILED'}")

    print()
    print("=" * 60)
    if platform_ok and pricing_ok:
        print("All connections successful")
        return 0

    print("One or more connections failed")
    return 1


if __name__ == "__main__":
    sys.exit(main())
