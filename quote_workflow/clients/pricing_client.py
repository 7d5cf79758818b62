"""
Pricing rules engine client.

The engine evaluates the pricing waterfall (base price, contract price,
volume tier, margin protection) for a batch of products in a single call.
"""

import logging
from typing import List

import requests

from quote_workflow.clients.session import build_session
from quote_workflow.models.pricing import PricingRequest, PricingResult
from quote_workflow.transformers.pricing_transformer import PricingTransformer
from quote_workflow.utils.error_handler import (
    ConfigurationError,
    PricingAPIError,
    TransformationError,
    handle_api_error,
    log_errors,
)


class PricingClient:
    """Client for the bulk pricing endpoint."""

    BULK_PATH = '/pricing/calculate/bulk'

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        max_retries: int = 3
    ):
        """
        Initialize pricing engine client.

        Args:
            base_url: Pricing engine base URL
            token: Bearer token
            timeout: Per-request timeout in seconds
            max_retries: Transport retries for GET requests
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = build_session(token, max_retries)
        self.transformer = PricingTransformer()

        self.logger.info(f"Pricing client initialized for {self.base_url}")

    @classmethod
    def from_settings(cls, settings) -> "PricingClient":
        if not settings.effective_pricing_api_base_url:
            raise ConfigurationError("PRICING_API_BASE_URL is not configured")
        return cls(
            base_url=settings.effective_pricing_api_base_url,
            token=settings.quote_api_token,
            timeout=settings.request_timeout,
            max_retries=settings.http_max_retries,
        )

    @log_errors
    def batch_price_quote(self, requests_: List[PricingRequest]) -> List[PricingResult]:
        """
        Price a batch of products in one call.

        Args:
            requests_: One request per unique product

        Returns:
            Pricing results (one per product the engine could price)

        Raises:
            PricingAPIError: If the call fails or the response is malformed
        """
        if not requests_:
            return []

        body = {'items': [self.transformer.request_to_payload(r) for r in requests_]}
        url = f"{self.base_url}{self.BULK_PATH}"

        self.logger.debug(f"POST {url} ({len(requests_)} products)")

        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise PricingAPIError(f"Bulk pricing request failed: {str(e)}")

        if not response.ok:
            handle_api_error(response, api_name="pricing")

        try:
            envelope = response.json()
        except ValueError:
            raise PricingAPIError(
                "Bulk pricing returned invalid JSON",
                status_code=response.status_code,
                response=response.text
            )

        payload = envelope.get('payload') if isinstance(envelope, dict) else None
        if not isinstance(payload, list):
            message = envelope.get('message') if isinstance(envelope, dict) else None
            raise PricingAPIError(
                f"Bulk pricing returned no results: {message or 'no message'}",
                status_code=response.status_code,
                response=str(envelope)
            )

        try:
            results = self.transformer.to_results(payload)
        except TransformationError as e:
            raise PricingAPIError(f"Bulk pricing returned malformed results: {e}")

        self.logger.info(f"Priced {len(results)} of {len(requests_)} products")
        return results

    def test_connection(self) -> bool:
        """
        Test the pricing engine with an empty batch.

        Returns:
            True if the engine answered, False otherwise
        """
        try:
            response = self.session.post(
                f"{self.base_url}{self.BULK_PATH}",
                json={'items': []},
                timeout=15
            )
            response.raise_for_status()
            self.logger.info("Pricing engine connection successful")
            return True
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Pricing engine connection failed: {e}")
            return False
