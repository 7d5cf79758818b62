"""
Platform REST API client.

This client talks to the platform API that owns quote records, orders,
accounts and the quote activity log. It handles bearer-token authentication,
transport retries for idempotent reads, the {payload, message} response
envelope, and error mapping.
"""

import logging
from typing import Any, List, Optional

import requests

from quote_workflow.clients.session import build_session
from quote_workflow.models.activity import HistoryEntry
from quote_workflow.models.quote import Actor, Quote
from quote_workflow.transformers.account_transformer import AccountTransformer
from quote_workflow.transformers.activity_transformer import ActivityTransformer
from quote_workflow.transformers.quote_transformer import QuoteTransformer
from quote_workflow.utils.date_utils import normalize_identifier
from quote_workflow.utils.error_handler import (
    ConfigurationError,
    QuoteAPIError,
    QuoteWorkflowError,
    handle_api_error,
    log_errors,
)


class QuoteClient:
    """
    Client for the platform API.

    Handles:
    - Authentication: Bearer token
    - Retry logic: Transport retries for GET requests only
    - Envelope: Unwraps {"payload": ..., "message": ...}
    - Error handling: 404 -> QuoteNotFoundError, 400 -> ValidationError,
      other failures -> QuoteAPIError
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        max_retries: int = 3
    ):
        """
        Initialize platform API client.

        Args:
            base_url: Platform API base URL (e.g., https://api.example.com/api)
            token: Bearer token for the current actor
            timeout: Per-request timeout in seconds
            max_retries: Transport retries for GET requests
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = build_session(token, max_retries)

        self.quote_transformer = QuoteTransformer()
        self.account_transformer = AccountTransformer()
        self.activity_transformer = ActivityTransformer()

        self.logger.info(f"Quote client initialized for {self.base_url}")

    @classmethod
    def from_settings(cls, settings) -> "QuoteClient":
        if not settings.quote_api_base_url:
            raise ConfigurationError("QUOTE_API_BASE_URL is not configured")
        return cls(
            base_url=settings.quote_api_base_url,
            token=settings.quote_api_token,
            timeout=settings.request_timeout,
            max_retries=settings.http_max_retries,
        )

    @log_errors
    def _make_request(
        self,
        method: str,
        path: str,
        resource_id: Optional[str] = None,
        **kwargs
    ) -> Any:
        """
        Make HTTP request and unwrap the response envelope.

        Args:
            method: HTTP method (GET, POST, PUT)
            path: Path relative to the base URL
            resource_id: Quote id, used to report 404 as QuoteNotFoundError
            **kwargs: Additional arguments to pass to requests

        Returns:
            Envelope payload

        Raises:
            QuoteNotFoundError: If the quote does not exist
            ValidationError: If the platform rejects the request (400)
            QuoteAPIError: For any other failure
        """
        url = f"{self.base_url}{path}"
        self.logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise QuoteAPIError(f"{method} {path} failed: {str(e)}")

        if not response.ok:
            handle_api_error(response, api_name="quotes", resource_id=resource_id)

        try:
            body = response.json()
        except ValueError:
            raise QuoteAPIError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
                response=response.text
            )

        if not isinstance(body, dict) or body.get('payload') is None:
            message = body.get('message') if isinstance(body, dict) else None
            raise QuoteAPIError(
                f"{method} {path} returned no payload: {message or 'no message'}",
                status_code=response.status_code,
                response=str(body)
            )

        return body['payload']

    # ========================================================================
    # Quotes
    # ========================================================================

    def get_quote(self, quote_id: str) -> Quote:
        """
        Fetch a quote by id.

        Raises:
            QuoteNotFoundError: If the quote no longer exists
        """
        quote_id = normalize_identifier(quote_id)
        payload = self._make_request('GET', f"/quotes/{quote_id}", resource_id=quote_id)
        return self.quote_transformer.to_model(payload)

    def update_quote(self, quote: Quote) -> Quote:
        """
        Replace a quote with the given full record.

        Args:
            quote: Complete updated quote

        Returns:
            Quote as stored by the platform
        """
        payload = self._make_request(
            'PUT',
            '/quotes',
            resource_id=quote.id,
            json=self.quote_transformer.to_payload(quote)
        )
        updated = self.quote_transformer.to_model(payload)
        self.logger.info(f"Updated quote {updated.id} (status {updated.status.name})")
        return updated

    def create_order_from_quote(self, quote_id: str) -> str:
        """
        Create an order from an approved quote.

        Returns:
            New order id
        """
        quote_id = normalize_identifier(quote_id)
        payload = self._make_request('POST', f"/orders/from-quote/{quote_id}", resource_id=quote_id)

        order_id = normalize_identifier(payload.get('id') if isinstance(payload, dict) else payload)
        if order_id is None:
            raise QuoteAPIError(f"Order creation for quote {quote_id} returned no order id")

        self.logger.info(f"Created order {order_id} from quote {quote_id}")
        return order_id

    def get_quote_activity(self, quote_id: str) -> List[HistoryEntry]:
        """Fetch the activity history of a quote, newest first."""
        quote_id = normalize_identifier(quote_id)
        payload = self._make_request('GET', f"/quotes/{quote_id}/activity", resource_id=quote_id)
        return self.activity_transformer.to_history(payload)

    # ========================================================================
    # Accounts
    # ========================================================================

    def get_current_actor(self) -> Actor:
        """Fetch the account behind the bearer token."""
        payload = self._make_request('GET', '/accounts/me')
        return self.account_transformer.to_model(payload)

    def get_accounts_by_role(self, role_levels: List[int]) -> List[Actor]:
        """
        Fetch accounts holding any of the given role levels.

        Args:
            role_levels: Role levels to include (e.g., [3000, 4000])

        Returns:
            Accounts as Actor records
        """
        params = {'roles': ','.join(str(level) for level in role_levels)}
        payload = self._make_request('GET', '/accounts/by-role', params=params)
        return [self.account_transformer.to_model(item) for item in payload]

    # ========================================================================
    # Connection Test
    # ========================================================================

    def test_connection(self) -> bool:
        """
        Test API connection by fetching the current account.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            actor = self.get_current_actor()
            self.logger.info(f"Platform API connection successful (account {actor.id})")
            return True
        except QuoteWorkflowError as e:
            self.logger.error(f"Platform API connection failed: {e}")
            return False
