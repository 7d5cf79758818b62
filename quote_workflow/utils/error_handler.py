"""
Error handling utilities for the quote workflow core.

This module provides the exception taxonomy used at the record-store and
pricing-service boundaries, error logging wrappers, and helpers for turning
HTTP failures into typed exceptions.

Taxonomy:
- Authorization denial: ActionNotPermittedError (programming error)
- Validation failure: ValidationError
- Transient failure: QuoteAPIError / PricingAPIError
- Not found: QuoteNotFoundError (terminal for the session)
"""

import logging
import functools
from typing import Callable, Any, Optional


logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exception Classes
# ============================================================================

class QuoteWorkflowError(Exception):
    """Base exception for quote workflow errors."""
    pass


class QuoteAPIError(QuoteWorkflowError):
    """Exception raised for platform API (record store) errors."""
    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[str] = None):
        self.status_code = status_code
        self.response = response
        super().__init__(f"Quote API Error: {message}")


class QuoteNotFoundError(QuoteAPIError):
    """Exception raised when a quote no longer exists server-side."""
    def __init__(self, quote_id: str, response: Optional[str] = None):
        self.quote_id = quote_id
        super().__init__(f"Quote {quote_id} not found", status_code=404, response=response)


class PricingAPIError(QuoteWorkflowError):
    """Exception raised for pricing engine errors."""
    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[str] = None):
        self.status_code = status_code
        self.response = response
        super().__init__(f"Pricing API Error: {message}")


class TransformationError(QuoteWorkflowError):
    """Exception raised for payload transformation errors."""
    pass


class ConfigurationError(QuoteWorkflowError):
    """Exception raised for configuration errors."""
    pass


class ValidationError(QuoteWorkflowError):
    """Exception raised for data validation errors."""
    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or [message]
        super().__init__(message)


class ActionNotPermittedError(QuoteWorkflowError):
    """
    Raised when a workflow action is invoked without the matching capability.

    Actions that are not permitted are never offered to the caller, so
    reaching this exception means the caller skipped the capability check.
    """
    def __init__(self, action: str, quote_id: Optional[str] = None):
        self.action = action
        self.quote_id = quote_id
        super().__init__(f"Action '{action}' is not permitted on quote {quote_id}")


# ============================================================================
# Error Logging Wrapper
# ============================================================================

def log_errors(func: Callable) -> Callable:
    """
    Decorator to log exceptions with full context.

    Args:
        func: Function to wrap

    Returns:
        Decorated function that logs errors before raising

    Example:
        >>> @log_errors
        ... def fetch_quote(quote_id):
        ...     pass
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(
                f"Error in {func.__name__}: {type(e).__name__}: {str(e)}",
                exc_info=True,
                extra={
                    'function': func.__name__,
                    'call_args': str(args)[:200],
                    'call_kwargs': str(kwargs)[:200]
                }
            )
            raise

    return wrapper


# ============================================================================
# Error Context Manager
# ============================================================================

class ErrorContext:
    """
    Context manager for consistent error logging around boundary calls.

    Example:
        >>> with ErrorContext("Approving quote", quote_id="q-1"):
        ...     client.update_quote(quote)
    """

    def __init__(self, operation: str, **context):
        """
        Initialize error context.

        Args:
            operation: Description of the operation
            **context: Additional context key-value pairs
        """
        self.operation = operation
        self.context = context

    def __enter__(self):
        logger.debug(f"Starting: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            logger.error(
                f"Failed: {self.operation} - {exc_type.__name__}: {exc_val}",
                extra=self.context
            )
        else:
            logger.debug(f"Completed: {self.operation}", extra=self.context)
        # Propagate exceptions
        return False


# ============================================================================
# Error Handler Functions
# ============================================================================

def handle_api_error(response, api_name: str = "API", resource_id: Optional[str] = None) -> None:
    """
    Handle HTTP API errors consistently.

    Args:
        response: requests.Response object
        api_name: Name of the API for error messages ("quotes" or "pricing")
        resource_id: Quote id, used to build a QuoteNotFoundError on 404

    Raises:
        QuoteNotFoundError, QuoteAPIError or PricingAPIError depending on api_name
    """
    status_code = response.status_code
    try:
        error_detail = response.json()
    except ValueError:
        error_detail = response.text

    if isinstance(error_detail, dict) and error_detail.get('message'):
        error_message = f"{api_name} request failed with status {status_code}: {error_detail['message']}"
    else:
        error_message = f"{api_name} request failed with status {status_code}"

    if api_name.lower() == "pricing":
        raise PricingAPIError(error_message, status_code, str(error_detail))
    if status_code == 404 and resource_id is not None:
        raise QuoteNotFoundError(resource_id, str(error_detail))
    if status_code == 400:
        raise ValidationError(error_message, _extract_errors(error_detail))
    raise QuoteAPIError(error_message, status_code, str(error_detail))


def _extract_errors(error_detail: Any) -> list:
    """Pull validation messages out of an API error body."""
    if isinstance(error_detail, dict):
        errors = error_detail.get('errors')
        if isinstance(errors, list) and errors:
            return [str(e) for e in errors]
        if isinstance(errors, dict) and errors:
            return [f"{k}: {v}" for k, v in errors.items()]
        if error_detail.get('message'):
            return [str(error_detail['message'])]
    return [str(error_detail)]
