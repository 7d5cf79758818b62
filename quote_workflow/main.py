"""
Main entry point for the quote workflow core.
Can be run locally or as AWS Lambda function.

For AWS Lambda:
- Credentials are loaded from AWS Secrets Manager at runtime
- The event names the quote, the action and its parameters:
  {"quoteId": "...", "action": "approve", "params": {...}}

For local development:
- Credentials are loaded from .env file
- Running the module prints the capability set and pricing summary of a quote
"""

import argparse
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from quote_workflow.clients.pricing_client import PricingClient
from quote_workflow.clients.quote_client import QuoteClient
from quote_workflow.config import get_settings, load_secrets_from_aws
from quote_workflow.pricing.calculator import calculate_totals
from quote_workflow.pricing.suggestions import MarginThresholds, SuggestedPricingService
from quote_workflow.utils.error_handler import (
    ActionNotPermittedError,
    ConfigurationError,
    QuoteNotFoundError,
    QuoteWorkflowError,
)
from quote_workflow.utils.logger import setup_logger
from quote_workflow.workflow.permissions import RoleLevels
from quote_workflow.workflow.quote_actions import QuoteWorkflow


# Module-level logger (basic until settings are loaded)
logger = logging.getLogger(__name__)

ACTIONS = (
    'mark_read',
    'approve',
    'reject',
    'assign',
    'unassign',
    'convert_to_order',
    'update_line_pricing',
)

# action -> parameter names the event must carry
ACTION_PARAMS = {
    'assign': frozenset({'handler_id'}),
    'update_line_pricing': frozenset({'line_id', 'vendor_cost', 'customer_price'}),
}


def lambda_handler(event, context):
    """
    AWS Lambda handler function.

    Loads credentials from AWS Secrets Manager before initializing settings.

    Args:
        event: Lambda event data with quoteId, action and optional params
        context: Lambda context

    Returns:
        Response dict with statusCode and body
    """
    # Step 1: Load secrets from AWS Secrets Manager (before settings init)
    try:
        load_secrets_from_aws()
    except Exception as e:
        # Log to CloudWatch even without proper logger setup
        print(f"CRITICAL: Failed to load secrets from AWS Secrets Manager: {e}")
        return {
            'statusCode': 500,
            'body': {'error': f'Failed to load secrets: {str(e)}'}
        }

    # Step 2: Now we can safely get settings and setup proper logging
    settings = get_settings(force_reload=True)
    global logger
    logger = setup_logger("quote_workflow", settings.log_level)

    logger.info("Lambda function invoked")
    logger.debug(f"Event: {event}")

    event = event or {}
    quote_id = event.get('quoteId')
    action = event.get('action')
    params = event.get('params') or {}

    if not quote_id or action not in ACTIONS:
        return {
            'statusCode': 400,
            'body': {'error': f"Event needs a quoteId and an action in {list(ACTIONS)}"}
        }

    params_error = _check_params(action, params)
    if params_error:
        logger.warning(f"Rejecting '{action}' event: {params_error}")
        return {'statusCode': 400, 'body': {'error': params_error}}

    # Step 3: Run the action
    try:
        result = run_action(quote_id, action, **params)
    except ActionNotPermittedError as e:
        logger.warning(str(e))
        return {'statusCode': 403, 'body': {'error': str(e)}}
    except QuoteNotFoundError as e:
        return {'statusCode': 404, 'body': {'error': str(e)}}
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return {'statusCode': 500, 'body': {'error': str(e)}}
    except QuoteWorkflowError as e:
        logger.error(f"Lambda execution failed: {e}", exc_info=True)
        return {'statusCode': 502, 'body': {'error': str(e)}}

    status_code = 200 if result['success'] else _status_for_kind(result['kind'])
    return {'statusCode': status_code, 'body': result}


def _check_params(action: str, params: Any) -> Optional[str]:
    """Describe what is wrong with the event params for action, or None if they fit."""
    if not isinstance(params, dict):
        return f"params for '{action}' must be an object"

    expected = ACTION_PARAMS.get(action, frozenset())
    missing = sorted(expected - params.keys())
    unknown = sorted(set(params) - expected)
    if missing:
        return f"'{action}' is missing params: {', '.join(missing)}"
    if unknown:
        return f"'{action}' does not accept params: {', '.join(map(str, unknown))}"
    return None


def _status_for_kind(kind: str) -> int:
    return {
        'validation': 422,
        'not_found': 404,
        'busy': 409,
    }.get(kind, 502)


def run_action(
    quote_id: str,
    action: str,
    quote_client: Optional[QuoteClient] = None,
    **params: Any
) -> Dict[str, Any]:
    """
    Run one workflow action for the current actor.

    Args:
        quote_id: Quote to act on
        action: One of ACTIONS
        quote_client: Platform client (built from settings when omitted)
        **params: Action parameters (handler_id for assign; line_id,
            vendor_cost, customer_price for update_line_pricing)

    Returns:
        Result dict with success, message, kind, data, errors, capabilities
        and available actions after the action

    Raises:
        ActionNotPermittedError: If the actor may not perform the action
        QuoteNotFoundError: If the quote does not exist
    """
    if action not in ACTIONS:
        raise ValueError(f"Unknown action '{action}'")

    settings = get_settings()
    quote_client = quote_client or QuoteClient.from_settings(settings)

    logger.info("=" * 60)
    logger.info(f"QUOTE ACTION: {action} on quote {quote_id}")
    logger.info(f"Time: {datetime.now().isoformat()}")
    logger.info("=" * 60)

    workflow = QuoteWorkflow.load(
        quote_client, quote_id, levels=RoleLevels.from_settings(settings)
    )
    result = getattr(workflow, action)(**params)

    logger.info(f"{action}: {result.kind} - {result.message}")

    return {
        'success': result.success,
        'message': result.message,
        'kind': result.kind,
        'data': result.data,
        'errors': result.errors,
        'capabilities': workflow.capabilities.to_dict(),
        'availableActions': workflow.available_actions(),
    }


def main(argv=None) -> int:
    """
    Print the capability set and pricing summary of a quote.

    Returns:
        Process exit code
    """
    parser = argparse.ArgumentParser(description="Show what the current actor can do with a quote")
    parser.add_argument("quote_id", help="Quote id")
    parser.add_argument("--suggestions", action="store_true", help="Also fetch suggested pricing")
    args = parser.parse_args(argv)

    settings = get_settings()
    quote_client = QuoteClient.from_settings(settings)

    try:
        workflow = QuoteWorkflow.load(
            quote_client, args.quote_id, levels=RoleLevels.from_settings(settings)
        )
    except QuoteWorkflowError as e:
        logger.error(f"Failed to load quote {args.quote_id}: {e}")
        return 1

    quote = workflow.quote
    totals = calculate_totals(quote.line_items)

    logger.info("=" * 60)
    logger.info(f"QUOTE {quote.id} ({workflow.effective_status.name})")
    logger.info(f"Actor: {workflow.actor.id} (role {workflow.actor.role_level})")
    logger.info(f"Capabilities: {', '.join(workflow.capabilities.granted()) or 'none'}")
    logger.info(f"Available actions: {', '.join(workflow.available_actions()) or 'none'}")
    logger.info(
        f"Totals: vendor {totals.vendor_total}, customer {totals.customer_total}, "
        f"margin {totals.margin_total} ({totals.margin_percent}%)"
    )
    logger.info(f"Ready to send: {totals.is_ready_to_send}")

    if args.suggestions and workflow.capabilities.can_edit_pricing:
        service = SuggestedPricingService(
            PricingClient.from_settings(settings),
            thresholds=MarginThresholds.from_settings(settings),
        )
        service.refresh(quote)
        for line in quote.line_items:
            suggestion = service.suggestion_for(line)
            if suggestion:
                flag = " *" if suggestion.has_special_pricing else ""
                logger.info(
                    f"  {line.product_name}: suggested {suggestion.suggested_price}{flag} "
                    f"margin {service.margin_status(line)} "
                    f"[{' > '.join(suggestion.rule_types)}]"
                )
        if service.last_error:
            logger.warning(f"Suggested pricing unavailable: {service.last_error}")

    logger.info("=" * 60)
    return 0


if __name__ == "__main__":
    # For local development, load .env file
    from dotenv import load_dotenv
    load_dotenv()

    # Setup logging for local run
    settings = get_settings()
    logger = setup_logger("quote_workflow", settings.log_level)

    raise SystemExit(main())
