"""
Account transformer.
Maps platform account payloads to Actor (current user and assignable handlers).
"""

import logging
from typing import Any, Dict

from quote_workflow.models.quote import Actor
from quote_workflow.transformers.base_transformer import BaseTransformer
from quote_workflow.utils.error_handler import TransformationError


logger = logging.getLogger(__name__)


class AccountTransformer(BaseTransformer):
    """Transform account payloads to Actor."""

    REQUIRED_FIELDS = ['id']

    def to_model(self, payload: Dict[str, Any]) -> Actor:
        """
        Transform an account payload to an Actor.

        Customer affiliation and company name are read from the top level
        first and then from the nested customer record.

        Raises:
            TransformationError: If the id or role level is missing
        """
        if not self.validate_required_fields(payload, self.REQUIRED_FIELDS):
            raise TransformationError(f"Missing required fields in account {payload}")

        role_level = self.first_of(payload, 'roleLevel', 'role')
        if role_level is None:
            raise TransformationError(f"Account {payload['id']} has no role level")

        customer = self.safe_get(payload, 'customer', {})
        name = self.safe_get(payload, 'name') or (
            f"{self.safe_get(payload, 'firstName', '')} {self.safe_get(payload, 'lastName', '')}".strip()
        )

        actor = self.build(
            Actor,
            'account',
            id=payload['id'],
            role_level=role_level,
            customer_id=self.first_of(payload, 'customerId') or self.safe_get(customer, 'id'),
            email=self.safe_get(payload, 'email'),
            company_name=self.first_of(payload, 'companyName') or self.safe_get(customer, 'name'),
            name=name or self.safe_get(payload, 'username', ''),
        )

        logger.debug(f"Transformed account {actor.id} (role {actor.role_level})")
        return actor
