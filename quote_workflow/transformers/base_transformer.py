"""
Base transformer class for payload <-> model mapping.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from quote_workflow.utils.error_handler import TransformationError


logger = logging.getLogger(__name__)


class BaseTransformer(ABC):
    """Base class for all payload transformers."""

    @abstractmethod
    def to_model(self, payload: Dict[str, Any]) -> Any:
        """
        Transform an API payload into a model.

        Args:
            payload: Decoded JSON payload from the platform API

        Returns:
            Model instance
        """
        pass

    def safe_get(
        self,
        data: Dict[str, Any],
        key: str,
        default: Any = None
    ) -> Any:
        """
        Safely get a value from dictionary.

        Args:
            data: Dictionary to get value from
            key: Key to look up
            default: Default value if key not found or None

        Returns:
            Value or default
        """
        value = data.get(key)
        return default if value is None else value

    def first_of(self, data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
        """Value of the first key present and non-null."""
        for key in keys:
            if data.get(key) is not None:
                return data[key]
        return default

    def validate_required_fields(
        self,
        data: Dict[str, Any],
        required_fields: List[str]
    ) -> bool:
        """
        Validate that required fields are present.

        Args:
            data: Data to validate
            required_fields: List of required field names

        Returns:
            True if all required fields present
        """
        missing_fields = [f for f in required_fields if f not in data or data[f] is None]

        if missing_fields:
            logger.error(f"Missing required fields: {missing_fields}")
            return False

        return True

    def parse_decimal(self, value: Any) -> Optional[Decimal]:
        """Decimal from a JSON number or string; None for missing values."""
        if value is None or value == '':
            return None
        try:
            return Decimal(str(value))
        except InvalidOperation:
            raise TransformationError(f"Invalid decimal value: {value!r}")

    def build(self, model_cls, label: str, **fields: Any) -> Any:
        """
        Construct a model, turning pydantic validation failures into
        TransformationError.
        """
        try:
            return model_cls(**fields)
        except PydanticValidationError as e:
            logger.error(f"Invalid {label} payload: {e}")
            raise TransformationError(f"Invalid {label} payload: {e}") from e
