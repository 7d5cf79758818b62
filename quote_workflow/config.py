"""
Configuration management for the quote workflow core.

This module provides a centralized configuration class that loads settings from
environment variables using Pydantic for validation and type safety.

In AWS Lambda, credentials are loaded from AWS Secrets Manager.
For local development, credentials are loaded from .env file.
"""

import os
import json
from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# AWS Secrets Manager Integration
# =============================================================================

def load_secrets_from_aws(secret_name: Optional[str] = None) -> bool:
    """
    Load secrets from AWS Secrets Manager and set as environment variables.

    This function should be called BEFORE Settings() is instantiated.
    It detects if running in AWS Lambda and loads credentials from Secrets Manager.

    Args:
        secret_name: Name of the secret in AWS Secrets Manager.
                    Defaults to env var AWS_SECRET_NAME or 'quote-workflow-credentials'

    Returns:
        True if secrets were loaded, False if skipped (local development)

    Expected secret JSON structure:
    {
        "QUOTE_API_BASE_URL": "https://...",
        "QUOTE_API_TOKEN": "...",
        "PRICING_API_BASE_URL": "https://..."
    }
    """
    # AWS_LAMBDA_FUNCTION_NAME is set by the Lambda runtime
    is_lambda = os.environ.get('AWS_LAMBDA_FUNCTION_NAME') is not None

    has_credentials = os.environ.get('QUOTE_API_TOKEN') is not None

    if not is_lambda:
        logger.info("Not running in AWS Lambda - skipping Secrets Manager")
        return False

    if has_credentials:
        logger.info("Credentials already set in environment - skipping Secrets Manager")
        return False

    secret_name = secret_name or os.environ.get('AWS_SECRET_NAME', 'quote-workflow-credentials')

    logger.info(f"Loading secrets from AWS Secrets Manager: {secret_name}")

    import boto3
    from botocore.exceptions import ClientError

    region = os.environ.get('AWS_REGION', 'us-east-1')
    client = boto3.client('secretsmanager', region_name=region)

    try:
        response = client.get_secret_value(SecretId=secret_name)

        if 'SecretString' in response:
            secrets = json.loads(response['SecretString'])
        else:
            import base64
            secrets = json.loads(base64.b64decode(response['SecretBinary']))

        loaded_keys = []
        for key, value in secrets.items():
            env_key = key.upper()
            os.environ[env_key] = str(value)
            loaded_keys.append(env_key)

        logger.info(f"Successfully loaded {len(loaded_keys)} secrets from AWS Secrets Manager")
        logger.debug(f"Loaded keys: {', '.join(loaded_keys)}")

        return True

    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        if error_code == 'ResourceNotFoundException':
            logger.error(f"Secret '{secret_name}' not found in Secrets Manager")
        elif error_code == 'AccessDeniedException':
            logger.error(f"Access denied to secret '{secret_name}' - check IAM permissions")
        else:
            logger.error(f"Failed to load secret '{secret_name}': {e}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"Secret '{secret_name}' is not valid JSON: {e}")
        raise


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are validated using Pydantic and can be loaded from:
    - Environment variables
    - .env files (via python-dotenv)
    - Default values where specified
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Platform API (quote record store, orders, accounts)
    quote_api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL for the platform API that stores quotes"
    )
    quote_api_token: str = Field(
        default="",
        description="Bearer token used for the platform API"
    )

    # Pricing engine
    pricing_api_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the pricing rules engine (defaults to the platform API)"
    )

    # HTTP behaviour
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single API request"
    )
    http_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Transport-level retries for idempotent GET requests"
    )

    # Role levels (must match the platform's RBAC thresholds)
    customer_level: int = Field(default=1000, description="Customer role level")
    fulfillment_coordinator_level: int = Field(default=2000, description="Fulfillment coordinator role level")
    handler_min_level: int = Field(
        default=3000,
        description="Minimum role level of an internal quote handler (sales rep)"
    )
    team_scope_min_level: int = Field(
        default=4000,
        description="Minimum role level with team scope over quotes (sales manager)"
    )
    org_scope_min_level: int = Field(
        default=4000,
        description="Minimum role level with organization-wide scope over quotes"
    )
    admin_min_level: int = Field(default=5000, description="Administrator role level")
    super_admin_level: int = Field(default=9999, description="Super administrator role level")

    # Margin health thresholds (percent)
    margin_healthy_percent: float = Field(default=20.0, description="Margin at or above this is healthy")
    margin_warning_percent: float = Field(default=10.0, description="Margin at or above this is a warning")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    environment: str = Field(
        default="development",
        description="Environment name (development, staging, production)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"log_level must be one of {valid_levels}, got '{v}'"
            )
        return v_upper

    @field_validator("quote_api_base_url", "pricing_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Ensure base URLs don't end with a trailing slash."""
        return v.rstrip("/") if v else v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the expected values."""
        valid_envs = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in valid_envs:
            raise ValueError(
                f"environment must be one of {valid_envs}, got '{v}'"
            )
        return v_lower

    @model_validator(mode="after")
    def validate_role_ladder(self) -> "Settings":
        """Role thresholds must climb from customer to admin."""
        if not (
            self.customer_level
            <= self.handler_min_level
            <= min(self.team_scope_min_level, self.org_scope_min_level)
            <= self.admin_min_level
        ):
            raise ValueError(
                "role levels must satisfy customer <= handler <= team/org scope <= admin"
            )
        if self.margin_warning_percent > self.margin_healthy_percent:
            raise ValueError("margin_warning_percent cannot exceed margin_healthy_percent")
        return self

    @property
    def effective_pricing_api_base_url(self) -> str:
        """Pricing engine URL, falling back to the platform API."""
        return self.pricing_api_base_url or self.quote_api_base_url


# Global settings instance
_settings: Optional[Settings] = None


def get_settings(force_reload: bool = False) -> Settings:
    """
    Get the application settings singleton.

    Args:
        force_reload: If True, reload settings from environment/files

    Returns:
        Settings: The application settings instance

    Example:
        >>> settings = get_settings()
        >>> print(settings.quote_api_base_url)
    """
    global _settings

    if _settings is None or force_reload:
        from dotenv import load_dotenv
        load_dotenv()

        _settings = Settings()

    return _settings


def load_settings_from_file(file_path: str) -> Settings:
    """
    Load settings from a specific .env file.

    Args:
        file_path: Path to the .env file

    Returns:
        Settings: The application settings instance

    Example:
        >>> settings = load_settings_from_file("config/prod.env")
    """
    from dotenv import load_dotenv

    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Settings file not found: {file_path}")

    load_dotenv(file_path, override=True)
    return Settings()


# Convenience alias for settings singleton
settings = get_settings()
