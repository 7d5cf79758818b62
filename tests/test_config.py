"""
Test settings validation and role thresholds.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from quote_workflow.config import Settings, load_secrets_from_aws, load_settings_from_file
from quote_workflow.workflow.permissions import RoleLevels


class TestSettings:
    """Test settings validators."""

    def test_defaults(self):
        """Test default role ladder and margins."""
        settings = Settings(_env_file=None)
        assert settings.handler_min_level == 3000
        assert settings.team_scope_min_level == 4000
        assert settings.margin_healthy_percent == 20.0

    def test_log_level_normalized(self):
        """Test log level is upper-cased."""
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Test unknown log level is rejected."""
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_invalid_environment(self):
        """Test unknown environment is rejected."""
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, environment="qa")

    def test_trailing_slash_stripped(self):
        """Test base URLs lose their trailing slash."""
        settings = Settings(
            _env_file=None,
            quote_api_base_url="https://api.example.com/api/",
            pricing_api_base_url="https://pricing.example.com/"
        )
        assert settings.quote_api_base_url == "https://api.example.com/api"
        assert settings.effective_pricing_api_base_url == "https://pricing.example.com"

    def test_pricing_url_falls_back(self):
        """Test pricing URL defaults to the platform URL."""
        settings = Settings(_env_file=None, quote_api_base_url="https://api.example.com/api")
        assert settings.effective_pricing_api_base_url == "https://api.example.com/api"

    def test_role_ladder_must_climb(self):
        """Test handler above team scope is rejected."""
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, handler_min_level=4500, team_scope_min_level=4000)

    def test_margin_bands_ordered(self):
        """Test warning band above healthy band is rejected."""
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, margin_healthy_percent=10, margin_warning_percent=20)

    def test_role_levels_from_settings(self):
        """Test role thresholds follow settings."""
        settings = Settings(_env_file=None, org_scope_min_level=5000)
        levels = RoleLevels.from_settings(settings)
        assert levels.team_scope == 4000
        assert levels.org_scope == 5000
        assert levels.handler == 3000


class TestSecretsLoading:
    """Test Secrets Manager loading outside Lambda."""

    def test_skipped_outside_lambda(self, monkeypatch):
        """Test that local runs never call AWS."""
        monkeypatch.delenv("AWS_LAMBDA_FUNCTION_NAME", raising=False)
        assert load_secrets_from_aws() is False

    def test_skipped_when_credentials_present(self, monkeypatch):
        """Test that existing credentials win."""
        monkeypatch.setenv("AWS_LAMBDA_FUNCTION_NAME", "quote-workflow")
        monkeypatch.setenv("QUOTE_API_TOKEN", "already-set")
        assert load_secrets_from_aws() is False

    def test_missing_settings_file(self):
        """Test loading from a file that does not exist."""
        with pytest.raises(FileNotFoundError):
            load_settings_from_file("/nonexistent/quote-workflow.env")
