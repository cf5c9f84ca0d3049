"""Unit tests for operator settings."""

import logging
import pytest

from suite_operator.config.settings import ConfigurationError, load_settings


@pytest.mark.unit
class TestSettings:
    """Test environment loading and validation."""

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)

        settings = load_settings()

        assert settings.watch_namespace == "suite-operator"
        assert settings.installation_type == "managed"
        assert settings.requeue_delay_seconds == 10.0
        assert settings.products_list == ["all"]
        assert settings.required_secrets_list == ["github-oauth-secret"]

    def test_environment_overrides(self, monkeypatch, tmp_path):
        # Arrange
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SUITE_OPERATOR_PRODUCTS", "rhsso, 3scale ,")
        monkeypatch.setenv("SUITE_OPERATOR_REQUEUE_DELAY_SECONDS", "2.5")
        monkeypatch.setenv("SUITE_OPERATOR_LOG_LEVEL", "debug")

        # Act
        settings = load_settings()

        # Assert
        assert settings.products_list == ["rhsso", "3scale"]
        assert settings.requeue_delay_seconds == 2.5
        assert settings.log_level == "DEBUG"
        assert settings.log_level_value == logging.DEBUG

    @pytest.mark.parametrize(
        "override",
        [
            {"requeue_delay_seconds": 0},
            {"failure_max_delay_seconds": -1},
            {"workers": 0},
            {"log_level": "chatty"},
        ],
    )
    def test_invalid_values(self, override):
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            load_settings(**override)

    def test_empty_secret_list(self):
        settings = load_settings(required_secrets="")

        assert settings.required_secrets_list == []
