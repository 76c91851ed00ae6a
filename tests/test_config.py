"""Tests for configuration management."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sentry_types.config import Settings
from sentry_types.protocol.versions import ProtocolVersion


class TestSettingsValidation:
    """Tests for settings validation and parsing."""

    def test_default_values(self):
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.default_protocol_version is ProtocolVersion.V7
            assert settings.client_name == "sentry-types.python"
            assert settings.client_version == "0.21.0"
            assert settings.log_level == "INFO"
            assert settings.log_json is True

    def test_parse_protocol_version_from_env(self):
        """Test selecting a protocol version through the environment."""
        with patch.dict(os.environ, {"SENTRY_TYPES_DEFAULT_PROTOCOL_VERSION": "6"}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.default_protocol_version is ProtocolVersion.V6

    def test_parse_protocol_version_empty_string(self):
        """Test that an empty version falls back to the latest one."""
        with patch.dict(os.environ, {"SENTRY_TYPES_DEFAULT_PROTOCOL_VERSION": ""}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.default_protocol_version is ProtocolVersion.LATEST

    def test_parse_protocol_version_unsupported(self):
        """Test that unknown protocol versions are rejected."""
        with patch.dict(os.environ, {"SENTRY_TYPES_DEFAULT_PROTOCOL_VERSION": "4"}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_parse_log_level_lowercase(self):
        """Test that log level names are upper-cased."""
        with patch.dict(os.environ, {"SENTRY_TYPES_LOG_LEVEL": "debug"}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.log_level == "DEBUG"

    def test_parse_log_json_false(self):
        """Test switching to console log rendering."""
        with patch.dict(os.environ, {"SENTRY_TYPES_LOG_JSON": "false"}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.log_json is False

    def test_client_identity_from_env(self):
        """Test overriding the client identity."""
        env = {
            "SENTRY_TYPES_CLIENT_NAME": "relay",
            "SENTRY_TYPES_CLIENT_VERSION": "24.1.0",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)
            assert settings.client_name == "relay"
            assert settings.client_version == "24.1.0"

    def test_unprefixed_variables_ignored(self):
        """Test that variables without the prefix do not leak in."""
        with patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.log_level == "INFO"
