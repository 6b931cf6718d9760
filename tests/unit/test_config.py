"""
Unit tests for configuration management.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from faultline.config import Settings


def test_settings_loads_from_environment():
    """Test that settings can be loaded from environment variables."""
    with patch.dict(os.environ, {
        'LOG_LEVEL': 'DEBUG',
        'ENVIRONMENT': 'production',
        'LOG_DIR': '/var/log/faultline',
        'RATE_LIMIT_MAX_REQUESTS': '25',
        'RATE_LIMIT_WINDOW_SECONDS': '30',
        'CIRCUIT_FAILURE_THRESHOLD': '3',
        'CIRCUIT_RESET_TIMEOUT_SECONDS': '12.5',
        'TRUST_PROXY_HEADERS': 'false',
    }):
        settings = Settings(_env_file=None)

        assert settings.log_level == 'DEBUG'
        assert settings.environment == 'production'
        assert settings.rate_limit_max_requests == 25
        assert settings.rate_limit_window_seconds == 30
        assert settings.circuit_failure_threshold == 3
        assert settings.circuit_reset_timeout_seconds == 12.5
        assert settings.trust_proxy_headers is False
        assert settings.frontend_log_path == Path('/var/log/faultline/frontend-errors.log')


def test_settings_has_default_values():
    """Test that settings have appropriate default values."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.log_level == 'INFO'
        assert settings.environment == 'development'
        assert settings.max_message_length == 200
        assert settings.rate_limit_window_seconds == 60
        assert settings.rate_limit_max_requests == 10
        assert settings.rate_limit_sweep_interval_seconds == 300
        assert settings.circuit_failure_threshold == 5
        assert settings.circuit_reset_timeout_seconds == 60.0
        assert settings.retry_max_attempts == 3
        assert settings.retry_delay_seconds == 1.0
        assert settings.notification_timeout_seconds == 5.0


def test_log_paths_are_separate():
    settings = Settings(_env_file=None, log_dir='logs')

    assert settings.frontend_log_path == Path('logs') / 'frontend-errors.log'
    assert settings.backend_log_path == Path('logs') / 'backend-errors.log'
    assert settings.frontend_log_path != settings.backend_log_path


def test_invalid_integer_is_rejected():
    with patch.dict(os.environ, {'RATE_LIMIT_MAX_REQUESTS': 'many'}):
        with pytest.raises(ValueError):
            Settings(_env_file=None)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
