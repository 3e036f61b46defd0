"""Tests for settings and policy wiring."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from recipe_manager.clients.registry import breaker_config, build_policies, retry_plan
from recipe_manager.services.config import (
    BackoffKind,
    BreakerRecording,
    DependencyPolicy,
)
from recipe_manager.settings import Settings


@pytest.mark.unit
class TestSettings:
    """Test env-style configuration."""

    def test_defaults(self):
        settings = Settings.model_validate({})

        assert settings.log_level == "INFO"
        assert settings.connect_timeout == 5.0
        assert settings.read_timeout == 10.0
        assert settings.recipe_scraper_cache_ttl_minutes == 30
        assert settings.breaker_recording == "attempt"

    def test_values_from_environment_names(self):
        settings = Settings.model_validate(
            {
                "EXTERNAL_CONNECT_TIMEOUT": "2.5",
                "RETRY_MAX_ATTEMPTS": "5",
                "RETRY_BACKOFF": "fixed",
                "BREAKER_RECORDING": "call",
                "BREAKER_COOL_DOWN_SECONDS": "60",
                "MEDIA_MANAGER_ENABLED": "false",
            }
        )

        assert settings.connect_timeout == 2.5
        assert retry_plan(settings).max_attempts == 5
        assert retry_plan(settings).backoff is BackoffKind.FIXED
        assert breaker_config(settings).recording is BreakerRecording.PER_CALL
        assert breaker_config(settings).cool_down == timedelta(seconds=60)
        assert settings.media_manager_enabled is False

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"BREAKER_FAILURE_RATE_THRESHOLD": "0"})

    def test_policies_per_dependency(self):
        policies = {p.name: p for p in build_policies(Settings.model_validate({}))}

        assert set(policies) == {
            "recipe-scraper",
            "user-management",
            "notification-service",
            "media-manager",
        }
        assert policies["recipe-scraper"].cache_ttl == timedelta(minutes=30)
        assert policies["recipe-scraper"].deadline == 15.0
        assert policies["notification-service"].cache_enabled is False
        assert all(p.fallback is not None for p in policies.values())


@pytest.mark.unit
class TestDependencyPolicy:
    """Test policy validation."""

    def test_name_required(self):
        with pytest.raises(ValidationError):
            DependencyPolicy(name="")

    def test_positive_cache_size(self):
        with pytest.raises(ValidationError):
            DependencyPolicy(name="recipe-scraper", cache_max_size=0)

    def test_with_disabled_copy(self):
        policy = DependencyPolicy(name="recipe-scraper")
        disabled = policy.model_copy(update={"enabled": False})

        assert policy.enabled is True
        assert disabled.enabled is False
        assert disabled.retry == policy.retry


@pytest.mark.unit
class TestLogging:
    """Test log sink configuration."""

    def test_configure_logging_renders_bound_extras(self, capsys):
        from loguru import logger

        from recipe_manager.utils import configure_logging

        sink_id = configure_logging("debug")
        logger.bind(dependency="recipe-scraper", correlation_id="req-1").info("calling")
        logger.remove(sink_id)

        captured = capsys.readouterr()
        assert "recipe-scraper" in captured.err
        assert "req-1" in captured.err
        assert "calling" in captured.err
