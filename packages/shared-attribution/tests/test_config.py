"""Tests for AttributionConfig."""

from datetime import UTC, datetime

import pytest
from funnelnav.attribution.config import DEFAULT_NEW_METHOD_CUTOFF, AttributionConfig
from funnelnav.attribution.exceptions import AttributionError, ConfigError


class TestAttributionConfig:
    """Test AttributionConfig defaults and validation."""

    def test_defaults(self):
        """Test default windows and cutoff."""
        config = AttributionConfig()

        assert config.email_window == (1, 90)
        assert config.audit_window == (-30, 30)
        assert config.new_method_cutoff == datetime(2025, 3, 1, tzinfo=UTC)

    def test_custom_windows(self):
        """Test overriding windows."""
        config = AttributionConfig(email_window_max_days=60, audit_window_days=7)

        assert config.email_window == (1, 60)
        assert config.audit_window == (-7, 7)

    def test_frozen(self):
        """Test config cannot be mutated."""
        config = AttributionConfig()
        with pytest.raises(AttributeError):
            config.audit_window_days = 10

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"email_window_min_days": -1},
            {"email_window_min_days": 10, "email_window_max_days": 5},
            {"audit_window_days": -1},
            {"new_method_cutoff": datetime(2025, 3, 1)},
        ],
    )
    def test_invalid(self, kwargs):
        """Test invalid configuration raises ConfigError."""
        with pytest.raises(ConfigError):
            AttributionConfig(**kwargs)

    def test_config_error_is_attribution_error(self):
        """Test ConfigError is part of the AttributionError hierarchy."""
        with pytest.raises(AttributionError):
            AttributionConfig(audit_window_days=-5)


class TestFromEnv:
    """Test AttributionConfig.from_env."""

    def test_no_env(self, monkeypatch):
        """Test defaults when no variables are set."""
        monkeypatch.delenv("FUNNELNAV_EMAIL_WINDOW_MAX_DAYS", raising=False)
        monkeypatch.delenv("FUNNELNAV_AUDIT_WINDOW_DAYS", raising=False)
        monkeypatch.delenv("FUNNELNAV_NEW_METHOD_CUTOFF", raising=False)

        assert AttributionConfig.from_env() == AttributionConfig()

    def test_reads_env(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("FUNNELNAV_EMAIL_WINDOW_MAX_DAYS", "45")
        monkeypatch.setenv("FUNNELNAV_AUDIT_WINDOW_DAYS", "14")
        monkeypatch.setenv("FUNNELNAV_NEW_METHOD_CUTOFF", "2025-04-01")

        config = AttributionConfig.from_env()

        assert config.email_window == (1, 45)
        assert config.audit_window == (-14, 14)
        assert config.new_method_cutoff == datetime(2025, 4, 1, tzinfo=UTC)

    def test_aware_cutoff_kept(self, monkeypatch):
        """Test an explicit offset on the cutoff is preserved."""
        monkeypatch.delenv("FUNNELNAV_EMAIL_WINDOW_MAX_DAYS", raising=False)
        monkeypatch.delenv("FUNNELNAV_AUDIT_WINDOW_DAYS", raising=False)
        monkeypatch.setenv("FUNNELNAV_NEW_METHOD_CUTOFF", "2025-03-01T00:00:00+00:00")

        assert AttributionConfig.from_env().new_method_cutoff == DEFAULT_NEW_METHOD_CUTOFF

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("FUNNELNAV_EMAIL_WINDOW_MAX_DAYS", "ninety"),
            ("FUNNELNAV_AUDIT_WINDOW_DAYS", "1.5"),
            ("FUNNELNAV_NEW_METHOD_CUTOFF", "March 2025"),
        ],
    )
    def test_invalid_env(self, monkeypatch, name, value):
        """Test invalid variables raise ConfigError."""
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigError, match=name):
            AttributionConfig.from_env()
