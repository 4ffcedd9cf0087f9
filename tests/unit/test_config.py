"""Test Settings loading and validation."""

from decimal import Decimal

import pytest

from trade_analytics.core.config import Settings, load_settings
from trade_analytics.core.errors import ConfigurationError


class TestSettingsDefaults:
    def test_default_settings(self):
        settings = Settings()
        assert settings.sampling.enabled is True
        assert settings.sampling.daily_trade_threshold == 10
        assert settings.sampling.sampling_rate == 2
        assert settings.sampling.significant_profit_loss_threshold == 5.0
        assert settings.sampling.high_volatility_threshold == 2.0

    def test_replay_and_retry_defaults(self):
        settings = Settings()
        assert settings.replay.annualization_factor == 252
        assert settings.replay.bar_interval == "60minute"
        assert settings.retry.max_attempts == 3
        assert settings.aggregation.starting_equity == Decimal("0")

    def test_defaults_validate(self):
        Settings().validate_settings()  # Should not raise


class TestLoadSettings:
    def test_load_from_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            "[sampling]\n"
            "daily_trade_threshold = 25\n"
            "sampling_rate = 5\n"
            "\n"
            "[replay]\n"
            'bar_interval = "day"\n'
        )
        settings = load_settings(path)
        assert settings.sampling.daily_trade_threshold == 25
        assert settings.sampling.sampling_rate == 5
        assert settings.replay.bar_interval == "day"

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.toml")
        assert settings.sampling.daily_trade_threshold == 10

    def test_overrides_win(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[retry]\nmax_attempts = 5\n")
        settings = load_settings(path, overrides={"retry": {"max_attempts": 2}})
        assert settings.retry.max_attempts == 2

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TRADE_ANALYTICS_SAMPLING__SAMPLING_RATE", "4")
        assert load_settings().sampling.sampling_rate == 4

    @pytest.mark.parametrize(
        "overrides, match",
        [
            ({"sampling": {"sampling_rate": 0}}, "sampling_rate"),
            ({"sampling": {"daily_trade_threshold": -1}}, "daily_trade_threshold"),
            ({"replay": {"annualization_factor": 0}}, "annualization_factor"),
            ({"replay": {"max_concurrency": 0}}, "max_concurrency"),
            ({"retry": {"timeout_seconds": 0}}, "timeout_seconds"),
            ({"aggregation": {"starting_equity": "-1"}}, "starting_equity"),
            ({"observability": {"log_format": "xml"}}, "log_format"),
        ],
    )
    def test_invalid_values_are_fatal(self, overrides, match):
        with pytest.raises(ConfigurationError, match=match):
            load_settings(overrides=overrides)
