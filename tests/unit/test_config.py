"""Tests for configuration validation."""

import pytest

from src.core.config import Settings


def test_require_credential_with_valid_value() -> None:
    settings = Settings(mailjet_api_key="public")

    assert settings.require_credential("mailjet_api_key", "Mailjet API key") == "public"


def test_require_credential_with_none_raises_error() -> None:
    settings = Settings(twilio_auth_token=None)

    with pytest.raises(ValueError, match="Twilio auth token credential not configured"):
        settings.require_credential("twilio_auth_token", "Twilio auth token")


def test_require_credential_with_empty_string_raises_error() -> None:
    settings = Settings(mailjet_secret_key="")

    with pytest.raises(ValueError, match="MAILJET_SECRET_KEY"):
        settings.require_credential("mailjet_secret_key", "Mailjet secret key")


def test_simulated_mode_is_the_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NOTIFICATION_MODE", raising=False)

    settings = Settings(_env_file=None)

    assert settings.notification_mode == "simulated"
    assert settings.is_live is False


def test_mode_is_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NOTIFICATION_MODE", "live")
    monkeypatch.setenv("REMINDER_POLL_INTERVAL_SECONDS", "15")

    settings = Settings(_env_file=None)

    assert settings.is_live is True
    assert settings.reminder_poll_interval_seconds == 15


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match="notification_mode"):
        Settings(notification_mode="dry-run")
