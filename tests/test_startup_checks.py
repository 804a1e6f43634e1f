import logging

import pytest

from subscribe_api.core.config import settings
from subscribe_api.core.startup_checks import validate_production_settings


def _set_valid_production_baseline(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "allowed_origins", ["https://bluebeaconshow.com"])
    monkeypatch.setattr(settings, "secure_cookies", True)
    monkeypatch.setattr(settings, "convertkit_api_key", "ck-live")
    monkeypatch.setattr(settings, "convertkit_form_id", "9005443")


def test_validate_production_settings_accepts_baseline(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_valid_production_baseline(monkeypatch)

    validate_production_settings()


def test_validate_production_settings_rejects_localhost_origin(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_valid_production_baseline(monkeypatch)
    monkeypatch.setattr(settings, "allowed_origins", ["https://bluebeaconshow.com", "http://localhost:3000"])

    with pytest.raises(RuntimeError) as exc:
        validate_production_settings()

    assert "must use https in production" in str(exc.value)
    assert "must not point at localhost" in str(exc.value)


def test_validate_production_settings_rejects_inverted_honeypot_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_valid_production_baseline(monkeypatch)
    monkeypatch.setattr(settings, "honeypot_delay_min_seconds", 1.0)
    monkeypatch.setattr(settings, "honeypot_delay_max_seconds", 0.5)

    with pytest.raises(RuntimeError) as exc:
        validate_production_settings()

    assert "HONEYPOT_DELAY_MIN_SECONDS" in str(exc.value)


def test_missing_provider_key_only_warns(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    _set_valid_production_baseline(monkeypatch)
    monkeypatch.setattr(settings, "convertkit_api_key", None)

    with caplog.at_level(logging.WARNING):
        validate_production_settings()

    assert any("CONVERTKIT_API_KEY" in r.getMessage() for r in caplog.records)


def test_validate_non_production_skips_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "environment", "local")
    monkeypatch.setattr(settings, "allowed_origins", ["http://localhost:3000"])

    validate_production_settings()
