import pytest
from pydantic import ValidationError

from config.settings import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.DB_PATH.endswith(".db")
    assert settings.APPROVAL_MIN_COMPLETION == 0.5
    assert settings.APPROVAL_MIN_RATING == 2.0
    assert settings.REJECTION_REASON_MIN_LENGTH == 10
    assert settings.SIGNIFICANT_RATING_DELTA == 0.3
    assert settings.LENIENT_STAGE_FALLBACK is True


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("APPROVAL_MIN_RATING", "3.5")
    monkeypatch.setenv("LENIENT_STAGE_FALLBACK", "false")
    settings = Settings(_env_file=None)
    assert settings.APPROVAL_MIN_RATING == 3.5
    assert settings.LENIENT_STAGE_FALLBACK is False


def test_settings_validate_assignment():
    settings = Settings(_env_file=None)
    with pytest.raises(ValidationError):
        settings.APPROVAL_MIN_COMPLETION = 1.5
