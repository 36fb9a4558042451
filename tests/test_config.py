import pytest
from pydantic import ValidationError

from config import Settings


def test_defaults(monkeypatch):
    for name in ("CURRICULUM_UNITS_DIR", "CURRICULUM_PROGRESS_DIR",
                 "CURRICULUM_LOCK_TIMEOUT", "CURRICULUM_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("config.load_dotenv", lambda: False)
    settings = Settings.from_env()
    assert settings.units_dir == "units"
    assert settings.progress_dir == "progress"
    assert settings.lock_timeout == 5.0
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setattr("config.load_dotenv", lambda: False)
    monkeypatch.setenv("CURRICULUM_UNITS_DIR", "/data/units")
    monkeypatch.setenv("CURRICULUM_LOCK_TIMEOUT", "0.25")
    settings = Settings.from_env()
    assert settings.units_dir == "/data/units"
    assert settings.lock_timeout == 0.25


def test_invalid_timeout(monkeypatch):
    monkeypatch.setattr("config.load_dotenv", lambda: False)
    monkeypatch.setenv("CURRICULUM_LOCK_TIMEOUT", "-1")
    with pytest.raises(ValidationError):
        Settings.from_env()
