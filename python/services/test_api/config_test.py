import pytest
from pydantic import ValidationError

from test_api.config import Settings


def test_defaults(monkeypatch):
    for name in ("AGENT_CONFIG", "HOST", "HEARTBEAT_INTERVAL", "SHUTDOWN_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(f"TEST_API_{name}", raising=False)
    settings = Settings()
    assert settings.agent_config == ""
    assert settings.heartbeat_interval == 60
    assert settings.shutdown_timeout == 10


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TEST_API_AGENT_CONFIG", "/etc/agent.yaml")
    monkeypatch.setenv("TEST_API_HEARTBEAT_INTERVAL", "5")
    monkeypatch.setenv("TEST_API_LOG_LEVEL", "debug")
    settings = Settings()
    assert settings.agent_config == "/etc/agent.yaml"
    assert settings.heartbeat_interval == 5
    assert settings.log_level == "DEBUG"


def test_rejects_non_positive_timeout(monkeypatch):
    monkeypatch.setenv("TEST_API_SHUTDOWN_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        Settings()


def test_rejects_unknown_log_level(monkeypatch):
    monkeypatch.setenv("TEST_API_LOG_LEVEL", "verbose")
    with pytest.raises(ValidationError):
        Settings()
