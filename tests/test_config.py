import pytest

from agent_oop import config


def test_require_env_returns_value(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "secret")

    assert config.get_groq_api_key() == "secret"


def test_require_env_missing_or_empty(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    with pytest.raises(RuntimeError, match="is not set"):
        config.get_groq_api_key()

    monkeypatch.setenv("GROQ_API_KEY", "")
    with pytest.raises(RuntimeError, match="is empty"):
        config.get_groq_api_key()


def test_integer_settings_fall_back_to_defaults(monkeypatch):
    monkeypatch.delenv("AGENT_BASH_TIMEOUT", raising=False)

    assert config.get_max_turns() == config.DEFAULT_MAX_TURNS
    assert config.get_bash_timeout() == config.DEFAULT_BASH_TIMEOUT


@pytest.mark.parametrize("raw", ["ten", "0", "-3"])
def test_integer_settings_reject_bad_values(monkeypatch, raw):
    monkeypatch.setenv("AGENT_MAX_TURNS", raw)

    with pytest.raises(RuntimeError, match="AGENT_MAX_TURNS"):
        config.get_max_turns()


def test_log_level_is_normalised(monkeypatch):
    monkeypatch.setenv("AGENT_LOG_LEVEL", "debug")
    assert config.get_log_level() == "DEBUG"

    monkeypatch.delenv("AGENT_LOG_LEVEL")
    assert config.get_log_level() == "INFO"
