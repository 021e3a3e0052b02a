"""
Tests for ESLSettings.

Referências:
- fsesl/settings.py
"""

import pytest
from pydantic import ValidationError

from fsesl.settings import ESLSettings

ENV_KEYS = [
    "ESL_HOST", "ESL_PORT", "ESL_PASSWORD",
    "ESL_CONNECT_TIMEOUT", "ESL_API_TIMEOUT", "ESL_EVENTS", "DEBUG",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestESLSettings:

    def test_defaults(self, clean_env):
        settings = ESLSettings(_env_file=None)

        assert settings.ESL_HOST == "127.0.0.1"
        assert settings.ESL_PORT == 8021
        assert settings.ESL_PASSWORD == "ClueCon"
        assert settings.esl_addr == "127.0.0.1:8021"
        assert settings.esl_event_list == [
            "CHANNEL_CREATE", "CHANNEL_ANSWER", "CHANNEL_HANGUP", "BACKGROUND_JOB",
        ]
        assert settings.DEBUG is False

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("ESL_HOST", "10.0.0.5")
        clean_env.setenv("ESL_PORT", "8022")
        clean_env.setenv("ESL_EVENTS", "  CHANNEL_HANGUP   DTMF ")
        clean_env.setenv("ESL_API_TIMEOUT", "1.5")

        settings = ESLSettings(_env_file=None)

        assert settings.esl_addr == "10.0.0.5:8022"
        assert settings.esl_event_list == ["CHANNEL_HANGUP", "DTMF"]
        assert settings.ESL_API_TIMEOUT == 1.5

    def test_empty_event_list(self, clean_env):
        settings = ESLSettings(_env_file=None, ESL_EVENTS="")
        assert settings.esl_event_list == []

    @pytest.mark.parametrize("port", [0, 70000])
    def test_invalid_port(self, clean_env, port):
        with pytest.raises(ValidationError):
            ESLSettings(_env_file=None, ESL_PORT=port)

    def test_non_positive_timeout(self, clean_env):
        with pytest.raises(ValidationError):
            ESLSettings(_env_file=None, ESL_API_TIMEOUT=0)
