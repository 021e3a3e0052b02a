"""
Configurações do cliente ESL.

Carregadas de variáveis de ambiente ou arquivo .env.
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class ESLSettings(BaseSettings):
    """
    Configurações de conexão ESL Inbound.

    Carregadas de variáveis de ambiente.
    """

    # FreeSWITCH mod_event_socket
    ESL_HOST: str = "127.0.0.1"
    ESL_PORT: int = 8021
    ESL_PASSWORD: str = "ClueCon"

    # Timeouts (segundos)
    ESL_CONNECT_TIMEOUT: float = 5.0
    ESL_API_TIMEOUT: float = 5.0

    # Eventos subscritos ao conectar (separados por espaço)
    ESL_EVENTS: str = "CHANNEL_CREATE CHANNEL_ANSWER CHANNEL_HANGUP BACKGROUND_JOB"

    DEBUG: bool = False

    @field_validator("ESL_PORT")
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError(f"Invalid ESL_PORT: {v}")
        return v

    @field_validator("ESL_CONNECT_TIMEOUT", "ESL_API_TIMEOUT")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError(f"Timeout must be positive: {v}")
        return v

    @property
    def esl_addr(self) -> str:
        return f"{self.ESL_HOST}:{self.ESL_PORT}"

    @property
    def esl_event_list(self) -> List[str]:
        return self.ESL_EVENTS.split()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Singleton
_settings: Optional[ESLSettings] = None


def get_esl_settings() -> ESLSettings:
    global _settings
    if _settings is None:
        _settings = ESLSettings()
    return _settings
