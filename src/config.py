"""
Application Configuration

Reads settings from environment variables (a .env file is loaded by
main.py before anything else is imported).
"""

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings.

    ORACLE_BACKEND selects where flows run:
    - "ollama": live model through the Ollama HTTP API
    - "stub": deterministic offline oracles (demo and tests)
    """
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "gemma:2b"
    llm_timeout_seconds: int = 90
    oracle_backend: str = "ollama"
    default_quantity: str = "1 serving"
    toast_limit: int = 5
    daily_calorie_target: int = 2000
    session_ttl_seconds: int = 7200
    max_sessions: int = 1000
    log_level: str = "INFO"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        backend = os.getenv("ORACLE_BACKEND", cls.oracle_backend).strip().lower()
        if backend not in ("ollama", "stub"):
            raise ValueError(f"ORACLE_BACKEND must be 'ollama' or 'stub', got {backend!r}")

        return cls(
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", cls.ollama_base_url),
            ollama_model=os.getenv("OLLAMA_MODEL", cls.ollama_model),
            llm_timeout_seconds=_env_int("LLM_TIMEOUT_SECONDS", cls.llm_timeout_seconds),
            oracle_backend=backend,
            default_quantity=os.getenv("DEFAULT_QUANTITY", cls.default_quantity),
            toast_limit=_env_int("TOAST_LIMIT", cls.toast_limit),
            daily_calorie_target=_env_int("DAILY_CALORIE_TARGET", cls.daily_calorie_target),
            session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", cls.session_ttl_seconds),
            max_sessions=_env_int("MAX_SESSIONS", cls.max_sessions),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            environment=os.getenv("ENVIRONMENT", cls.environment),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings.from_env()
