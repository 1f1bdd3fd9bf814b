# qcomposer/settings.py
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings for the Quantum Circuit Composer.
    """

    # --- Oracles ---
    ORACLE: str = "stim"  # "stim" | "qiskit"
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini-search-preview"

    # --- Run animation ---
    STEP_DELAY_MS: int = 600

    # --- Web sessions ---
    ABANDON_THRESHOLD_MIN: int = 60

    # --- Feature flags ---
    AUTO_EXPLAIN: bool = True
    INITIAL_RUN: bool = True  # simulate the starting circuit when a session opens

    # --- Auth ---
    ENABLE_AUTH: bool = False
    USER: str | None = None
    PASS: str | None = None

    # --- Runtime ---
    LOG_LEVEL: str = "INFO"
    model_config = SettingsConfigDict(
        env_prefix="QCOMPOSER_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def step_delay(self) -> float:
        return self.STEP_DELAY_MS / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
