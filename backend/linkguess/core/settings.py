# backend/linkguess/core/settings.py
# Paramètres de l'application (MongoDB, Redis, caches, retry) chargés depuis l'environnement / `.env`.

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from rich import print


class Settings(BaseSettings):
    # === App settings ===
    app_name: str = "LinkGuess"
    environment: str = "development"  # or "production"

    # === MongoDB ===
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "linkguess"
    seed_indexes_on_startup: bool = True

    # === Redis (cache profils + leaderboard) ===
    redis_url: str = "redis://localhost:6379/0"
    leaderboard_key: str = "leaderboard:points"
    profile_cache_ttl_s: int = 5 * 60

    # === GAMEPLAY ===
    max_attempts: int = 10

    # === READ PATH ===
    dedupe_timeout_s: float = 30.0
    preload_count: int = 3
    preload_max_cache_size: int = 10
    preload_delay_s: float = 0.1

    # === RETRY ===
    retry_max_attempts: int = 3
    retry_initial_delay_s: float = 1.0
    retry_max_delay_s: float = 10.0
    retry_jitter_ratio: float = 0.3

    # === LOGS ===
    log_dir: str = "logs"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Retourne l'instance unique des paramètres.

    Returns:
        Settings: Paramètres chargés (env + `.env`).
    """
    settings = Settings()
    if not settings.is_production:
        print("--- Settings loaded ---")
    return settings
