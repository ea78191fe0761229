"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./dreamleague.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_STATEMENT_TIMEOUT_MS: int = 60000

    # API-Football (RapidAPI or API-Sports direct)
    RAPIDAPI_KEY: str = ""
    RAPIDAPI_HOST: str = "api-football-v1.p.rapidapi.com"
    API_REQUESTS_PER_MINUTE: int = 300
    FOOTBALL_API_LEAGUE_ID: int = 140  # La Liga
    FOOTBALL_API_SEASON: int = 2025

    # API Security
    API_KEY: str = ""  # Optional API key for admin endpoints
    API_KEY_HEADER: str = "X-API-Key"
    RATE_LIMIT_PER_MINUTE: str = "60/minute"

    # ═══════════════════════════════════════════════════════════════
    # Game rules: budgets, squads and parlays
    # ═══════════════════════════════════════════════════════════════

    JORNADA_BASE_BUDGET: int = 500  # Fixed baseline for initial_budget recompute
    BETTING_BUDGET_PER_JORNADA: int = 250  # Ticket allowance reset at close
    SQUAD_SIZE: int = 11
    COMBI_MIN_SELECTIONS: int = 2
    COMBI_MAX_SELECTIONS: int = 3
    COMBI_MIN_AMOUNT: int = 1
    COMBI_MAX_AMOUNT: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
