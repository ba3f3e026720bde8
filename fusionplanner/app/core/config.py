# File: fusionplanner/app/core/config.py
# Version: v0.2.0
"""
Centralized application settings using Pydantic Settings.

Controls:
- App metadata and API prefix
- CORS origins
- Log level
- Shared cache sizes (sub-scores, domestication summaries)
- Search budgets (B&B nodes, Monte Carlo iterations/restarts, DP repair and tie walk)
- Scoring thread pool
"""
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- App ---
    API_PREFIX: str = "/api"
    APP_NAME: str = "FusionPlanner"
    APP_VERSION: str = "0.1.0"

    # --- CORS ---
    CORS_ORIGINS: str = "*"  # comma-separated or '*' for all

    # --- Caches ---
    SCORE_CACHE_SIZE: int = 200_000
    DOMESTICATION_CACHE_SIZE: int = 256
    CACHE_ENABLED: bool = True

    # --- Search budgets ---
    BB_MAX_NODES: int = 200_000
    MC_ITERATIONS: int = 2_000
    MC_RESTARTS: int = 200
    MC_DEFAULT_SEED: int = 7
    DP_MAX_REPAIR_ITERATIONS: int = 25
    DP_REPAIR_RADIUS: int = 30
    DP_MAX_TIED_PATHS: int = 256

    # --- Scoring ---
    SCORING_WORKERS: int = 1
    SCORING_CHUNK_SIZE: int = 64

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "info"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="FUSION_", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        raw = self.CORS_ORIGINS.strip()
        if raw == "*":
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


settings = Settings()
