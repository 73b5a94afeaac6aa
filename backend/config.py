"""
Configuration management for the Darzi order & discovery backend.

Loads settings from .env via pydantic-settings.

Notes:
    - DEPOSIT_CONFIRMATION_POLICY makes the deposit → ACCEPTED coupling explicit
    - DISCOVERY_MAX_RADIUS_KM is the hard ceiling any caller-supplied radius is checked against
    - validate_production_settings() enforces strict CORS in production
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/darzi.db"
    store_timeout_seconds: float = 5.0  # SQLite busy timeout; expiry surfaces as StorageError

    # ── Order Lifecycle ─────────────────────────────────────────────
    # "force": confirming a deposit moves any order to ACCEPTED (observed app behaviour)
    # "placed_only": deposit confirmation requires status == PLACED, like accept
    deposit_confirmation_policy: Literal["force", "placed_only"] = "force"
    delivery_code_length: int = 4
    order_require_known_provider: bool = False

    # ── Provider Discovery ──────────────────────────────────────────
    discovery_min_radius_km: float = 1.0
    discovery_max_radius_km: float = 5.0
    discovery_step_km: float = 1.0
    discovery_distance_precision: int = 2      # decimals of distance_km
    discovery_cache_ttl_seconds: int = 30      # 0 disables the result cache
    discovery_cache_max_entries: int = 1024

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8080,http://127.0.0.1:8080"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup. Blocks wildcard CORS and inconsistent
        discovery radii in production, warns about them elsewhere.
        """
        if self.discovery_min_radius_km > self.discovery_max_radius_km:
            raise ValueError(
                "DISCOVERY_MIN_RADIUS_KM must not exceed DISCOVERY_MAX_RADIUS_KM."
            )
        if self.discovery_step_km <= 0:
            raise ValueError("DISCOVERY_STEP_KM must be positive.")

        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if self.database_url.startswith("sqlite") and ":memory:" in self.database_url:
                raise ValueError(
                    "DATABASE_URL must not be an in-memory database in production."
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            if self.deposit_confirmation_policy == "force":
                warnings.append(
                    "DEPOSIT_CONFIRMATION_POLICY=force (deposit confirmation overrides any order status)"
                )
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
