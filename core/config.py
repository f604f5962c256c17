"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates poll interval, price-change threshold and source timeouts
- Provides type-safe access to configuration values
- Converts comma-separated strings to lists (CORS origins)

Usage:
    from core.config import settings

    print(settings.poll_interval_ms)          # 30000
    print(settings.price_change_threshold)    # 0.05
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file
    (matching is case-insensitive, so POLL_INTERVAL_MS sets poll_interval_ms).

    Attributes:
        poll_interval_ms: Interval between poll cycles in milliseconds
        price_change_threshold: Relative price move that counts as a change (0.05 = 5%)
        source_request_timeout: Timeout for a single HTTP request to a provider (seconds)
        source_deadline_seconds: Hard deadline for one adapter's whole fetch (retries included)
        dexscreener_*: DexScreener endpoint, search query and retry budget
        geckoterminal_*: GeckoTerminal endpoint, network and retry budget
        jupiter_*: Jupiter price API used as GeckoTerminal's fallback
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
        log_level: Logging level
        cors_origins: Comma-separated list of allowed origins ("*" for any)
        event_queue_size: Per-subscriber queue size on the event bus
    """

    # ============================================
    # Poll Cycle Configuration
    # ============================================

    poll_interval_ms: int = Field(
        default=30_000,
        description="Interval between poll cycles in milliseconds"
    )

    price_change_threshold: float = Field(
        default=0.05,
        description="Minimum relative price change reported as a price change (fraction)"
    )

    # ============================================
    # Source Provider Configuration
    # ============================================

    source_request_timeout: int = Field(
        default=10,
        description="HTTP request timeout for provider calls in seconds"
    )

    source_deadline_seconds: int = Field(
        default=30,
        description="Maximum time one source may take per cycle, retries included"
    )

    dexscreener_base_url: str = Field(
        default="https://api.dexscreener.com",
        description="DexScreener API base URL"
    )

    dexscreener_query: str = Field(
        default="solana",
        description="Search query sent to DexScreener"
    )

    dexscreener_max_attempts: int = Field(
        default=4,
        description="Maximum DexScreener request attempts per cycle"
    )

    geckoterminal_base_url: str = Field(
        default="https://api.geckoterminal.com/api/v2",
        description="GeckoTerminal API base URL"
    )

    geckoterminal_network: str = Field(
        default="solana",
        description="GeckoTerminal network id for trending pools"
    )

    geckoterminal_max_attempts: int = Field(
        default=3,
        description="Maximum GeckoTerminal request attempts per cycle"
    )

    jupiter_price_url: str = Field(
        default="https://api.jup.ag/price/v2",
        description="Jupiter price API (GeckoTerminal fallback)"
    )

    jupiter_fallback_enabled: bool = Field(
        default=True,
        description="Try Jupiter SOL price when GeckoTerminal is unavailable"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=3000,
        description="FastAPI server port"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    event_queue_size: int = Field(
        default=1000,
        description="Maximum queued events per WebSocket subscriber"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Derived Properties
    # ============================================

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['*']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration() -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If configuration is invalid
    """
    # logging.py imports config.py, so import lazily
    from core.logging import logger

    if settings.poll_interval_ms <= 0:
        raise ValueError(f"POLL_INTERVAL_MS must be positive, got {settings.poll_interval_ms}")

    if not (0 < settings.price_change_threshold < 1):
        raise ValueError(
            f"PRICE_CHANGE_THRESHOLD must be a fraction between 0 and 1, "
            f"got {settings.price_change_threshold}"
        )

    if settings.source_request_timeout <= 0 or settings.source_deadline_seconds <= 0:
        raise ValueError("Source timeouts must be positive")

    for name in ("dexscreener_max_attempts", "geckoterminal_max_attempts"):
        if getattr(settings, name) < 1:
            raise ValueError(f"{name.upper()} must be at least 1")

    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Poll interval: {settings.poll_interval_ms}ms")
    logger.info(f"Price change threshold: {settings.price_change_threshold:.2%}")
    logger.info(f"DexScreener: {settings.dexscreener_base_url} (q={settings.dexscreener_query})")
    logger.info(f"GeckoTerminal: {settings.geckoterminal_base_url} (network={settings.geckoterminal_network})")
    logger.info(f"Server: {settings.app_host}:{settings.app_port}")
    logger.info(f"Log level: {settings.log_level.upper()}")
