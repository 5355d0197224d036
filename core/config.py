"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates all required settings
- Provides type-safe access to configuration values
- Converts the comma-separated symbol string to a list

Usage:
    from core.config import settings

    print(settings.binance_base_url)
    print(settings.symbols_list)  # ["BTC", "ETH", ...]
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        binance_base_url: Base URL for the Binance spot REST API
        tracked_symbols: Comma-separated ticker codes to monitor (quoted against USDT)
        default_interval: Interval label active at startup
        refresh_period_seconds: Period between scheduled refresh cycles
        cycle_timeout_seconds: Deadline for one whole refresh cycle
        request_timeout: Upper bound for a single upstream HTTP request
        send_timeout: Upper bound for delivering one snapshot to one subscriber
        app_host: Host address for the server
        app_port: Port number for the server
        static_dir: Directory holding the widget front-end (mounted at "/")
        debug: Enable debug mode with verbose logging
        log_level: Logging level
    """

    # ============================================
    # Binance API Configuration
    # ============================================

    binance_base_url: str = Field(
        default="https://api.binance.com",
        description="Binance spot API base URL"
    )

    # ============================================
    # Tracked Markets Configuration
    # ============================================

    tracked_symbols: str = Field(
        default="BTC,ETH,SOL,XRP,DOGE,ADA,TRX,SUI",
        description="Comma-separated list of ticker codes (paired with USDT upstream)"
    )

    default_interval: str = Field(
        default="5m",
        description="History interval used until a client selects another one"
    )

    # ============================================
    # Refresh Timing
    # ============================================

    refresh_period_seconds: float = Field(
        default=10.0,
        description="Seconds between scheduled refresh cycles"
    )

    cycle_timeout_seconds: float = Field(
        default=10.0,
        description="Deadline for one refresh cycle; unfinished symbols are abandoned"
    )

    request_timeout: float = Field(
        default=10.0,
        description="HTTP request timeout in seconds"
    )

    send_timeout: float = Field(
        default=5.0,
        description="Seconds allowed for one WebSocket send before the subscriber is skipped"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="127.0.0.1",
        description="Server host address"
    )

    app_port: int = Field(
        default=8080,
        description="Server port"
    )

    static_dir: str = Field(
        default="static",
        description="Directory with the widget front-end (skipped if missing)"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def symbols_list(self) -> List[str]:
        """
        Convert comma-separated symbols string to a list.

        Example:
            >>> settings.symbols_list
            ['BTC', 'ETH', 'SOL', 'XRP', 'DOGE', 'ADA', 'TRX', 'SUI']
        """
        return [s.strip().upper() for s in self.tracked_symbols.split(",") if s.strip()]


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Settings = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # logging.py imports config.py, so import lazily
    from core.logging import logger
    from core.intervals import INTERVALS

    config = config or settings

    if not config.symbols_list:
        raise ValueError("TRACKED_SYMBOLS must contain at least one symbol")

    if config.default_interval not in INTERVALS:
        raise ValueError(
            f"Invalid DEFAULT_INTERVAL: '{config.default_interval}'. "
            f"Must be one of: {', '.join(INTERVALS)}"
        )

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    for name in ("refresh_period_seconds", "cycle_timeout_seconds", "request_timeout", "send_timeout"):
        if getattr(config, name) <= 0:
            raise ValueError(f"{name.upper()} must be positive, got {getattr(config, name)}")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Tracking symbols: {', '.join(config.symbols_list)}")
    logger.info(f"Default interval: {config.default_interval}")
    logger.info(f"Binance API: {config.binance_base_url}")
    logger.info(
        f"Refresh every {config.refresh_period_seconds:g}s "
        f"(cycle deadline {config.cycle_timeout_seconds:g}s)"
    )
    logger.info(f"Server: {config.app_host}:{config.app_port}")
    logger.info(f"Log level: {config.log_level.upper()}")
