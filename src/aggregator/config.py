#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from .env_loader import load_env_file
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ArticleAggregator/1.0)"

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class HttpConfig:
    """HTTP transport configuration."""
    timeout: int = 20
    user_agent: str = DEFAULT_USER_AGENT
    max_connections: int = 10


@dataclass
class RunConfig:
    """Aggregation run configuration."""
    max_concurrent_sources: int = 8
    source_timeout: float = 60.0
    run_deadline: float = 300.0
    # Pause between article page requests to the same site
    request_delay: float = 0.5
    max_articles_per_source: int = 20
    fetch_content: bool = False


@dataclass
class DedupConfig:
    """Deduplication configuration."""
    similarity_threshold: float = 0.85
    window_minutes: int = 180
    cross_source_only: bool = True


@dataclass
class LoggingConfig:
    log_level: str = "INFO"
    verbose: bool = False


@dataclass
class AggregatorConfig:
    """Master configuration container."""
    http: HttpConfig = field(default_factory=HttpConfig)
    run: RunConfig = field(default_factory=RunConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'http': vars(self.http).copy(),
            'run': vars(self.run).copy(),
            'dedup': vars(self.dedup).copy(),
            'logging': vars(self.logging).copy()
        }


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(key, f"expected an integer, got {raw!r}")


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(key, f"expected a number, got {raw!r}")


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env", load_env: bool = True):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
            load_env: Whether to read the .env file at all
        """
        self._config: Optional[AggregatorConfig] = None
        if load_env:
            load_env_file(env_file_path)

    def get_config(self, force_reload: bool = False) -> AggregatorConfig:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> AggregatorConfig:
        """Build configuration from AGG_* environment variables."""
        http_config = HttpConfig(
            timeout=_env_int('AGG_HTTP_TIMEOUT', 20),
            user_agent=os.getenv('AGG_USER_AGENT', DEFAULT_USER_AGENT),
            max_connections=_env_int('AGG_MAX_CONNECTIONS', 10)
        )

        run_config = RunConfig(
            max_concurrent_sources=_env_int('AGG_MAX_CONCURRENT_SOURCES', 8),
            source_timeout=_env_float('AGG_SOURCE_TIMEOUT', 60.0),
            run_deadline=_env_float('AGG_RUN_DEADLINE', 300.0),
            request_delay=_env_float('AGG_REQUEST_DELAY', 0.5),
            max_articles_per_source=_env_int('AGG_MAX_ARTICLES_PER_SOURCE', 20),
            fetch_content=_env_bool('AGG_FETCH_CONTENT', False)
        )

        dedup_config = DedupConfig(
            similarity_threshold=_env_float('AGG_SIMILARITY_THRESHOLD', 0.85),
            window_minutes=_env_int('AGG_DEDUP_WINDOW_MINUTES', 180),
            cross_source_only=_env_bool('AGG_CROSS_SOURCE_ONLY', True)
        )

        logging_config = LoggingConfig(
            log_level=os.getenv('AGG_LOG_LEVEL', 'INFO').upper(),
            verbose=_env_bool('AGG_VERBOSE_LOGGING', False)
        )

        config = AggregatorConfig(
            http=http_config,
            run=run_config,
            dedup=dedup_config,
            logging=logging_config
        )

        validate_config(config)
        return config

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = getattr(logging, config.logging.log_level)
        logging.getLogger().setLevel(numeric_level)

        if config.logging.verbose:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        # Update existing handlers
        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)


def validate_config(config: AggregatorConfig) -> None:
    """
    Validate configuration values.

    Raises:
        ConfigurationError: Listing every invalid value
    """
    errors: List[str] = []

    if config.http.timeout < 1:
        errors.append("AGG_HTTP_TIMEOUT must be at least 1 second")

    if config.http.max_connections < 1:
        errors.append("AGG_MAX_CONNECTIONS must be at least 1")

    if config.run.max_concurrent_sources < 1 or config.run.max_concurrent_sources > 100:
        errors.append("AGG_MAX_CONCURRENT_SOURCES must be between 1 and 100")

    if config.run.source_timeout <= 0:
        errors.append("AGG_SOURCE_TIMEOUT must be positive")

    if config.run.run_deadline < config.run.source_timeout:
        errors.append("AGG_RUN_DEADLINE must not be shorter than AGG_SOURCE_TIMEOUT")

    if config.run.request_delay < 0:
        errors.append("AGG_REQUEST_DELAY must not be negative")

    if config.run.max_articles_per_source < 1:
        errors.append("AGG_MAX_ARTICLES_PER_SOURCE must be at least 1")

    if config.dedup.similarity_threshold < 0 or config.dedup.similarity_threshold > 1:
        errors.append("AGG_SIMILARITY_THRESHOLD must be between 0 and 1")

    if config.dedup.window_minutes < 0:
        errors.append("AGG_DEDUP_WINDOW_MINUTES must not be negative")

    if config.logging.log_level not in VALID_LOG_LEVELS:
        errors.append(f"AGG_LOG_LEVEL must be one of: {', '.join(VALID_LOG_LEVELS)}")

    if errors:
        raise ConfigurationError('config', '; '.join(errors))

    logger.debug("Configuration validation passed")


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> AggregatorConfig:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
