"""
=============================================================================
PIPELINE CONFIGURATION
=============================================================================

Centralized configuration for the built-in middleware chain.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Code                                                            │
    │      └── PipelineConfig(timeout=TimeoutConfig(5_000))               │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPCHAIN_TIMEOUT_MS=5000                                  │
    │                                                                      │
    │   3. Default values (in the dataclasses)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A sub-config set to None disables that stage. build_pipeline() turns a
validated config into a MiddlewarePipeline in the recommended order:

    logging → CORS → rate limit → timeout → (your handler)

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from .middleware.cors import CORSConfig, CORSMiddleware
from .middleware.dispatcher import ErrorPolicy
from .middleware.logging import LoggerConfig, LoggingMiddleware
from .middleware.pipeline import MiddlewarePipeline
from .middleware.rate_limit import RateLimitConfig, RateLimitMiddleware
from .middleware.timeout import TimeoutMiddleware


ENV_PREFIX = "HTTPCHAIN_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class ConfigError(ValueError):
    """Raised when a configuration value is missing or malformed."""


@dataclass
class TimeoutConfig:
    """Timeout guard settings."""

    timeout_ms: int = 30_000

    def validate(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")


@dataclass
class PipelineConfig:
    """
    Configuration for the default middleware chain.

    Development:
        PipelineConfig(log_level="DEBUG")

    Production:
        PipelineConfig(
            cors=CORSConfig(origin=["https://myapp.com"], credentials=True),
            rate_limit=RateLimitConfig(window_ms=60_000, max_requests=100),
            timeout=TimeoutConfig(timeout_ms=10_000),
        )
    """

    # ─────────────────────────────────────────────────────────────────────
    # STAGES (None = disabled)
    # ─────────────────────────────────────────────────────────────────────

    logger: Optional[LoggerConfig] = field(default_factory=LoggerConfig)
    cors: Optional[CORSConfig] = field(default_factory=CORSConfig)
    rate_limit: Optional[RateLimitConfig] = None
    timeout: Optional[TimeoutConfig] = None

    # ─────────────────────────────────────────────────────────────────────
    # ERROR POLICY
    # ─────────────────────────────────────────────────────────────────────

    continue_on_error: bool = False

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "PipelineConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPCHAIN_LOG_LEVEL                    Logging level (default: INFO)
        HTTPCHAIN_LOG_FORMAT                   simple | detailed | json
        HTTPCHAIN_LOG_BODY                     Include request bodies (bool)
        HTTPCHAIN_LOG_HEADERS                  Include request headers (bool)

        HTTPCHAIN_CORS_ORIGIN                  "*", one origin, or a comma
                                               separated allow-list
        HTTPCHAIN_CORS_METHODS                 Comma separated methods
        HTTPCHAIN_CORS_HEADERS                 Comma separated headers
        HTTPCHAIN_CORS_CREDENTIALS             Allow credentials (bool)
        HTTPCHAIN_CORS_MAX_AGE                 Preflight cache seconds

        HTTPCHAIN_RATE_LIMIT_MAX               Enables rate limiting
        HTTPCHAIN_RATE_LIMIT_WINDOW_MS         Window (default: 60000)
        HTTPCHAIN_RATE_LIMIT_SKIP_SUCCESSFUL   Skip status < 400 (bool)

        HTTPCHAIN_TIMEOUT_MS                   Enables the timeout guard

        HTTPCHAIN_CONTINUE_ON_ERROR            Skip failing stages (bool)

        =====================================================================

        Args:
            environ: Mapping to read instead of os.environ (tests).
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            return env.get(ENV_PREFIX + name, default)

        logger = LoggerConfig(
            include_body=_parse_bool(ENV_PREFIX + "LOG_BODY", get("LOG_BODY", "false")),
            include_headers=_parse_bool(ENV_PREFIX + "LOG_HEADERS", get("LOG_HEADERS", "false")),
            log_format=get("LOG_FORMAT", "simple"),
        )

        cors = CORSConfig(
            origin=_parse_origin(get("CORS_ORIGIN", "*")),
            credentials=_parse_bool(ENV_PREFIX + "CORS_CREDENTIALS", get("CORS_CREDENTIALS", "false")),
            max_age=_parse_int(ENV_PREFIX + "CORS_MAX_AGE", get("CORS_MAX_AGE", "86400")),
        )
        if get("CORS_METHODS"):
            cors.methods = _split(get("CORS_METHODS"))
        if get("CORS_HEADERS"):
            cors.headers = _split(get("CORS_HEADERS"))

        rate_limit = None
        if get("RATE_LIMIT_MAX"):
            rate_limit = RateLimitConfig(
                window_ms=_parse_int(ENV_PREFIX + "RATE_LIMIT_WINDOW_MS", get("RATE_LIMIT_WINDOW_MS", "60000")),
                max_requests=_parse_int(ENV_PREFIX + "RATE_LIMIT_MAX", get("RATE_LIMIT_MAX")),
                skip_successful_requests=_parse_bool(
                    ENV_PREFIX + "RATE_LIMIT_SKIP_SUCCESSFUL", get("RATE_LIMIT_SKIP_SUCCESSFUL", "false")
                ),
            )

        timeout = None
        if get("TIMEOUT_MS"):
            timeout = TimeoutConfig(timeout_ms=_parse_int(ENV_PREFIX + "TIMEOUT_MS", get("TIMEOUT_MS")))

        return cls(
            logger=logger,
            cors=cors,
            rate_limit=rate_limit,
            timeout=timeout,
            continue_on_error=_parse_bool(
                ENV_PREFIX + "CONTINUE_ON_ERROR", get("CONTINUE_ON_ERROR", "false")
            ),
            log_level=get("LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup, not at the first request.
        """
        if not isinstance(getattr(logging, self.log_level.upper(), None), int):
            raise ConfigError(f"Invalid log_level: {self.log_level!r}")

        for stage in (self.logger, self.cors, self.rate_limit, self.timeout):
            if stage is None:
                continue
            try:
                stage.validate()
            except ValueError as e:
                raise ConfigError(f"{type(stage).__name__}: {e}") from e


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_origin(value: str) -> Union[str, List[str]]:
    origins = _split(value)
    if len(origins) == 1:
        return origins[0]
    return origins


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("httpchain").setLevel(log_level)


def build_pipeline(
    config: Optional[PipelineConfig] = None,
    rate_limit_key: Optional[Callable] = None,
) -> MiddlewarePipeline:
    """
    Build the default chain from configuration.

        pipeline = build_pipeline(PipelineConfig.from_env())
        app = pipeline.handle(my_handler)

    Args:
        config: Pipeline configuration (defaults if not provided)
        rate_limit_key: Optional key function for the rate limiter

    Returns:
        A MiddlewarePipeline ready for handle()
    """
    config = config or PipelineConfig()
    config.validate()

    pipeline = MiddlewarePipeline()

    if config.logger is not None:
        pipeline.add(LoggingMiddleware.from_config(config.logger))
    if config.cors is not None:
        pipeline.add(CORSMiddleware(config.cors))
    if config.rate_limit is not None:
        pipeline.add(RateLimitMiddleware.from_config(config.rate_limit, key_func=rate_limit_key))
    if config.timeout is not None:
        pipeline.add(TimeoutMiddleware(config.timeout.timeout_ms))

    return pipeline.configure(ErrorPolicy(continue_on_error=config.continue_on_error))
