"""
Configuration module for trendsapi.

Loads environment variables (and a local .env file, if present) with
validation and sensible defaults. Every setting has a default, so the
client works with no environment at all.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration variable is present but invalid."""


ENV_PREFIX = "TRENDS_"

N = TypeVar("N", int, float)


def _setting(key: str, default: str) -> str:
    """Value of TRENDS_<key>, or the default when unset."""
    return os.getenv(ENV_PREFIX + key, default)


def _bounded(
    key: str,
    default: N,
    parse: Callable[[str], N],
    minimum: N,
    strict: bool = False,
) -> N:
    """
    Read TRENDS_<key> as a number no smaller than ``minimum``.

    An unparseable value falls back to the default with a warning. A value
    below the minimum (or equal to it when ``strict``) raises ConfigError.
    """
    name = ENV_PREFIX + key
    raw = os.getenv(name)
    value = default
    if raw is not None:
        try:
            value = parse(raw)
        except ValueError:
            logger.warning(
                "Environment variable '%s' has unparseable value '%s', using default %s",
                name, raw, default,
            )
    # `not >=` also rejects NaN.
    if not value >= minimum or (strict and value == minimum):
        bound = ">" if strict else ">="
        raise ConfigError(f"{name} must be {bound} {minimum}, got {value}")
    return value


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 3
    base_delay_ms: int = 750
    jitter_ms: int = 250


@dataclass(frozen=True)
class TrendsConfig:
    """Top-level client configuration."""

    hl: str = "en-US"
    geo: str = "US"
    tz: str = "240"
    request_timeout: float = 30.0
    user_agent: str = "trendsapi/1.0"
    retry: RetryConfig = field(default_factory=RetryConfig)


def load_config() -> TrendsConfig:
    """
    Load and validate client configuration from environment variables.

    Returns:
        Fully populated TrendsConfig instance.

    Raises:
        ConfigError: if a numeric setting is out of range.
    """
    retry = RetryConfig(
        max_retries=_bounded("MAX_RETRIES", 3, int, minimum=0),
        base_delay_ms=_bounded("BASE_DELAY_MS", 750, int, minimum=0),
        jitter_ms=_bounded("JITTER_MS", 250, int, minimum=1),
    )
    return TrendsConfig(
        hl=_setting("HL", "en-US"),
        geo=_setting("GEO", "US"),
        tz=_setting("TZ", "240"),
        request_timeout=_bounded("REQUEST_TIMEOUT", 30.0, float, minimum=0.0, strict=True),
        user_agent=_setting("USER_AGENT", "trendsapi/1.0"),
        retry=retry,
    )


def log_level_from_env(default: int = logging.INFO) -> int:
    """Resolve LOG_LEVEL (name or number) to a logging level."""
    raw = os.getenv("LOG_LEVEL", "")
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    if isinstance(level, int):
        return level
    logger.warning("Unknown LOG_LEVEL '%s', using default", raw)
    return default


def setup_logging(level: int = logging.INFO) -> None:
    """Configure structured logging for all modules."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
