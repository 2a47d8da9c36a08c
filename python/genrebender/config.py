"""Configuration management for GenreBender."""

import os
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

import appdirs
from dotenv import load_dotenv

from genrebender import __version__
from genrebender.exceptions import ConfigurationError

APP_NAME = "genrebender"
DEFAULT_CONTACT = "https://example.com/contact"


def eprint(*args, **kwargs):
    """Print to stderr."""
    print(*args, file=sys.stderr, **kwargs)


def default_cache_dir() -> Path:
    """Return the platform user cache directory for GenreBender."""
    return Path(appdirs.user_cache_dir(APP_NAME))


def format_user_agent(contact: str) -> str:
    """Build the User-Agent MusicBrainz asks clients to send."""
    return f"GenreBender/{__version__} ({contact})"


@dataclass(frozen=True)
class CacheConfig:
    """Disk cache location, freshness windows, and schema version."""
    cache_dir: Path = field(default_factory=default_cache_dir)
    ttl: timedelta = timedelta(days=30)
    search_ttl: timedelta = timedelta(days=7)
    schema_version: int = 1


@dataclass(frozen=True)
class GenreBenderConfig:
    """Settings fixed at startup and shared by every resolution."""
    cache: CacheConfig = field(default_factory=CacheConfig)
    user_agent: str = format_user_agent(DEFAULT_CONTACT)
    request_timeout: float = 15.0
    max_attempts: int = 5
    item_timeout: float = 60.0
    item_delay: float = 2.0
    stale_fallback: bool = False


def _env_number(name: str, default, cast, errors: List[str]):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        errors.append(f"{name}={raw!r} is not a valid {cast.__name__}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_file: Optional[str] = None) -> GenreBenderConfig:
    """
    Load configuration from .env file and the process environment.

    Args:
        env_file: Path to .env file. Defaults to .env in current directory.

    Returns:
        Immutable GenreBenderConfig.

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed.
    """
    if env_file is None:
        env_file = ".env"

    env_path = Path(env_file)
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)

    errors: List[str] = []
    cache_dir = os.getenv("GENREBENDER_CACHE_DIR")
    cache = CacheConfig(
        cache_dir=Path(cache_dir).expanduser() if cache_dir else default_cache_dir(),
        ttl=timedelta(days=_env_number("GENREBENDER_CACHE_TTL_DAYS", 30.0, float, errors)),
        search_ttl=timedelta(days=_env_number("GENREBENDER_SEARCH_TTL_DAYS", 7.0, float, errors)),
        schema_version=_env_number("GENREBENDER_CACHE_VERSION", 1, int, errors),
    )
    config = GenreBenderConfig(
        cache=cache,
        user_agent=format_user_agent(os.getenv("GENREBENDER_CONTACT") or DEFAULT_CONTACT),
        request_timeout=_env_number("GENREBENDER_REQUEST_TIMEOUT", 15.0, float, errors),
        max_attempts=_env_number("GENREBENDER_MAX_ATTEMPTS", 5, int, errors),
        item_timeout=_env_number("GENREBENDER_ITEM_TIMEOUT", 60.0, float, errors),
        item_delay=_env_number("GENREBENDER_ITEM_DELAY", 2.0, float, errors),
        stale_fallback=_env_bool("GENREBENDER_STALE_FALLBACK", False),
    )

    if errors:
        raise ConfigurationError("Invalid configuration", errors)
    return config


def validate_config(config: GenreBenderConfig) -> List[str]:
    """
    Validate configuration and return list of problems.

    Args:
        config: Configuration from load_config()

    Returns:
        List of problem descriptions (empty if the config is usable).
    """
    problems = []

    if config.cache.ttl <= timedelta(0):
        problems.append("GENREBENDER_CACHE_TTL_DAYS must be positive")
    if config.cache.search_ttl <= timedelta(0):
        problems.append("GENREBENDER_SEARCH_TTL_DAYS must be positive")
    if config.request_timeout <= 0:
        problems.append("GENREBENDER_REQUEST_TIMEOUT must be positive")
    if config.max_attempts < 1:
        problems.append("GENREBENDER_MAX_ATTEMPTS must be at least 1")
    if config.item_timeout <= 0:
        problems.append("GENREBENDER_ITEM_TIMEOUT must be positive")
    if config.item_delay < 0:
        problems.append("GENREBENDER_ITEM_DELAY cannot be negative")

    return problems
