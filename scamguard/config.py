"""
ScamGuard Settings
==================

Environment-driven settings, grouped in dataclasses. A ``.env`` file at the
project root is loaded first when present; real environment variables win.

Variables:
    SCAM_PREFERENCE_BACKEND         memory | redis | postgres (default: memory)
    SCAM_DEFAULT_USER_ID            profile for anonymous analysis (default: default)
    SCAM_ANALYZER_TIMEOUT_SECONDS   per-heuristic timeout, 0 disables (default: 0)

    REDIS_URL                       otherwise built from REDIS_HOST/PORT/DB/PASSWORD
    CACHE_PREFIX                    key namespace (default: scamguard)
    REDIS_FALLBACK_TO_MEMORY        serve from memory when Redis is down (default: false,
                                    an outage then surfaces as PersistenceError)

    DATABASE_HOST / DATABASE_PORT / DATABASE_NAME / DATABASE_USER
    DATABASE_PASSWORD               required for the postgres backend
    DATABASE_POOL_MIN / DATABASE_POOL_MAX (default: 1 / 5)
    DATABASE_SSL_MODE               (default: prefer)

    LOG_LEVEL / LOG_JSON / LOG_FILE
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")

_dotenv = Path(__file__).resolve().parent.parent / ".env"
if _dotenv.exists():
    load_dotenv(_dotenv)

PREFERENCE_BACKENDS = ("memory", "redis", "postgres")

_TRUE_VALUES = ("1", "true", "yes", "on")


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Raw environment value.

    Raises:
        ValueError: If required and unset
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def _get_typed(key: str, default: T, cast: Callable[[str], T], type_name: str) -> T:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be {type_name}, got: {raw}")


def get_env_int(key: str, default: int) -> int:
    return _get_typed(key, default, int, "an integer")


def get_env_float(key: str, default: float) -> float:
    return _get_typed(key, default, float, "a number")


def get_env_bool(key: str, default: bool) -> bool:
    return _get_typed(key, default, lambda raw: raw.strip().lower() in _TRUE_VALUES, "a boolean")


@dataclass
class EngineConfig:
    """Scoring engine and preference storage selection."""

    preference_backend: str = field(default_factory=lambda: get_env("SCAM_PREFERENCE_BACKEND", "memory"))
    default_user_id: str = field(default_factory=lambda: get_env("SCAM_DEFAULT_USER_ID", "default"))
    analyzer_timeout_seconds: float = field(
        default_factory=lambda: get_env_float("SCAM_ANALYZER_TIMEOUT_SECONDS", 0.0)
    )

    @property
    def timeout(self) -> Optional[float]:
        """Runner timeout; None when disabled."""
        return self.analyzer_timeout_seconds or None

    def __post_init__(self):
        self.preference_backend = self.preference_backend.strip().lower()
        if self.preference_backend not in PREFERENCE_BACKENDS:
            raise ValueError(
                f"SCAM_PREFERENCE_BACKEND must be one of {', '.join(PREFERENCE_BACKENDS)}, "
                f"got: {self.preference_backend}"
            )
        if self.analyzer_timeout_seconds < 0:
            raise ValueError("SCAM_ANALYZER_TIMEOUT_SECONDS cannot be negative")
        if not self.default_user_id:
            raise ValueError("SCAM_DEFAULT_USER_ID cannot be empty")


@dataclass
class RedisConfig:
    """Redis connection for the redis preference backend and seller profiles."""

    url: Optional[str] = field(default_factory=lambda: get_env("REDIS_URL"))
    prefix: str = field(default_factory=lambda: get_env("CACHE_PREFIX", "scamguard"))
    fallback_to_memory: bool = field(default_factory=lambda: get_env_bool("REDIS_FALLBACK_TO_MEMORY", False))


@dataclass
class DatabaseConfig:
    """PostgreSQL connection for the postgres preference backend."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "scamguard"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "scamguard_app"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", ""))
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 1))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 5))
    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    @property
    def connection_dict(self) -> Dict[str, Any]:
        """Keyword arguments for psycopg2.connect / the connection pool."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }

    def __post_init__(self):
        if self.pool_min_size < 1 or self.pool_min_size > self.pool_max_size:
            raise ValueError("DATABASE_POOL_MIN must be between 1 and DATABASE_POOL_MAX")


@dataclass
class LoggingConfig:
    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """All settings, validated together."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if self.engine.preference_backend == "postgres" and not self.database.password:
            raise ValueError("DATABASE_PASSWORD is required for the postgres preference backend")


def load_settings() -> Settings:
    """
    Read settings from the environment.

    Raises:
        ValueError: If a variable is missing or invalid
    """
    return Settings()
