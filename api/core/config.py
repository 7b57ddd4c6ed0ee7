"""
Runtime settings read from environment variables.

`Settings.from_env()` is called once in `main.create_app()` and the result is
passed to whatever needs it. Nothing else in the API reads `os.environ`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

DEFAULT_MODERATION_API_URL = "https://api.apilayer.com/bad_words"
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq-only params such as sslmode.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url_from_env() -> str:
    """
    Build the DSN from DATABASE_URL, or from the POSTGRES_* parts when it is unset.
    """
    url = os.environ.get("DATABASE_URL", "").strip()
    if url:
        return _sanitize_database_url(url)

    host = os.environ.get("POSTGRES_HOST", "").strip()
    if not host:
        return ""
    port = _env_int("POSTGRES_PORT", 5432)
    user = quote(_env_str("POSTGRES_USER", "postgres"), safe="")
    password = quote(os.environ.get("POSTGRES_PASSWORD", ""), safe="")
    db_name = _env_str("POSTGRES_DB", "postgres")
    auth = f"{user}:{password}" if password else user
    return f"postgresql://{auth}@{host}:{port}/{db_name}"


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_command_timeout_s: float = 30.0

    moderation_enabled: bool = True
    moderation_api_url: str = DEFAULT_MODERATION_API_URL
    moderation_api_key: str = field(default="", repr=False)
    moderation_timeout_s: float = 5.0
    moderation_max_retries: int = 3
    moderation_backoff_base_s: float = 0.2
    moderation_backoff_max_s: float = 2.0
    moderation_max_response_bytes: int = 64 * 1024

    session_ttl_minutes: int = 24 * 60
    bcrypt_rounds: int = 12

    page_default_limit: int = 20
    page_max_limit: int = 100

    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=database_url_from_env(),
            db_pool_min_size=max(1, _env_int("DB_POOL_MIN_SIZE", 1)),
            db_pool_max_size=max(1, _env_int("DB_POOL_MAX_SIZE", 5)),
            db_command_timeout_s=_env_float("DB_COMMAND_TIMEOUT_S", 30.0),
            moderation_enabled=_env_bool("MODERATION_ENABLED", True),
            moderation_api_url=_env_str("MODERATION_API_URL", DEFAULT_MODERATION_API_URL),
            moderation_api_key=_env_str("MODERATION_API_KEY") or _env_str("API_LAYER_KEY"),
            moderation_timeout_s=_env_float("MODERATION_TIMEOUT_S", 5.0),
            moderation_max_retries=max(0, _env_int("MODERATION_MAX_RETRIES", 3)),
            moderation_backoff_base_s=_env_float("MODERATION_BACKOFF_BASE_S", 0.2),
            moderation_backoff_max_s=_env_float("MODERATION_BACKOFF_MAX_S", 2.0),
            moderation_max_response_bytes=_env_int("MODERATION_MAX_RESPONSE_BYTES", 64 * 1024),
            session_ttl_minutes=max(1, _env_int("SESSION_TTL_MINUTES", 24 * 60)),
            bcrypt_rounds=min(max(_env_int("BCRYPT_ROUNDS", 12), 4), 31),
            page_default_limit=max(1, _env_int("PAGE_DEFAULT_LIMIT", 20)),
            page_max_limit=max(1, _env_int("PAGE_MAX_LIMIT", 100)),
            cors_origins=_env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        )
