"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_DEV_ENVS = {"dev", "local", "development"}
_DEFAULT_LIMIT = 10
_MAX_LIMIT = 100
_DEFAULT_TIMEOUT_SECONDS = 10.0


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in _DEV_ENVS


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def _int_env(name: str, default: int) -> int:
    raw_value = (get_env(name, "") or "").strip()
    if not raw_value:
        return default
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning("invalid_int_env name=%s value=%s default=%s", name, raw_value, default)
        return default
    if value < 1:
        logger.warning("invalid_int_env name=%s value=%s default=%s", name, raw_value, default)
        return default
    return value


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def is_development() -> bool:
    """Return whether error responses may expose debugging detail."""
    return app_env().lower() in _DEV_ENVS


def log_level() -> str:
    return (get_env("LOG_LEVEL", "INFO") or "INFO").strip().upper() or "INFO"


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins from env with safe environment defaults."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if app_env().strip().lower() in _DEV_ENVS:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]

    ui_origin = (get_env("UI_ORIGIN", "") or "").strip()
    if ui_origin:
        return [ui_origin]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS or UI_ORIGIN",
        app_env(),
    )

    return []


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    return get_env("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    """Return Supabase service role key, accepting the legacy SUPABASE_KEY name."""
    return get_env("SUPABASE_SERVICE_ROLE_KEY") or get_env("SUPABASE_KEY")


def supabase_anon_key() -> str | None:
    """Return Supabase anon key when configured."""
    return get_env("SUPABASE_ANON_KEY")


def transactions_table() -> str:
    return (get_env("TRANSACTIONS_TABLE", "transactions") or "transactions").strip() or "transactions"


def transactions_default_limit() -> int:
    """Return the page size used when a request omits `limit`."""
    return min(_int_env("TRANSACTIONS_DEFAULT_LIMIT", _DEFAULT_LIMIT), transactions_max_limit())


def transactions_max_limit() -> int:
    """Return the largest page size a client may request."""
    return _int_env("TRANSACTIONS_MAX_LIMIT", _MAX_LIMIT)


def server_url() -> str:
    """Return the API base URL used by the UI client."""
    raw_value = (get_env("SERVER_URL", "") or "").strip()
    return (raw_value or "http://localhost:3000").rstrip("/")


def http_timeout_seconds() -> float:
    raw_value = (get_env("HTTP_TIMEOUT_SECONDS", "") or "").strip()
    if not raw_value:
        return _DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw_value)
    except ValueError:
        return _DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else _DEFAULT_TIMEOUT_SECONDS


def server_port() -> int:
    return _int_env("PORT", 3000)
