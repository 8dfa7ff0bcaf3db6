from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: str = "false") -> bool:
    raw = _getenv(name, default).lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag (got {raw!r})")


def _getenv_int(name: str, default: str, *, minimum: int = 0) -> int:
    raw = _getenv(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    db_pool_size: int = 10
    db_max_overflow: int = 0
    allowed_origins: tuple[str, ...] = ("http://127.0.0.1",)
    block_api_tools: bool = False

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", "8000", minimum=1)
    database_url = _getenv("DATABASE_URL", "") or None

    # The pool needs at least one connection; overflow may be zero.
    db_pool_size = _getenv_int("DB_POOL_SIZE", "10", minimum=1)
    db_max_overflow = _getenv_int("DB_MAX_OVERFLOW", "0")

    origins_raw = _getenv("ALLOWED_ORIGINS", "http://127.0.0.1")
    allowed_origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip())

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON"),
        port=port,
        database_url=database_url,
        db_pool_size=db_pool_size,
        db_max_overflow=db_max_overflow,
        allowed_origins=allowed_origins,
        block_api_tools=_getenv_bool("BLOCK_API_TOOLS"),
    )


SETTINGS = load_settings()
