"""Process settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Mapping

StoreBackend = Literal["postgres", "memory"]

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str | None, default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str | None, default: int, *, minimum: int = 0) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    database_url: str | None = None
    store_backend: StoreBackend = "memory"
    db_pool_min: int = 1
    db_pool_max: int = 10
    payment_auto_capture: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from the environment.

        STORE_BACKEND defaults to postgres when DATABASE_URL is set,
        memory otherwise.

        Raises:
            ValueError: On malformed or inconsistent values.
        """
        env = os.environ if environ is None else environ

        database_url = env.get("DATABASE_URL") or None
        backend = (env.get("STORE_BACKEND") or ("postgres" if database_url else "memory")).lower()
        if backend not in ("postgres", "memory"):
            raise ValueError(f"STORE_BACKEND must be 'postgres' or 'memory', got {backend!r}")
        if backend == "postgres" and not database_url:
            raise ValueError("DATABASE_URL is required when STORE_BACKEND=postgres")

        pool_min = _parse_int("DB_POOL_MIN", env.get("DB_POOL_MIN"), 1, minimum=1)
        pool_max = _parse_int("DB_POOL_MAX", env.get("DB_POOL_MAX"), 10, minimum=1)
        if pool_max < pool_min:
            raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")

        return cls(
            database_url=database_url,
            store_backend=backend,  # type: ignore[arg-type]
            db_pool_min=pool_min,
            db_pool_max=pool_max,
            payment_auto_capture=_parse_bool(
                "PAYMENT_AUTO_CAPTURE", env.get("PAYMENT_AUTO_CAPTURE"), True
            ),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
