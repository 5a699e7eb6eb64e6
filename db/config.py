"""
Database settings for the export job store.

Values come from the process environment, topped up from ``.env`` and
``.env.local`` at the project root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = (".env", ".env.local")
CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})

_POSTGRES_SCHEMES = (
    ("postgres://", "postgresql+psycopg://"),
    ("postgresql://", "postgresql+psycopg://"),
)


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None

    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if value[:1] in {'"', "'"} and value[-1:] == value[:1] and len(value) >= 2:
        value = value[1:-1]
    elif " #" in value:
        value = value.split(" #", 1)[0].rstrip()
    if not key:
        return None
    return key, value


def load_env_files(root: Path | None = None) -> None:
    """
    Copy KEY=VALUE pairs from the env files into ``os.environ``.

    Variables already set in the process win over file values, and
    ``.env`` wins over ``.env.local`` for keys both define.
    """

    base = root or PROJECT_ROOT
    for filename in ENV_FILES:
        env_path = base / filename
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is None:
                continue
            key, value = parsed
            os.environ.setdefault(key, value)


def normalize_postgres_url(url: str) -> str:
    """
    Pin bare postgres URLs to the psycopg 3 driver.
    """

    url = url.strip()
    for prefix, replacement in _POSTGRES_SCHEMES:
        if url.startswith(prefix):
            return replacement + url[len(prefix) :]
    return url


def resolve_database_url() -> str:
    """
    Pick the job store URL.

    Order: ``EXPORT_DATABASE_URL``, ``DATABASE_URL``, then
    ``CLOUD_DATABASE_URL`` when ``ENVIRONMENT`` names a deployed stage,
    then ``LOCAL_DATABASE_URL``.
    """

    load_env_files()

    for name in ("EXPORT_DATABASE_URL", "DATABASE_URL"):
        value = os.getenv(name, "").strip()
        if value:
            return normalize_postgres_url(value)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    if environment in CLOUD_ENVIRONMENTS and cloud_url:
        return normalize_postgres_url(cloud_url)

    local_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if local_url:
        return normalize_postgres_url(local_url)

    raise RuntimeError(
        "No database URL configured for export jobs. Set EXPORT_DATABASE_URL or DATABASE_URL, "
        "or configure LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return max(minimum, int(value))
    except ValueError:
        return default


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800

    @classmethod
    def from_env(cls) -> "DatabaseSettings":
        url = resolve_database_url()
        if not url.startswith("postgresql"):
            raise RuntimeError("The export job store supports PostgreSQL URLs only.")
        return cls(
            url=url,
            echo=_env_flag("SQL_ECHO", False),
            pool_size=_env_int("DB_POOL_SIZE", cls.pool_size, minimum=1),
            max_overflow=_env_int("DB_MAX_OVERFLOW", cls.max_overflow),
            pool_recycle_seconds=_env_int("DB_POOL_RECYCLE", cls.pool_recycle_seconds),
        )
