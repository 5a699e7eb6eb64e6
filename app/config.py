"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping

from db.config import load_env_files

MAX_DEPTH_CAP = 50

GRAPH_MODES: tuple[str, ...] = ("full", "minimal", "skip")
ENTITY_SOURCES: tuple[str, ...] = ("graphdb", "cheimarros", "both")
COMPONENT_TYPES: tuple[str, ...] = ("ref", "parent", "children", "other")


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{name} must be a boolean, got {value!r}.")


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in _TRUE_STRINGS


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ArkeSettings:
    """
    Endpoints of the remote manifest store and its satellites.
    """

    api_url: str = "https://api.arke.institute"
    ipfs_gateway: str = "https://ipfs.arke.institute"
    cdn_url: str = "https://cdn.arke.institute"
    graphdb_url: str = "https://graphdb-gateway.arke.institute"
    web_url: str = "https://arke.institute"

    def web_url_for(self, pi: str) -> str:
        return f"{self.web_url.rstrip('/')}/{pi}"

    def ipfs_url(self, cid: str) -> str:
        return f"{self.ipfs_gateway.rstrip('/')}/ipfs/{cid}"

    def cat_url(self, cid: str) -> str:
        return f"{self.api_url.rstrip('/')}/cat/{cid}"

    def cdn_asset_url(self, asset_id: str) -> str:
        return f"{self.cdn_url.rstrip('/')}/asset/{asset_id}"


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for store, graph and callback clients.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 20.0


@dataclass(frozen=True)
class ExportOptions:
    """
    Caller-facing options for one export job.

    ``max_depth`` is clamped to ``[0, MAX_DEPTH_CAP]`` and ``batch_size`` to a
    minimum of one. ``component_types`` selects which cross-reference groups
    the component linker emits.
    """

    max_depth: int = 5
    batch_size: int = 10
    include_ocr: bool = True
    max_text_length: int = 100_000
    entity_source: str = "cheimarros"
    graph_mode: str = "full"
    component_types: tuple[str, ...] = COMPONENT_TYPES
    verbose: bool = True

    def __post_init__(self) -> None:
        if self.graph_mode not in GRAPH_MODES:
            raise ValueError(
                f"graph_mode '{self.graph_mode}' is not valid. Allowed values: {list(GRAPH_MODES)}."
            )
        if self.entity_source not in ENTITY_SOURCES:
            raise ValueError(
                f"entity_source '{self.entity_source}' is not valid. "
                f"Allowed values: {list(ENTITY_SOURCES)}."
            )
        unknown = [item for item in self.component_types if item not in COMPONENT_TYPES]
        if unknown:
            raise ValueError(
                f"Unknown component types {unknown}. Allowed values: {list(COMPONENT_TYPES)}."
            )
        object.__setattr__(self, "max_depth", min(max(0, self.max_depth), MAX_DEPTH_CAP))
        object.__setattr__(self, "batch_size", max(1, self.batch_size))
        object.__setattr__(self, "max_text_length", max(1, self.max_text_length))
        object.__setattr__(self, "component_types", tuple(self.component_types))

    @property
    def uses_embedded_graph(self) -> bool:
        return self.graph_mode != "skip" and self.entity_source in {"cheimarros", "both"}

    @property
    def uses_graph_database(self) -> bool:
        return self.graph_mode != "skip" and self.entity_source in {"graphdb", "both"}

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "ExportOptions":
        """
        Build options from a loose JSON object.

        Both camelCase and snake_case keys are accepted; unknown keys are ignored.
        """

        if not raw:
            return cls()

        normalized = {_snake_case(str(key)): value for key, value in raw.items()}
        aliases = {
            "parallel_batch_size": "batch_size",
            "cheimarros_mode": "graph_mode",
        }
        for alias, target in aliases.items():
            if alias in normalized and target not in normalized:
                normalized[target] = normalized.pop(alias)

        kwargs: dict[str, Any] = {}
        for name in ("max_depth", "batch_size", "max_text_length"):
            if normalized.get(name) is not None:
                kwargs[name] = int(normalized[name])
        for name in ("include_ocr", "verbose"):
            if normalized.get(name) is not None:
                kwargs[name] = _coerce_bool(name, normalized[name])
        for name in ("entity_source", "graph_mode"):
            if normalized.get(name) is not None:
                kwargs[name] = str(normalized[name]).strip().lower()
        if normalized.get("component_types") is not None:
            kwargs["component_types"] = tuple(str(item) for item in normalized["component_types"])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_depth": self.max_depth,
            "batch_size": self.batch_size,
            "include_ocr": self.include_ocr,
            "max_text_length": self.max_text_length,
            "entity_source": self.entity_source,
            "graph_mode": self.graph_mode,
            "component_types": list(self.component_types),
            "verbose": self.verbose,
        }


@dataclass(frozen=True)
class WorkerSettings:
    """
    Settings for the one-shot, environment-driven export worker.
    """

    task_id: str
    pi: str
    batch_id: str = "default"
    export_options: dict[str, Any] = field(default_factory=dict)
    callback_url: str | None = None
    output_dir: str = field(default_factory=tempfile.gettempdir)
    machine_id: str = "local"
    recursive: bool = False


def _snake_case(value: str) -> str:
    chars: list[str] = []
    for index, char in enumerate(value):
        if char.isupper() and index > 0:
            chars.append("_")
        chars.append(char.lower())
    return "".join(chars)


@lru_cache(maxsize=1)
def get_arke_settings() -> ArkeSettings:
    """
    Return cached store endpoint settings from environment variables.
    """

    defaults = ArkeSettings()
    return ArkeSettings(
        api_url=_get_str_env("ARKE_API_URL", defaults.api_url),
        ipfs_gateway=_get_str_env("ARKE_IPFS_GATEWAY", defaults.ipfs_gateway),
        cdn_url=_get_str_env("ARKE_CDN_URL", defaults.cdn_url),
        graphdb_url=_get_str_env("ARKE_GRAPHDB_URL", defaults.graphdb_url),
        web_url=_get_str_env("ARKE_WEB_URL", defaults.web_url),
    )


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 20.0)),
    )


def get_default_export_options() -> ExportOptions:
    """
    Return export defaults, overridable through environment variables.
    """

    return ExportOptions(
        max_depth=_get_int_env("EXPORT_MAX_DEPTH", 5),
        batch_size=_get_int_env("EXPORT_BATCH_SIZE", 10),
        include_ocr=_get_bool_env("EXPORT_INCLUDE_OCR", True),
        max_text_length=_get_int_env("EXPORT_MAX_TEXT_LENGTH", 100_000),
        entity_source=_get_str_env("EXPORT_ENTITY_SOURCE", "cheimarros").lower(),
        graph_mode=_get_str_env("EXPORT_GRAPH_MODE", "full").lower(),
        verbose=_get_bool_env("EXPORT_VERBOSE", True),
    )


def get_export_output_dir() -> str:
    """
    Directory where API-triggered jobs write their collections.
    """

    return _get_str_env("EXPORT_OUTPUT_DIR", tempfile.gettempdir())


def load_worker_settings() -> WorkerSettings:
    """
    Read and validate the worker environment.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    _load_env_once()
    errors: list[str] = []

    task_id = _get_optional_str_env("TASK_ID")
    pi = _get_optional_str_env("PI")
    if task_id is None:
        errors.append("TASK_ID is not set.")
    if pi is None:
        errors.append("PI is not set.")

    raw_options = _get_str_env("EXPORT_OPTIONS", "{}")
    export_options: dict[str, Any] = {}
    try:
        parsed = json.loads(raw_options)
        if not isinstance(parsed, dict):
            errors.append("EXPORT_OPTIONS must be a JSON object.")
        else:
            export_options = parsed
    except ValueError:
        errors.append(f"EXPORT_OPTIONS is not valid JSON: {raw_options}")

    recursive = False
    try:
        recursive = _coerce_bool("recursive", export_options.get("recursive", False))
    except ValueError as exc:
        errors.append(f"EXPORT_OPTIONS: {exc}")

    if errors or task_id is None or pi is None:
        raise RuntimeError(
            "Worker startup validation failed - missing or invalid environment variables:\n"
            + "\n".join(f"  - {error}" for error in errors)
        )

    return WorkerSettings(
        task_id=task_id,
        pi=pi,
        batch_id=_get_str_env("BATCH_ID", "default"),
        export_options=export_options,
        callback_url=_get_optional_str_env("CALLBACK_URL"),
        output_dir=_get_str_env("EXPORT_OUTPUT_DIR", tempfile.gettempdir()),
        machine_id=_get_str_env("FLY_MACHINE_ID", "local"),
        recursive=recursive,
    )
