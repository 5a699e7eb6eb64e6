"""
Shared fakes for export tests: an in-memory entity store and record sink.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from app.exporting.errors import EntityNotFoundError, RetrievalError
from app.exporting.sinks import RecordSink
from app.schemas.arke import EntityManifest

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def build_manifest(
    pi: str,
    *,
    children: tuple[str, ...] = (),
    parent: str | None = None,
    components: dict[str, str] | None = None,
    ver: int = 1,
) -> EntityManifest:
    return EntityManifest(
        pi=pi,
        ver=ver,
        ts="2025-01-15T10:00:00Z",
        manifest_cid=f"bafy-manifest-{pi}",
        components=components if components is not None else {"pinax.json": f"cid-pinax-{pi}"},
        parent_pi=parent,
        children_pi=children,
    )


def pinax_payload(pi: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": f"local-{pi}",
        "title": f"Letters of {pi}",
        "type": "Text",
        "creator": "Ada Lovelace",
        "institution": "Example Archive",
        "created": "1843-07-10",
        "access_url": "PLACEHOLDER",
    }
    payload.update(overrides)
    return payload


class FakeStore:
    """
    Thread-safe in-memory store. ``failures`` maps a PI to the exception its manifest fetch raises.
    """

    def __init__(self, *, delay: float = 0.0) -> None:
        self.manifests: dict[str, EntityManifest] = {}
        self.json_components: dict[str, Any] = {}
        self.text_components: dict[str, str] = {}
        self.failures: dict[str, Exception] = {}
        self.manifest_calls: Counter[str] = Counter()
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def add_entity(
        self,
        pi: str,
        *,
        children: tuple[str, ...] = (),
        parent: str | None = None,
        record: dict[str, Any] | None = None,
        with_record: bool = True,
        extra_components: dict[str, str] | None = None,
    ) -> EntityManifest:
        components: dict[str, str] = {}
        if with_record:
            cid = f"cid-pinax-{pi}"
            components["pinax.json"] = cid
            self.json_components[cid] = record if record is not None else pinax_payload(pi)
        components.update(extra_components or {})
        manifest = build_manifest(pi, children=children, parent=parent, components=components)
        self.manifests[pi] = manifest
        return manifest

    def fetch_manifest(self, pi: str) -> EntityManifest:
        with self._lock:
            self.manifest_calls[pi] += 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if pi in self.failures:
                raise self.failures[pi]
            if pi not in self.manifests:
                raise EntityNotFoundError(f"Entity not found: {pi}", url=f"memory://{pi}", status_code=404)
            return self.manifests[pi]
        finally:
            with self._lock:
                self.in_flight -= 1

    def fetch_component_text(self, cid: str) -> str:
        if cid not in self.text_components:
            raise RetrievalError(f"Missing component {cid}", url=f"memory://{cid}")
        return self.text_components[cid]

    def fetch_component_json(self, cid: str) -> Any:
        if cid not in self.json_components:
            raise RetrievalError(f"Missing component {cid}", url=f"memory://{cid}")
        return self.json_components[cid]


class MemorySink(RecordSink):
    """
    Collects every appended chunk. ``fail_after_writes`` makes the Nth write raise OSError.
    """

    def __init__(self, *, fail_on_open: bool = False, fail_after_writes: int | None = None) -> None:
        self.chunks: list[str] = []
        self.opened = False
        self.closed = False
        self.drain_calls = 0
        self.close_calls = 0
        self._fail_on_open = fail_on_open
        self._fail_after_writes = fail_after_writes

    @property
    def location(self) -> str:
        return "memory://collection.xml"

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    async def open(self) -> None:
        if self._fail_on_open:
            raise OSError("disk unavailable")
        self.opened = True

    def write(self, data: str) -> None:
        if self._fail_after_writes is not None and len(self.chunks) >= self._fail_after_writes:
            raise OSError("disk full")
        self.chunks.append(data)

    async def drain(self) -> None:
        self.drain_calls += 1
        await asyncio.sleep(0)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW
