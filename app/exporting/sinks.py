"""
Output sinks accepting ordered text appends with a backpressure signal.

A sink follows the ``asyncio.StreamWriter`` convention: ``write`` only
buffers, and callers must ``await drain()`` afterwards so the buffer is
flushed once it grows past the high-water mark.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TextIO

from app.exporting.errors import SinkError

logger = logging.getLogger(__name__)

DEFAULT_HIGH_WATER_MARK = 64 * 1024


class RecordSink(ABC):
    """
    Destination for one collection document.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Where the output ends up (a path or a descriptive URI)."""

    @abstractmethod
    async def open(self) -> None:
        """Acquire the underlying resource. Raises ``SinkError`` on failure."""

    @abstractmethod
    def write(self, data: str) -> None:
        """Buffer ``data``. Never blocks."""

    @abstractmethod
    async def drain(self) -> None:
        """Suspend until the buffer is back under the high-water mark."""

    @abstractmethod
    async def close(self) -> None:
        """Flush and release the underlying resource. Safe to call more than once."""


class FileSink(RecordSink):
    """
    UTF-8 file sink. Blocking file I/O runs in a worker thread.
    """

    def __init__(self, path: str | Path, *, high_water_mark: int = DEFAULT_HIGH_WATER_MARK) -> None:
        self._path = Path(path)
        self._high_water_mark = max(1, high_water_mark)
        self._handle: TextIO | None = None
        self._buffer: list[str] = []
        self._buffered_chars = 0
        self._bytes_written = 0
        self._lock = asyncio.Lock()

    @property
    def location(self) -> str:
        return str(self._path)

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    @property
    def buffered(self) -> int:
        return self._buffered_chars

    async def open(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = await asyncio.to_thread(self._path.open, "w", encoding="utf-8")
        except OSError as exc:
            raise SinkError(f"Cannot open output file {self._path}: {exc}") from exc

    def write(self, data: str) -> None:
        if self._handle is None:
            raise SinkError(f"Output file {self._path} is not open.")
        self._buffer.append(data)
        self._buffered_chars += len(data)

    async def drain(self) -> None:
        if self._buffered_chars < self._high_water_mark:
            return
        await self._flush()

    async def close(self) -> None:
        handle = self._handle
        if handle is None:
            return
        try:
            await self._flush()
        finally:
            self._handle = None
            try:
                await asyncio.to_thread(handle.close)
            except OSError as exc:
                raise SinkError(f"Cannot close output file {self._path}: {exc}") from exc

    async def _flush(self) -> None:
        async with self._lock:
            if not self._buffer or self._handle is None:
                return
            chunk = "".join(self._buffer)
            self._buffer.clear()
            self._buffered_chars = 0
            try:
                await asyncio.to_thread(self._write_through, self._handle, chunk)
            except OSError as exc:
                raise SinkError(f"Cannot write to output file {self._path}: {exc}") from exc
            self._bytes_written += len(chunk.encode("utf-8"))
            logger.debug("Flushed output chunk path=%s bytes_written=%s", self._path, self._bytes_written)

    @staticmethod
    def _write_through(handle: TextIO, chunk: str) -> None:
        handle.write(chunk)
        handle.flush()
