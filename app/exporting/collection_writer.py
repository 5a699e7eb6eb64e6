"""
Streaming ``<modsCollection>`` writer.

Only the record currently being written is held in memory; every append is
followed by ``await sink.drain()`` so a slow sink throttles the producers.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from app.domain.traversal import TraversalNode
from app.exporting.errors import RecordRenderError, SinkError, WriterStateError
from app.exporting.mods_generator import MODS_NS, MODS_SCHEMA_LOCATION, XML_DECLARATION, XSI_NS, qname
from app.exporting.sinks import RecordSink
from app.exporting.text_utils import strip_invalid_xml_chars

logger = logging.getLogger(__name__)

COLLECTION_HEADER = (
    f"{XML_DECLARATION}\n"
    f'<modsCollection xmlns="{MODS_NS}" xmlns:xsi="{XSI_NS}" '
    f'xsi:schemaLocation="{MODS_SCHEMA_LOCATION}">\n'
)
COLLECTION_FOOTER = "</modsCollection>\n"

_STATE_NEW = "new"
_STATE_OPEN = "open"
_STATE_CLOSED = "closed"


def hierarchy_note_text(node: TraversalNode) -> str:
    parts = [f"depth: {node.depth}"]
    if node.parent_pi is not None:
        parts.append(f"parent: {node.parent_pi}")
    parts.append(f"path: /{'/'.join(node.path)}")
    return ", ".join(parts)


def _strip_declaration(fragment: str) -> str:
    stripped = fragment.lstrip()
    if stripped.startswith("<?xml"):
        end = stripped.find("?>")
        if end == -1:
            raise RecordRenderError("Unterminated XML declaration in record fragment.")
        stripped = stripped[end + 2 :]
    return stripped.strip()


def prepare_record(record_id: str, fragment: str, node: TraversalNode) -> str:
    """
    Inject the record ID and the tree position note into a rendered ``<mods>`` fragment.
    """

    try:
        root = ET.fromstring(_strip_declaration(fragment))
    except ET.ParseError as exc:
        raise RecordRenderError(f"Record {record_id} is not well-formed XML: {exc}") from exc
    if root.tag != qname("mods"):
        raise RecordRenderError(f"Record {record_id} root element is {root.tag}, expected mods.")

    root.set("ID", f"entity-{record_id}")
    note = ET.SubElement(root, qname("note"), {"type": "hierarchy", "displayLabel": "Tree Position"})
    note.text = strip_invalid_xml_chars(hierarchy_note_text(node))

    ET.indent(root, space="  ", level=1)
    return f"  {ET.tostring(root, encoding='unicode')}\n"


class CollectionWriter:
    """
    Writes one collection document to a sink it exclusively owns.
    """

    def __init__(self) -> None:
        self._sink: RecordSink | None = None
        self._state = _STATE_NEW
        self.records_written = 0
        self.chars_written = 0

    @property
    def is_open(self) -> bool:
        return self._state == _STATE_OPEN

    @property
    def location(self) -> str | None:
        return self._sink.location if self._sink is not None else None

    async def open(self, sink: RecordSink) -> None:
        if self._state != _STATE_NEW:
            raise WriterStateError(f"Writer cannot be opened in state '{self._state}'.")
        self._sink = sink
        try:
            await sink.open()
        except OSError as exc:
            raise SinkError(f"Cannot open sink {sink.location}: {exc}") from exc
        self._state = _STATE_OPEN
        await self._emit(COLLECTION_HEADER)
        logger.info("Collection opened location=%s", sink.location)

    async def write(self, record_id: str, fragment: str, node: TraversalNode) -> None:
        """
        Append one record. Raises ``WriterStateError`` outside the open window and
        ``RecordRenderError`` for fragments that are not a ``<mods>`` element.
        """

        if self._state != _STATE_OPEN:
            raise WriterStateError(f"Writer is not open (state '{self._state}').")
        record = prepare_record(record_id, fragment, node)
        await self._emit(record)
        self.records_written += 1

    async def close(self) -> None:
        """
        Emit the footer and close the sink.

        Safe after a failed ``open``: the sink is released but no footer is written.
        A second call is a no-op.
        """

        if self._state == _STATE_CLOSED:
            return
        was_open = self._state == _STATE_OPEN
        self._state = _STATE_CLOSED
        if self._sink is None:
            return
        try:
            if was_open:
                try:
                    self._sink.write(COLLECTION_FOOTER)
                except OSError as exc:
                    raise SinkError(f"Cannot write footer to sink {self._sink.location}: {exc}") from exc
                self.chars_written += len(COLLECTION_FOOTER)
        finally:
            try:
                await self._sink.close()
            except OSError as exc:
                raise SinkError(f"Cannot close sink {self._sink.location}: {exc}") from exc
        if was_open:
            logger.info(
                "Collection closed location=%s records=%s",
                self._sink.location,
                self.records_written,
            )

    async def _emit(self, data: str) -> None:
        sink = self._sink
        if sink is None:
            raise WriterStateError("Writer has no sink.")
        try:
            sink.write(data)
            await sink.drain()
        except OSError as exc:
            raise SinkError(f"Cannot write to sink {sink.location}: {exc}") from exc
        self.chars_written += len(data)
