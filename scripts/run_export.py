"""
Run a MODS export from the command line.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from app.config import COMPONENT_TYPES, ENTITY_SOURCES, GRAPH_MODES, ExportOptions, get_default_export_options
from app.exporting.errors import ExportError
from app.logging_utils import configure_logging
from app.services.export_service import ExportService

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    defaults = get_default_export_options()
    parser = argparse.ArgumentParser(description="Export an entity tree as a MODS collection.")
    parser.add_argument("pi", help="Persistent identifier of the root entity.")
    parser.add_argument("--output", "-o", default=None, help="Output file. Defaults to '<pi>-collection.xml'.")
    parser.add_argument("--max-depth", type=int, default=defaults.max_depth)
    parser.add_argument("--batch-size", type=int, default=defaults.batch_size)
    parser.add_argument("--max-text-length", type=int, default=defaults.max_text_length)
    parser.add_argument("--graph-mode", choices=GRAPH_MODES, default=defaults.graph_mode)
    parser.add_argument("--entity-source", choices=ENTITY_SOURCES, default=defaults.entity_source)
    parser.add_argument(
        "--component-types",
        nargs="+",
        choices=COMPONENT_TYPES,
        default=list(defaults.component_types),
    )
    parser.add_argument("--no-ocr", action="store_true", help="Skip OCR text notes.")
    parser.add_argument("--single", action="store_true", help="Export only the root entity as a standalone record.")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(verbose=not args.quiet)

    options = ExportOptions(
        max_depth=args.max_depth,
        batch_size=args.batch_size,
        include_ocr=not args.no_ocr,
        max_text_length=args.max_text_length,
        entity_source=args.entity_source,
        graph_mode=args.graph_mode,
        component_types=tuple(args.component_types),
        verbose=not args.quiet,
    )
    suffix = ".xml" if args.single else "-collection.xml"
    output = args.output or f"{args.pi}{suffix}"

    service = ExportService()
    try:
        if args.single:
            summary = service.export_single(args.pi, output, options)
        else:
            summary = service.run_export(args.pi, output, options)
    except ExportError as exc:
        logger.error("Export failed pi=%s error=%s", args.pi, exc)
        print(json.dumps({"pi": args.pi, "status": "error", "error": str(exc)}, indent=2), file=sys.stderr)
        return 1

    print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
