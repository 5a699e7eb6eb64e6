"""
One-shot export worker driven entirely by environment variables.

Exports ``PI`` (recursively when ``EXPORT_OPTIONS.recursive`` is set), keeps the
output file in ``EXPORT_OUTPUT_DIR`` and reports the outcome to ``CALLBACK_URL``.
"""

from __future__ import annotations

import logging
import os
import time

from app.config import ExportOptions, WorkerSettings, get_external_http_settings, load_worker_settings
from app.logging_utils import configure_logging, log_event
from app.notifier import CompletionNotifier
from app.schemas.callback import CallbackMetrics, ErrorCallback, SuccessCallback
from app.services.export_service import ExportService

logger = logging.getLogger("export_worker")


def output_file_name(settings: WorkerSettings) -> str:
    return f"{settings.pi}-collection.xml" if settings.recursive else f"{settings.pi}.xml"


def run(settings: WorkerSettings, service: ExportService, notifier: CompletionNotifier) -> int:
    file_name = output_file_name(settings)
    output_path = os.path.join(settings.output_dir, f"{settings.task_id}-{int(time.time() * 1000)}-{file_name}")
    log_event(
        logger,
        logging.INFO,
        "worker_started",
        task_id=settings.task_id,
        batch_id=settings.batch_id,
        machine_id=settings.machine_id,
        pi=settings.pi,
        recursive=settings.recursive,
    )

    try:
        options = ExportOptions.from_mapping(settings.export_options)
        if settings.recursive:
            summary = service.run_export(settings.pi, output_path, options)
        else:
            summary = service.export_single(settings.pi, output_path, options)
        file_size = os.path.getsize(output_path)
    except Exception as exc:
        logger.exception("Export worker failed task_id=%s pi=%s", settings.task_id, settings.pi)
        notifier.notify(
            ErrorCallback(
                task_id=settings.task_id,
                batch_id=settings.batch_id,
                error=f"{type(exc).__name__}: {exc}",
            )
        )
        return 1

    notifier.notify(
        SuccessCallback(
            task_id=settings.task_id,
            batch_id=settings.batch_id,
            output_location=output_path,
            output_file_name=file_name,
            output_file_size=file_size,
            metrics=CallbackMetrics.from_summary(summary),
        )
    )
    log_event(logger, logging.INFO, "worker_completed", task_id=settings.task_id, output=output_path, bytes=file_size)
    return 0


def main() -> int:
    configure_logging()
    settings = load_worker_settings()
    notifier = CompletionNotifier(settings.callback_url, http_settings=get_external_http_settings())
    try:
        return run(settings, ExportService(), notifier)
    finally:
        notifier.close()


if __name__ == "__main__":
    raise SystemExit(main())
