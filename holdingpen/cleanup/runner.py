"""Fetch-and-delete: download what the report lists, then remove it from S3."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from holdingpen.cleanup.delete import EntryDeleter, has_location
from holdingpen.cleanup.fanout import EntryFanout
from holdingpen.cleanup.fetch import EntryFetcher
from holdingpen.cleanup.report_reader import ReportReader
from holdingpen.config import env
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.pipeline import Pipeline, PipelineOutcome, Stage
from holdingpen.storage import ObjectStore

logger = setup_logger(__name__)


@dataclass
class CleanupOptions:
    input: Path = env.REPORT_FILE
    root_bucket: str = env.TARGET_BUCKET
    delete_workers: int = env.DEFAULT_WORKERS
    fetch_workers: int = env.DEFAULT_WORKERS
    really_delete: bool = False
    skip_download: bool = False
    media_dir: Path = env.MEDIA_DIR
    proxy_dir: Path = env.PROXY_DIR
    timeout: float = env.REQUEST_TIMEOUT
    delete_timeout: float = env.DELETE_TIMEOUT
    show_progress: bool = env.SHOW_PROGRESS
    capacity: int = env.STREAM_CAPACITY


def open_report(path: Path) -> TextIO:
    """Open the report for reading. Errors propagate; nothing has started yet."""
    return open(path, "r", newline="", encoding="utf-8")


def build_cleanup_pipeline(
    options: CleanupOptions,
    handle: TextIO,
    store: ObjectStore,
    log: Optional[CustomLogger] = None,
) -> tuple[Pipeline, EntryDeleter]:
    """reader -> fanout -> [fetch] -> delete."""
    log = log or logger
    reader = ReportReader(handle, capacity=options.capacity, logger=log.getChild("reader"))
    pipeline = Pipeline("fetch-and-delete", reader, logger=log)

    pipeline.then(
        Stage(
            "fanout",
            EntryFanout(options.root_bucket, logger=log.getChild("fanout")),
            workers=1,
            capacity=options.capacity,
            logger=log.getChild("fanout"),
        )
    )

    if options.skip_download:
        log.warning("Not downloading files before deletion")
    else:
        fetcher = EntryFetcher(
            store,
            media_dir=options.media_dir,
            proxy_dir=options.proxy_dir,
            timeout=options.timeout,
            show_progress=options.show_progress,
            logger=log.getChild("fetch"),
        )
        pipeline.then(
            Stage(
                "fetch",
                fetcher,
                workers=options.fetch_workers,
                capacity=options.capacity,
                accepts=has_location,
                logger=log.getChild("fetch"),
            )
        )

    deleter = EntryDeleter(
        store,
        really_delete=options.really_delete,
        timeout=options.delete_timeout,
        logger=log.getChild("delete"),
    )
    pipeline.then(
        Stage(
            "delete",
            deleter,
            workers=options.delete_workers,
            capacity=options.capacity,
            accepts=has_location,
            logger=log.getChild("delete"),
        )
    )
    return pipeline, deleter


def run_cleanup(
    options: CleanupOptions,
    store: ObjectStore,
    log: Optional[CustomLogger] = None,
) -> PipelineOutcome:
    """Run fetch-and-delete over ``options.input``.

    Raises OSError if the report cannot be opened.
    """
    log = log or logger
    handle = open_report(options.input)
    if not options.really_delete:
        log.info("Dry run: nothing will be deleted, pass --really-delete to delete")

    pipeline, deleter = build_cleanup_pipeline(options, handle, store, log)
    outcome = pipeline.run()

    log.info(f"All done, {deleter.summary()}")
    if not outcome.succeeded:
        log.error(f"Fetch-and-delete did not complete: {outcome.error}")
    return outcome
