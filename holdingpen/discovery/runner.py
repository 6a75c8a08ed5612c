"""Archive discovery: which holding pen files are already in the archive."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from holdingpen.config import env
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.discovery.bucket_reader import BucketScanner
from holdingpen.discovery.index_lookup import IndexLookup
from holdingpen.discovery.proxy_locator import ProxyLocator
from holdingpen.discovery.report_writer import ReportWriter
from holdingpen.pipeline import Pipeline, PipelineOutcome, Stage
from holdingpen.storage import ArchiveIndexClient, ObjectStore

logger = setup_logger(__name__)


@dataclass
class DiscoveryOptions:
    target_bucket: str = env.TARGET_BUCKET
    proxy_bucket: str = env.PROXY_BUCKET
    exclude_buckets: List[str] = field(default_factory=lambda: list(env.EXCLUDE_BUCKETS))
    output: Path = env.REPORT_FILE
    lookup_workers: int = env.DEFAULT_WORKERS
    proxy_workers: int = 10
    timeout: float = env.REQUEST_TIMEOUT
    only_with_duplicates: bool = False
    capacity: int = env.STREAM_CAPACITY


def build_discovery_pipeline(
    options: DiscoveryOptions,
    store: ObjectStore,
    index: ArchiveIndexClient,
    log: Optional[CustomLogger] = None,
) -> Pipeline:
    """scan -> index lookup -> proxy locator."""
    log = log or logger
    scanner = BucketScanner(
        store,
        options.target_bucket,
        timeout=options.timeout,
        capacity=options.capacity,
        logger=log.getChild("scan"),
    )
    lookup = Stage(
        "index-lookup",
        IndexLookup(index, options.target_bucket, options.exclude_buckets, logger=log.getChild("lookup")),
        workers=options.lookup_workers,
        capacity=options.capacity,
        logger=log.getChild("lookup"),
    )
    proxies = Stage(
        "proxy-locator",
        ProxyLocator(store, options.proxy_bucket, timeout=options.timeout, logger=log.getChild("proxies")),
        workers=options.proxy_workers,
        capacity=options.capacity,
        fatal_errors=False,
        logger=log.getChild("proxies"),
    )
    return Pipeline("find-archived", scanner, logger=log).then(lookup).then(proxies)


def run_discovery(
    options: DiscoveryOptions,
    store: ObjectStore,
    index: ArchiveIndexClient,
    log: Optional[CustomLogger] = None,
) -> PipelineOutcome:
    """Run the discovery pipeline and write the report to ``options.output``."""
    log = log or logger
    if options.exclude_buckets:
        log.info(f"Excluding {len(options.exclude_buckets)} other buckets from results: {options.exclude_buckets}")

    pipeline = build_discovery_pipeline(options, store, index, log)
    with ReportWriter(options.output, options.only_with_duplicates, logger=log.getChild("report")) as writer:
        outcome = pipeline.run(writer)

    log.info(f"All done, {writer.totals.summary()}")
    if outcome.succeeded:
        log.info(f"Report written to {options.output} ({writer.totals.rows_written} rows)")
    else:
        log.error(f"Discovery did not complete: {outcome.error}")
    return outcome
