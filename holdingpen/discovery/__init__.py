"""Archive discovery pipeline: bucket scan -> index lookup -> proxy locator -> report."""

from .bucket_reader import BucketScanner
from .index_lookup import IndexLookup
from .proxy_locator import ProxyLocator, prefix_from_filename
from .report_writer import DiscoveryTotals, ReportWriter
from .runner import DiscoveryOptions, build_discovery_pipeline, run_discovery

__all__ = [
    "BucketScanner",
    "DiscoveryOptions",
    "DiscoveryTotals",
    "IndexLookup",
    "ProxyLocator",
    "ReportWriter",
    "build_discovery_pipeline",
    "prefix_from_filename",
    "run_discovery",
]
