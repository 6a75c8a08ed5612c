"""Fetch-and-delete pipeline: report reader -> fanout -> fetch -> delete."""

from .delete import EntryDeleter, has_location
from .fanout import MAX_PROXIES, EntryFanout
from .fetch import EntryFetcher, FetchConflictError
from .report_reader import ReportReader
from .runner import CleanupOptions, build_cleanup_pipeline, open_report, run_cleanup

__all__ = [
    "MAX_PROXIES",
    "CleanupOptions",
    "EntryDeleter",
    "EntryFanout",
    "EntryFetcher",
    "FetchConflictError",
    "ReportReader",
    "build_cleanup_pipeline",
    "has_location",
    "open_report",
    "run_cleanup",
]
