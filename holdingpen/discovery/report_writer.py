"""Sink that writes lookup results to the CSV duplicates report."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.core.models import LookupResult
from holdingpen.core.report import REPORT_HEADER, to_csv_row

TIB = 1024 ** 4


@dataclass
class DiscoveryTotals:
    files: int = 0
    total_size: int = 0
    matched_files: int = 0
    matched_size: int = 0
    rows_written: int = 0

    def summary(self) -> str:
        return (
            f"got a total of {self.total_size / TIB:0.1f}Tb in {self.files} files "
            f"of which {self.matched_size / TIB:0.1f}Tb in {self.matched_files} files was matched"
        )


class ReportWriter:
    """Writes one report row per LookupResult and keeps running totals.

    Used as a context manager so the file is flushed and closed even when the
    run ends on an error.
    """

    def __init__(
        self,
        path: Path,
        only_with_duplicates: bool = False,
        logger: Optional[CustomLogger] = None,
    ):
        self.path = Path(path)
        self.only_with_duplicates = only_with_duplicates
        self.logger = logger or setup_logger(__name__)
        self.totals = DiscoveryTotals()
        self._file: Optional[TextIO] = None
        self._writer = None

    def open(self) -> "ReportWriter":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file)
        self._writer.writerow(REPORT_HEADER)
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> "ReportWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write(self, result: LookupResult) -> None:
        if self._writer is None:
            raise RuntimeError(f"report {self.path} is not open")

        self.logger.info(
            f"{result.requested_file} has {result.count} results in "
            f"({','.join(result.duplicate_buckets)}) and {len(result.proxies)} proxies"
        )
        self.totals.files += 1
        self.totals.total_size += result.requested_file_size
        if result.count > 0:
            self.totals.matched_files += 1
            self.totals.matched_size += result.requested_file_size

        if self.only_with_duplicates and result.count == 0:
            return
        self._writer.writerow(to_csv_row(result))
        self.totals.rows_written += 1

    __call__ = write
