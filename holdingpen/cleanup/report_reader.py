"""Source that replays a duplicates report as LookupResults."""

import csv
from typing import Iterator, Optional, TextIO

from holdingpen.core.logger import CustomLogger
from holdingpen.core.models import LookupResult
from holdingpen.core.report import ReportRowError, from_csv_row
from holdingpen.pipeline import Source


class ReportReader(Source):
    """Reads rows from an already opened report file.

    The header row is skipped. Rows that cannot be interpreted are logged and
    skipped; a CSV syntax error ends the read.
    """

    def __init__(
        self,
        handle: TextIO,
        capacity: Optional[int] = None,
        logger: Optional[CustomLogger] = None,
    ):
        super().__init__("report-reader", capacity=capacity, logger=logger)
        self.handle = handle
        self.skipped = 0

    def produce(self) -> Iterator[LookupResult]:
        try:
            reader = csv.reader(self.handle)
            for row in reader:
                line_number = reader.line_num
                if line_number == 1:
                    continue
                if not row:
                    continue
                try:
                    yield from_csv_row(row)
                except ReportRowError as e:
                    self.skipped += 1
                    self.logger.error(f"Could not read line {line_number}: {e}")
            self.logger.info("Reached end of report")
        finally:
            self.handle.close()
