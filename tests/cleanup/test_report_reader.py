"""Tests for replaying a report file as LookupResults."""

from unittest.mock import MagicMock

from holdingpen.cleanup.report_reader import ReportReader
from holdingpen.pipeline import is_end

REPORT = (
    "Source,Duplicates count,Proxy count,Duplicates buckets,Proxy locations\n"
    "dir/clip.mxf,1,1,deep-archive,s3://proxies/dir/clip_prox.mp4\n"
    "broken,notanumber,0,,\n"
    "\n"
    "lonely.mov,0,0,,\n"
)


def drain(stream):
    items = []
    while True:
        item = stream.receive(timeout=5)
        if is_end(item):
            return items
        items.append(item)


class TestReportReader:

    def test_reads_rows_and_skips_bad_ones(self, tmp_path):
        path = tmp_path / "report.csv"
        path.write_text(REPORT, encoding="utf-8")
        logger = MagicMock()
        handle = open(path, newline="", encoding="utf-8")

        reader = ReportReader(handle, logger=logger)
        results = drain(reader.start())

        assert [r.requested_file for r in results] == ["dir/clip.mxf", "lonely.mov"]
        assert results[0].proxies[0].path == "dir/clip_prox.mp4"
        assert results[0].proxies[0].is_proxy
        assert reader.skipped == 1
        assert reader.join(5)
        assert handle.closed
        assert reader.errors.poll() is None
        assert logger.error.call_args.args[0].startswith("Could not read line 3:")

    def test_header_only(self, tmp_path):
        path = tmp_path / "report.csv"
        path.write_text(REPORT.splitlines()[0] + "\n", encoding="utf-8")

        reader = ReportReader(open(path, newline="", encoding="utf-8"))

        assert drain(reader.start()) == []
