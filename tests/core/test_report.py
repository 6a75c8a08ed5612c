"""Tests for the CSV report row format."""

import pytest

from holdingpen.core.models import FoundEntry, LookupResult
from holdingpen.core.report import REPORT_HEADER, ReportRowError, from_csv_row, to_csv_row


def sample_result():
    return LookupResult(
        requested_file="media/clip.mxf",
        requested_file_size=2048,
        count=2,
        entries=[
            FoundEntry("deep-archive", "media/clip.mxf"),
            FoundEntry("nearline", "media/clip.mxf"),
        ],
        proxies=[
            FoundEntry("proxies", "media/clip_prox.mp4", is_proxy=True),
            FoundEntry("proxies", "media/clip_thumb.jpg", is_proxy=True),
        ],
    )


class TestToCsvRow:

    def test_columns(self):
        row = to_csv_row(sample_result())
        assert len(row) == len(REPORT_HEADER)
        assert row == [
            "media/clip.mxf",
            "2",
            "2",
            "deep-archive|nearline",
            "s3://proxies/media/clip_prox.mp4|s3://proxies/media/clip_thumb.jpg",
        ]

    def test_no_matches(self):
        row = to_csv_row(LookupResult(requested_file="lonely.mxf"))
        assert row == ["lonely.mxf", "0", "0", "", ""]


class TestFromCsvRow:

    def test_round_trip(self):
        original = sample_result()
        parsed = from_csv_row(to_csv_row(original))

        assert parsed.requested_file == original.requested_file
        assert parsed.count == original.count
        assert len(parsed.proxies) == len(original.proxies)
        assert parsed.duplicate_buckets == original.duplicate_buckets
        assert all(proxy.is_proxy for proxy in parsed.proxies)
        assert [p.path for p in parsed.proxies] == [p.path for p in original.proxies]

    def test_size_is_not_carried(self):
        assert from_csv_row(to_csv_row(sample_result())).requested_file_size == 0

    def test_empty_lists(self):
        parsed = from_csv_row(["lonely.mxf", "0", "0", "", ""])
        assert parsed.entries == []
        assert parsed.proxies == []

    def test_too_few_columns(self):
        with pytest.raises(ReportRowError):
            from_csv_row(["a.mxf", "1", "0"])

    def test_count_not_a_number(self):
        with pytest.raises(ReportRowError):
            from_csv_row(["a.mxf", "lots", "0", "", ""])

    def test_bad_proxy_uri(self):
        with pytest.raises(ReportRowError):
            from_csv_row(["a.mxf", "0", "1", "", "not-a-uri"])
