"""Tests for expanding a LookupResult into the entries to fetch and delete."""

from unittest.mock import MagicMock

from holdingpen.cleanup.fanout import MAX_PROXIES, EntryFanout
from holdingpen.core.models import FoundEntry, LookupResult


def proxies(count):
    return [FoundEntry("proxies", f"clip_{i}.mp4", is_proxy=True) for i in range(count)]


class TestEntryFanout:

    def test_root_then_proxies(self):
        result = LookupResult("dir/clip.mxf", requested_file_size=99, count=1, proxies=proxies(2))

        entries = list(EntryFanout("holding-pen")(result))

        assert entries[0] == FoundEntry(bucket="holding-pen", path="dir/clip.mxf", size=99)
        assert entries[1:] == result.proxies

    def test_no_proxies(self):
        entries = list(EntryFanout("holding-pen")(LookupResult("clip.mxf")))
        assert entries == [FoundEntry(bucket="holding-pen", path="clip.mxf")]

    def test_limit_is_inclusive(self):
        result = LookupResult("clip.mxf", proxies=proxies(MAX_PROXIES))
        assert len(list(EntryFanout("holding-pen")(result))) == MAX_PROXIES + 1

    def test_too_many_proxies_keeps_root_only(self):
        logger = MagicMock()
        result = LookupResult("clip.mxf", proxies=proxies(4))

        entries = list(EntryFanout("holding-pen", logger=logger)(result))

        assert entries == [FoundEntry(bucket="holding-pen", path="clip.mxf")]
        logger.warning.assert_called_once()
