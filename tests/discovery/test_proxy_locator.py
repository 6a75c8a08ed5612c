"""Tests for proxy prefix extraction and the proxy locator stage."""

from unittest.mock import MagicMock

import pytest

from holdingpen.core.models import LookupResult, ObjectListing
from holdingpen.discovery.proxy_locator import PROXY_PAGE_SIZE, ProxyLocator, prefix_from_filename
from holdingpen.pipeline import StageError
from holdingpen.storage import ObjectPage, ObjectStoreError


class TestPrefixFromFilename:

    def test_simple_extension(self):
        assert prefix_from_filename("some_file.mxf") == ("some_file", True)

    def test_only_last_extension_removed(self):
        assert prefix_from_filename("some.file.with.dots.mc2") == ("some.file.with.dots", True)

    def test_no_extension(self):
        assert prefix_from_filename("some_file") == ("some_file", False)

    def test_path_kept(self):
        assert prefix_from_filename("dir/sub/clip.mov") == ("dir/sub/clip", True)


@pytest.fixture
def store():
    return MagicMock()


class TestProxyLocator:

    def test_attaches_proxies(self, store):
        store.list_page.return_value = ObjectPage(
            objects=[ObjectListing("dir/clip_prox.mp4", 100), ObjectListing("dir/clip_thumb.jpg", 5)],
        )
        locator = ProxyLocator(store, "proxies", timeout=7)

        results = list(locator(LookupResult(requested_file="dir/clip.mxf", count=1)))

        store.list_page.assert_called_once_with(
            "proxies", prefix="dir/clip", max_keys=PROXY_PAGE_SIZE, timeout=7,
        )
        assert len(results) == 1
        proxies = results[0].proxies
        assert [p.path for p in proxies] == ["dir/clip_prox.mp4", "dir/clip_thumb.jpg"]
        assert all(p.is_proxy and p.bucket == "proxies" for p in proxies)
        assert proxies[0].size == 100

    def test_no_proxies(self, store):
        store.list_page.return_value = ObjectPage(objects=[])
        results = list(ProxyLocator(store, "proxies")(LookupResult(requested_file="clip.mxf")))
        assert results[0].proxies == []

    def test_no_extension_still_searches(self, store):
        store.list_page.return_value = ObjectPage(objects=[])
        logger = MagicMock()

        results = list(ProxyLocator(store, "proxies", logger=logger)(LookupResult(requested_file="noext")))

        assert len(results) == 1
        assert store.list_page.call_args.kwargs["prefix"] == "noext"
        logger.warning.assert_called_once()

    def test_listing_failure(self, store):
        store.list_page.side_effect = ObjectStoreError("list", "proxies", "clip", RuntimeError("timeout"))
        with pytest.raises(StageError, match="proxies:clip"):
            list(ProxyLocator(store, "proxies")(LookupResult(requested_file="clip.mxf")))
