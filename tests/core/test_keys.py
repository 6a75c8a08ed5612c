"""Tests for object key decoding."""

import pytest

from holdingpen.core.keys import decode_key, normalize_key


class TestDecodeKey:

    def test_query_unescape(self):
        assert decode_key("some%2Fdir%2Fmy+file.mxf") == "some/dir/my file.mxf"

    def test_plain_key_unchanged(self):
        assert decode_key("plain/key.mxf") == "plain/key.mxf"

    @pytest.mark.parametrize("key", ["bad%zzescape", "trailing%", "short%4"])
    def test_malformed_escape(self, key):
        with pytest.raises(ValueError):
            decode_key(key)


class TestNormalizeKey:

    def test_strips_one_leading_slash(self):
        assert normalize_key("/media/clip.mxf") == "media/clip.mxf"
        assert normalize_key("//media/clip.mxf") == "/media/clip.mxf"

    def test_decodes_encoded_separator(self):
        assert normalize_key("media%2Fclip.mxf") == "media/clip.mxf"
        assert normalize_key("media%2fclip.mxf") == "media/clip.mxf"

    def test_leaves_other_escapes_alone(self):
        assert normalize_key("media/100%25 done.mxf") == "media/100%25 done.mxf"

    def test_malformed_escape_with_separator(self):
        with pytest.raises(ValueError):
            normalize_key("media%2Fbad%zz.mxf")
