"""Object key decoding shared by the lookup, fetch and delete stages."""

import re
from urllib.parse import unquote_plus

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_ENCODED_SEPARATOR = re.compile(r"%2F", re.IGNORECASE)


def decode_key(key: str) -> str:
    """Query-unescape an object key, rejecting malformed percent escapes."""
    if _BAD_ESCAPE.search(key):
        raise ValueError(f"invalid URL escape in '{key}'")
    return unquote_plus(key, errors="strict")


def normalize_key(path: str) -> str:
    """Turn a report path into an object key.

    Strips one leading ``/`` and decodes the key when it contains an encoded
    path separator. Raises ValueError for malformed escapes.
    """
    key = path[1:] if path.startswith("/") else path
    if _ENCODED_SEPARATOR.search(key):
        key = decode_key(key)
    return key
