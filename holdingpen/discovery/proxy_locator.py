"""Stage transform that finds proxies for each looked-up file."""

import re
from typing import Iterator, Optional, Tuple

from holdingpen.config import env
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.core.models import FoundEntry, LookupResult
from holdingpen.pipeline import StageError
from holdingpen.storage import ObjectStore, ObjectStoreError

_EXTENSION = re.compile(r"^(.*)\.([^.]+)$")

PROXY_PAGE_SIZE = 100


def prefix_from_filename(filename: str) -> Tuple[str, bool]:
    """Strip the final extension; returns (prefix, had_extension)."""
    match = _EXTENSION.match(filename)
    if match is None:
        return filename, False
    return match.group(1), True


class ProxyLocator:
    """Attaches proxies found under the file's prefix in the proxy bucket.

    Used in a stage with ``fatal_errors=False``: a failed listing is reported
    and that record is dropped, the stage keeps going.
    """

    def __init__(
        self,
        store: ObjectStore,
        proxy_bucket: str,
        timeout: float = env.REQUEST_TIMEOUT,
        logger: Optional[CustomLogger] = None,
    ):
        self.store = store
        self.proxy_bucket = proxy_bucket
        self.timeout = timeout
        self.logger = logger or setup_logger(__name__)

    def __call__(self, result: LookupResult) -> Iterator[LookupResult]:
        prefix, found = prefix_from_filename(result.requested_file)
        if not found:
            self.logger.warning(f"Could not get prefix from '{result.requested_file}'")

        try:
            page = self.store.list_page(
                self.proxy_bucket,
                prefix=prefix,
                max_keys=PROXY_PAGE_SIZE,
                timeout=self.timeout,
            )
        except ObjectStoreError as e:
            raise StageError(
                f"proxy search failed: {e}",
                context=f"{self.proxy_bucket}:{prefix}",
            ) from e

        if page.objects:
            self.logger.debug(f"Found {len(page.objects)} proxies for {result.requested_file}")
            result.proxies = [
                FoundEntry(bucket=self.proxy_bucket, path=obj.key, size=obj.size, is_proxy=True)
                for obj in page.objects
            ]
        yield result
