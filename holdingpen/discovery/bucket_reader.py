"""Source that enumerates every object in the holding pen bucket."""

from typing import Iterator, Optional

from holdingpen.config import env
from holdingpen.core.logger import CustomLogger
from holdingpen.core.models import ObjectListing
from holdingpen.pipeline import Source
from holdingpen.storage import ObjectStore


class BucketScanner(Source):
    """Pages through ``bucket`` until the listing has no continuation token.

    Keys are requested URL-encoded; decoding happens in the lookup stage. A
    listing failure ends the scan, there is no retry.
    """

    def __init__(
        self,
        store: ObjectStore,
        bucket: str,
        timeout: float = env.REQUEST_TIMEOUT,
        capacity: Optional[int] = None,
        logger: Optional[CustomLogger] = None,
    ):
        super().__init__("bucket-scan", capacity=capacity, logger=logger)
        self.store = store
        self.bucket = bucket
        self.timeout = timeout
        self.pages = 0

    def produce(self) -> Iterator[ObjectListing]:
        token: Optional[str] = None
        while True:
            page = self.store.list_page(
                self.bucket,
                continuation_token=token,
                encoding_type="url",
                timeout=self.timeout,
            )
            self.pages += 1
            self.logger.debug(
                f"Page {self.pages} of {self.bucket} has {len(page.objects)} object(s), "
                f"continuation token {page.next_token}"
            )
            yield from page.objects

            if not page.next_token:
                self.logger.info(f"Completed iterating {self.bucket} ({self.pages} page(s))")
                return
            token = page.next_token
