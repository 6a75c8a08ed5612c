"""Stage transform that looks each holding pen object up in the archive index."""

from typing import Iterator, List, Optional, Sequence

from holdingpen.core.keys import decode_key
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.core.models import ArchiveEntry, LookupResult, MalformedArchiveEntry, ObjectListing
from holdingpen.pipeline import StageError
from holdingpen.storage import ArchiveIndexClient, IndexQueryError


class IndexLookup:
    """Maps an ObjectListing to a LookupResult of its archived copies.

    Undecodable keys and malformed hits are logged and skipped. A failed
    query raises, which stops the worker.
    """

    def __init__(
        self,
        index: ArchiveIndexClient,
        target_bucket: str,
        exclude_buckets: Sequence[str] = (),
        logger: Optional[CustomLogger] = None,
    ):
        self.index = index
        self.target_bucket = target_bucket
        self.exclude_buckets: List[str] = [target_bucket, *[b for b in exclude_buckets if b]]
        self.logger = logger or setup_logger(__name__)

    def __call__(self, listing: ObjectListing) -> Iterator[LookupResult]:
        try:
            path = decode_key(listing.key)
        except (ValueError, UnicodeDecodeError) as e:
            self.logger.error(f"Can't urldecode '{listing.key}': {e}")
            return

        try:
            response = self.index.search(path, exclude_buckets=self.exclude_buckets)
        except IndexQueryError as e:
            raise StageError(f"index lookup failed: {e}", context=f"{self.target_bucket}:{path}") from e

        entries = []
        for hit in response.hits:
            try:
                entries.append(ArchiveEntry.from_dict(hit).to_found_entry())
            except MalformedArchiveEntry as e:
                self.logger.error(f"Could not read index result for {path}: {e}")

        yield LookupResult(
            requested_file=path,
            requested_file_size=listing.size,
            count=response.total_hits,
            entries=entries,
        )
