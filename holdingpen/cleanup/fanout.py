"""Stage transform expanding a LookupResult into the entries to act on."""

from typing import Iterator, Optional

from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.core.models import FoundEntry, LookupResult

# More proxies than this for one file points at a bad prefix match
MAX_PROXIES = 3


class EntryFanout:
    """Emits the original file in ``root_bucket`` followed by each of its proxies."""

    def __init__(self, root_bucket: str, logger: Optional[CustomLogger] = None):
        self.root_bucket = root_bucket
        self.logger = logger or setup_logger(__name__)

    def __call__(self, result: LookupResult) -> Iterator[FoundEntry]:
        yield FoundEntry(
            bucket=self.root_bucket,
            path=result.requested_file,
            size=result.requested_file_size,
        )

        if len(result.proxies) > MAX_PROXIES:
            self.logger.warning(
                f"{result.requested_file} has {len(result.proxies)} proxies which is suspiciously large, ignoring them"
            )
            return
        yield from result.proxies
