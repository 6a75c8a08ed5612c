"""Stage transform that removes entries from the object store."""

from __future__ import annotations

import threading
from typing import Iterator, Optional

from holdingpen.config import env
from holdingpen.core.keys import normalize_key
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.core.models import FoundEntry
from holdingpen.pipeline import StageError
from holdingpen.storage import ObjectStore, ObjectStoreError


def has_location(entry: FoundEntry) -> bool:
    """Entries without a bucket or path have nowhere to act on."""
    return bool(entry.bucket and entry.path)


class EntryDeleter:
    """Deletes each entry, or only logs what it would delete.

    Nothing is emitted downstream. ``would_delete`` and ``deleted`` are shared
    by every worker of the stage.
    """

    def __init__(
        self,
        store: ObjectStore,
        really_delete: bool = False,
        timeout: float = env.DELETE_TIMEOUT,
        logger: Optional[CustomLogger] = None,
    ):
        self.store = store
        self.really_delete = really_delete
        self.timeout = timeout
        self.logger = logger or setup_logger(__name__)
        self.would_delete = 0
        self.deleted = 0
        self._lock = threading.Lock()

    def __call__(self, entry: FoundEntry) -> Iterator[FoundEntry]:
        if not has_location(entry):
            return iter(())

        try:
            key = normalize_key(entry.path)
        except ValueError as e:
            self.logger.error(f"Could not urldecode '{entry.path}': {e}")
            return iter(())

        self.logger.info(f"Deleting s3://{entry.bucket}/{key}")
        if not self.really_delete:
            with self._lock:
                self.would_delete += 1
            return iter(())

        try:
            self.store.delete(entry.bucket, key, timeout=self.timeout)
        except ObjectStoreError as e:
            raise StageError(f"could not delete: {e}", context=f"{entry.bucket}:{key}") from e

        with self._lock:
            self.deleted += 1
        self.logger.debug(f"Deleted s3://{entry.bucket}/{key}")
        return iter(())

    def summary(self) -> str:
        if self.really_delete:
            return f"deleted {self.deleted} object(s)"
        return f"dry run, would have deleted {self.would_delete} object(s)"
