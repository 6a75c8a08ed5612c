"""Stage transform that downloads entries before they are deleted."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Optional

from tqdm import tqdm

from holdingpen.config import env
from holdingpen.core.keys import normalize_key
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.core.models import FoundEntry
from holdingpen.pipeline import StageError
from holdingpen.storage import ObjectStore, ObjectStoreError, RemoteObject

MB = 1024 ** 2


class FetchConflictError(StageError):
    """A different file already exists at the download destination."""


def local_file_size(path: Path) -> Optional[int]:
    """Size of ``path``, or None if it does not exist."""
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return None


class EntryFetcher:
    """Copies each entry's object to local storage.

    Originals land under ``media_dir`` and proxies under ``proxy_dir``, keeping
    the object key as the relative path. An existing file of the same size
    counts as already downloaded; one of a different size is a conflict and is
    left alone.
    """

    def __init__(
        self,
        store: ObjectStore,
        media_dir: Path = env.MEDIA_DIR,
        proxy_dir: Path = env.PROXY_DIR,
        timeout: float = env.REQUEST_TIMEOUT,
        show_progress: bool = env.SHOW_PROGRESS,
        logger: Optional[CustomLogger] = None,
    ):
        self.store = store
        self.media_dir = Path(media_dir)
        self.proxy_dir = Path(proxy_dir)
        self.timeout = timeout
        self.show_progress = show_progress
        self.logger = logger or setup_logger(__name__)

    def destination_for(self, entry: FoundEntry, key: str) -> Path:
        """Local path for ``key``, always inside the entry's download root."""
        root = self.proxy_dir if entry.is_proxy else self.media_dir
        destination = root / key.lstrip("/")
        resolved_root = root.resolve()
        resolved = destination.resolve()
        if resolved == resolved_root or not resolved.is_relative_to(resolved_root):
            raise StageError(
                f"key '{key}' does not resolve to a file under {root}",
                context=f"{entry.bucket}:{key}",
            )
        return destination

    def __call__(self, entry: FoundEntry) -> Iterator[FoundEntry]:
        try:
            key = normalize_key(entry.path)
        except ValueError as e:
            self.logger.error(f"Could not urldecode '{entry.path}': {e}")
            return

        destination = self.destination_for(entry, key)
        copied = self.fetch(entry.bucket, key, destination)
        self.logger.info(f"{key} {copied / MB:.1f}Mb")
        yield entry

    def fetch(self, bucket: str, key: str, destination: Path) -> int:
        """Download ``bucket/key`` to ``destination``; returns the byte count."""
        context = f"{bucket}:{key}"
        try:
            remote = self.store.get(bucket, key, timeout=self.timeout)
        except ObjectStoreError as e:
            raise StageError(f"can't download: {e}", context=context) from e

        try:
            existing = local_file_size(destination)
            if existing is not None:
                if existing == remote.content_length:
                    self.logger.info(f"Local file {destination} already exists with the right file size")
                    return existing
                raise FetchConflictError(
                    f"local file {destination} exists with size {existing} "
                    f"but remote has size {remote.content_length}",
                    context=context,
                )

            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StageError(f"could not create directories for '{destination}': {e}", context=context) from e
            return self._transfer(remote, destination, context)
        finally:
            remote.close()

    def _transfer(self, remote: RemoteObject, destination: Path, context: str) -> int:
        """Stream the body to a hidden sibling of ``destination``, then rename it into place."""
        temp_path = destination.parent / f".{destination.name}.part"
        copied = 0
        try:
            with open(temp_path, "wb") as handle, tqdm(
                total=remote.content_length,
                unit="B",
                unit_scale=True,
                desc=destination.name,
                leave=False,
                disable=not self.show_progress,
            ) as pbar:
                for chunk in remote.iter_chunks():
                    handle.write(chunk)
                    copied += len(chunk)
                    pbar.update(len(chunk))
        except (OSError, ObjectStoreError) as e:
            temp_path.unlink(missing_ok=True)
            raise StageError(f"transfer to {destination} failed: {e}", context=context) from e

        if copied != remote.content_length:
            temp_path.unlink(missing_ok=True)
            raise StageError(
                f"incorrect number of bytes read/written, expected {remote.content_length} got {copied}",
                context=context,
            )

        # os.rename would overwrite on Unix
        if destination.exists():
            temp_path.unlink(missing_ok=True)
            raise FetchConflictError(f"local file {destination} appeared during download", context=context)
        try:
            os.rename(temp_path, destination)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StageError(f"could not move download into {destination}: {e}", context=context) from e
        return copied
