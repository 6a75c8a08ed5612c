"""S3 access for listing, fetching and deleting objects.

Credentials come from the standard AWS configuration chain (environment,
shared config, instance profile). Every call takes an explicit timeout and is
attempted once; nothing here retries.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Iterator, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from holdingpen.config import env
from holdingpen.core.logger import setup_logger
from holdingpen.core.models import ObjectListing

logger = setup_logger(__name__)

CHUNK_SIZE = 1024 * 1024


class ObjectStoreError(RuntimeError):
    """An S3 request failed."""

    def __init__(self, operation: str, bucket: str, key: Optional[str], cause: Exception):
        location = f"{bucket}:{key}" if key is not None else bucket
        super().__init__(f"{operation} failed for {location}: {cause}")
        self.operation = operation
        self.bucket = bucket
        self.key = key
        self.cause = cause


@dataclass
class ObjectPage:
    """One page of a bucket listing."""
    objects: List[ObjectListing]
    next_token: Optional[str] = None


@dataclass
class RemoteObject:
    """An object body ready to be streamed."""
    body: BinaryIO
    content_length: int
    bucket: str = ""
    key: str = ""

    def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        try:
            while True:
                chunk = self.body.read(chunk_size)
                if not chunk:
                    return
                yield chunk
        except (BotoCoreError, OSError) as e:
            raise ObjectStoreError("read", self.bucket, self.key, e) from e

    def close(self) -> None:
        close = getattr(self.body, "close", None)
        if close is not None:
            close()


class ObjectStore:
    """Thin wrapper over a boto3 S3 client, one client per timeout value."""

    def __init__(
        self,
        session: Optional[Any] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client_factory: Optional[Any] = None,
    ):
        self._session = session
        self._region = region if region is not None else env.AWS_REGION
        self._endpoint_url = endpoint_url if endpoint_url is not None else env.S3_ENDPOINT_URL
        self._client_factory = client_factory
        self._clients: Dict[float, Any] = {}
        self._lock = threading.Lock()

    def _client(self, timeout: float) -> Any:
        """Return the client configured for ``timeout`` seconds."""
        client = self._clients.get(timeout)
        if client is not None:
            return client
        # stage workers share the store; build each client and the session once
        with self._lock:
            client = self._clients.get(timeout)
            if client is None:
                client = self._make_client(timeout)
                self._clients[timeout] = client
        return client

    def _make_client(self, timeout: float) -> Any:
        config = BotoConfig(
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"mode": "standard", "total_max_attempts": 1},
        )
        kwargs: Dict[str, Any] = {"config": config}
        if self._region:
            kwargs["region_name"] = self._region
        if self._endpoint_url:
            kwargs["endpoint_url"] = self._endpoint_url

        if self._client_factory is not None:
            return self._client_factory(**kwargs)
        if self._session is None:
            self._session = boto3.Session()
        return self._session.client("s3", **kwargs)

    def connect(self, *timeouts: float) -> "ObjectStore":
        """Create clients for the given timeouts up front (fails fast on bad config)."""
        for timeout in timeouts or (env.REQUEST_TIMEOUT,):
            try:
                self._client(timeout)
            except BotoCoreError as e:
                raise ObjectStoreError("connect", self._endpoint_url or "s3", None, e) from e
        return self

    def list_page(
        self,
        bucket: str,
        continuation_token: Optional[str] = None,
        prefix: Optional[str] = None,
        max_keys: Optional[int] = None,
        encoding_type: Optional[str] = None,
        timeout: float = env.REQUEST_TIMEOUT,
    ) -> ObjectPage:
        """List one page of ``bucket``."""
        params: Dict[str, Any] = {"Bucket": bucket}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        if prefix is not None:
            params["Prefix"] = prefix
        if max_keys is not None:
            params["MaxKeys"] = max_keys
        if encoding_type:
            params["EncodingType"] = encoding_type

        try:
            response = self._client(timeout).list_objects_v2(**params)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError("list", bucket, prefix, e) from e

        objects = [
            ObjectListing(
                key=item["Key"],
                size=int(item.get("Size", 0)),
                storage_class=item.get("StorageClass"),
            )
            for item in response.get("Contents", [])
        ]
        logger.debug(
            f"Listed {bucket}: {response.get('KeyCount', len(objects))} key(s), "
            f"truncated={response.get('IsTruncated', False)}"
        )
        return ObjectPage(objects=objects, next_token=response.get("NextContinuationToken"))

    def get(self, bucket: str, key: str, timeout: float = env.REQUEST_TIMEOUT) -> RemoteObject:
        """Open ``bucket/key`` for reading."""
        try:
            response = self._client(timeout).get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError("get", bucket, key, e) from e
        return RemoteObject(
            body=response["Body"],
            content_length=int(response.get("ContentLength", 0)),
            bucket=bucket,
            key=key,
        )

    def delete(self, bucket: str, key: str, timeout: float = env.DELETE_TIMEOUT) -> None:
        """Delete ``bucket/key``."""
        try:
            self._client(timeout).delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise ObjectStoreError("delete", bucket, key, e) from e
