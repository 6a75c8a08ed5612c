"""External services: the S3 object store and the archive index."""

from .archive_index import ArchiveIndexClient, IndexQueryError, SearchResponse, build_path_query
from .object_store import ObjectPage, ObjectStore, ObjectStoreError, RemoteObject

__all__ = [
    "ArchiveIndexClient",
    "IndexQueryError",
    "ObjectPage",
    "ObjectStore",
    "ObjectStoreError",
    "RemoteObject",
    "SearchResponse",
    "build_path_query",
]
