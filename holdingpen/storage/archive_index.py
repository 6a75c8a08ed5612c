"""Archive index client (Elasticsearch REST API) for duplicate lookups."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from holdingpen.config import env
from holdingpen.core.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_RESULT_SIZE = 100


class IndexQueryError(RuntimeError):
    """The archive index could not be queried."""


@dataclass
class SearchResponse:
    total_hits: int
    hits: List[Dict[str, Any]] = field(default_factory=list)  # raw _source documents


def build_path_query(path: str, exclude_buckets: Sequence[str]) -> Dict[str, Any]:
    """Bool query matching ``path`` exactly in every bucket except the excluded ones."""
    return {
        "bool": {
            "must": [{"term": {"path.keyword": path}}],
            "must_not": [{"term": {"bucket.keyword": bucket}} for bucket in exclude_buckets],
        }
    }


def _total_hits(hits: Dict[str, Any]) -> int:
    total = hits.get("total", 0)
    # Elasticsearch 7+ reports {"value": n, "relation": "eq"}
    if isinstance(total, dict):
        total = total.get("value", 0)
    try:
        return int(total)
    except (TypeError, ValueError):
        return 0


class ArchiveIndexClient:
    """Client for searching the archive index."""

    def __init__(
        self,
        url: str = env.ELASTIC_URL,
        index: str = env.INDEX_NAME,
        timeout: float = env.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = url.rstrip("/")
        self.index = index
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, endpoint: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        """Make a request to the index. Returns parsed JSON response."""
        url = self.base_url + endpoint
        logger.debug(f"Index API: {method} {url}")

        try:
            response = self._session.request(
                method=method,
                url=url,
                json=json_data,
                timeout=self.timeout,
            )

            if not response.ok:
                logger.error(f"Index API error response: {response.text[:500]}")

            response.raise_for_status()
            return response.json()

        except requests.exceptions.JSONDecodeError as e:
            raise IndexQueryError(f"Invalid JSON response from {url}: {e}") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise IndexQueryError(f"Index returned HTTP {status} for {url}") from e
        except requests.exceptions.RequestException as e:
            raise IndexQueryError(f"Index request to {url} failed: {e}") from e

    def ping(self) -> str:
        """Check the index is reachable; returns the server version."""
        data = self._request("GET", "/")
        version = (data.get("version") or {}).get("number", "unknown") if isinstance(data, dict) else "unknown"
        logger.info(f"Connected to archive index at {self.base_url} (version {version})")
        return version

    def search(
        self,
        path: str,
        exclude_buckets: Sequence[str] = (),
        size: int = DEFAULT_RESULT_SIZE,
    ) -> SearchResponse:
        """Find archived copies of ``path`` outside ``exclude_buckets``."""
        body = {
            "query": build_path_query(path, exclude_buckets),
            "size": size,
            "track_total_hits": True,
        }
        data = self._request("POST", f"/{self.index}/_search", json_data=body)
        if not isinstance(data, dict):
            raise IndexQueryError(f"Unexpected search response for '{path}'")

        hits = data.get("hits") or {}
        sources = [hit.get("_source") for hit in hits.get("hits", []) if isinstance(hit, dict)]
        return SearchResponse(total_hits=_total_hits(hits), hits=sources)
