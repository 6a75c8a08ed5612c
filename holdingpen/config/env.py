"""Bootstrap configuration read from the environment.

Values are read once at import time. CLI flags default to these, so anything a
flag controls can also be set through an ``HOLDINGPEN_*`` environment variable.
"""

import os
from pathlib import Path
from typing import List, Optional


def string_to_bool(value: Optional[str], default: bool = False) -> bool:
    """Interpret common truthy strings ("1", "true", "yes", "on")."""
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env(key: str, default: str = "") -> str:
    return os.getenv(f"HOLDINGPEN_{key}", default).strip()


def _env_int(key: str, default: int) -> int:
    raw = _env(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = _env(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(key: str) -> List[str]:
    raw = _env(key)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Logging
DEBUG = string_to_bool(_env("DEBUG"))
LOG_LEVEL = "DEBUG" if DEBUG else (_env("LOG_LEVEL", "INFO").upper() or "INFO")
ENABLE_LOGGING = string_to_bool(_env("ENABLE_LOGGING"))
LOG_DIR = Path(_env("LOG_DIR", "logs"))

# Pipeline engine
STREAM_CAPACITY = max(1, _env_int("STREAM_CAPACITY", 100))
DEFAULT_WORKERS = max(1, _env_int("WORKERS", 4))
POLL_INTERVAL = max(0.01, _env_float("POLL_INTERVAL", 0.1))

# Network timeouts (seconds)
REQUEST_TIMEOUT = _env_float("REQUEST_TIMEOUT", 30.0)
DELETE_TIMEOUT = _env_float("DELETE_TIMEOUT", 3.0)

# Object store
AWS_REGION = _env("AWS_REGION") or None
S3_ENDPOINT_URL = _env("S3_ENDPOINT_URL") or None
TARGET_BUCKET = _env("TARGET_BUCKET", "holding-pen")
PROXY_BUCKET = _env("PROXY_BUCKET", "proxies")
EXCLUDE_BUCKETS = _env_list("EXCLUDE_BUCKETS")

# Archive index
ELASTIC_URL = _env("ELASTIC_URL", "http://127.0.0.1:9200")
INDEX_NAME = _env("INDEX_NAME", "archivehunter")

# Reports and local copies
REPORT_FILE = Path(_env("REPORT_FILE", "report.csv"))
MEDIA_DIR = Path(_env("MEDIA_DIR", "media"))
PROXY_DIR = Path(_env("PROXY_DIR", "proxy"))
SHOW_PROGRESS = string_to_bool(_env("SHOW_PROGRESS"))
