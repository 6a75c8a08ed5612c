"""Command line entry point.

    holdingpen find-archived      report holding pen files that are already archived
    holdingpen fetch-and-delete   download the reported files, then delete them

Exit status is 0 on success, 1 when a pipeline stopped on an error and 2 when
setup failed before anything ran.
"""

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional

from holdingpen import __version__
from holdingpen.cleanup import CleanupOptions, run_cleanup
from holdingpen.config import env
from holdingpen.core.logger import set_level, setup_logger
from holdingpen.discovery import DiscoveryOptions, run_discovery
from holdingpen.storage import ArchiveIndexClient, IndexQueryError, ObjectStore, ObjectStoreError

logger = setup_logger("holdingpen")

EXIT_OK = 0
EXIT_PIPELINE_ERROR = 1
EXIT_SETUP_ERROR = 2

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|us|µs|ns|h|m|s)")
_UNIT_SECONDS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}


def parse_duration(value: str) -> float:
    """Parse a duration such as ``30s``, ``2m``, ``1m30s`` or ``500ms`` into seconds.

    A bare number is taken as seconds.
    """
    text = value.strip()
    if not text:
        raise argparse.ArgumentTypeError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise argparse.ArgumentTypeError(f"could not parse '{value}' as a duration")
    return total


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a whole number") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"'{value}' must be at least 1")
    return number


def comma_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="holdingpen",
        description="Find holding pen files that are already archived, and clear them out",
    )
    parser.add_argument("--debug", action="store_true", default=env.DEBUG, help="Verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_find = subparsers.add_parser("find-archived", help="Report holding pen files that already exist in the archive")
    p_find.add_argument("--target", default=env.TARGET_BUCKET, help="Name of the holding pen bucket to check")
    p_find.add_argument("--elastic", default=env.ELASTIC_URL, help="Archive index URL")
    p_find.add_argument("--index", default=env.INDEX_NAME, help="Name of the index to query")
    p_find.add_argument(
        "--timeout",
        type=parse_duration,
        default=env.REQUEST_TIMEOUT,
        help="Network timeout, e.g. 30s, 2m or 500ms",
    )
    p_find.add_argument(
        "--exclude",
        type=comma_list,
        default=list(env.EXCLUDE_BUCKETS),
        help="Comma-separated list of buckets to exclude",
    )
    p_find.add_argument("--threads", type=positive_int, default=env.DEFAULT_WORKERS, help="Concurrent index lookups")
    p_find.add_argument("--proxy-threads", type=positive_int, default=10, help="Concurrent proxy lookups")
    p_find.add_argument("--proxy", default=env.PROXY_BUCKET, help="Name of the bucket to look for proxies in")
    p_find.add_argument("--output", type=Path, default=env.REPORT_FILE, help="CSV report to write")
    p_find.add_argument(
        "--only-with-duplicates",
        action="store_true",
        help="Only write rows for files found in the archive",
    )
    p_find.set_defaults(func=cmd_find_archived)

    p_clean = subparsers.add_parser("fetch-and-delete", help="Download reported files, then delete them")
    p_clean.add_argument("--input", type=Path, default=env.REPORT_FILE, help="CSV report to read from")
    p_clean.add_argument("--bucket", default=env.TARGET_BUCKET, help="Bucket that contains the original media files")
    p_clean.add_argument("--threads", type=positive_int, default=env.DEFAULT_WORKERS, help="Concurrent deletions")
    p_clean.add_argument("--fetch-threads", type=positive_int, default=env.DEFAULT_WORKERS, help="Concurrent downloads")
    p_clean.add_argument("--really-delete", action="store_true", help="Only delete files if this option is set")
    p_clean.add_argument("--skip-download", action="store_true", help="Delete without downloading first")
    p_clean.add_argument("--media-dir", type=Path, default=env.MEDIA_DIR, help="Where to download original media")
    p_clean.add_argument("--proxy-dir", type=Path, default=env.PROXY_DIR, help="Where to download proxies")
    p_clean.add_argument(
        "--timeout",
        type=parse_duration,
        default=env.REQUEST_TIMEOUT,
        help="Download timeout, e.g. 30s, 2m or 500ms",
    )
    p_clean.set_defaults(func=cmd_fetch_and_delete)

    return parser


def cmd_find_archived(args: argparse.Namespace) -> int:
    options = DiscoveryOptions(
        target_bucket=args.target,
        proxy_bucket=args.proxy,
        exclude_buckets=args.exclude,
        output=args.output,
        lookup_workers=args.threads,
        proxy_workers=args.proxy_threads,
        timeout=args.timeout,
        only_with_duplicates=args.only_with_duplicates,
    )
    try:
        store = ObjectStore().connect(options.timeout)
        index = ArchiveIndexClient(args.elastic, args.index, timeout=options.timeout)
        index.ping()
    except (ObjectStoreError, IndexQueryError) as e:
        logger.error(f"Could not set up clients: {e}")
        return EXIT_SETUP_ERROR

    try:
        outcome = run_discovery(options, store, index, logger.getChild("find-archived"))
    except OSError as e:
        logger.error(f"Could not write report {options.output}: {e}")
        return EXIT_SETUP_ERROR
    return EXIT_OK if outcome.succeeded else EXIT_PIPELINE_ERROR


def cmd_fetch_and_delete(args: argparse.Namespace) -> int:
    options = CleanupOptions(
        input=args.input,
        root_bucket=args.bucket,
        delete_workers=args.threads,
        fetch_workers=args.fetch_threads,
        really_delete=args.really_delete,
        skip_download=args.skip_download,
        media_dir=args.media_dir,
        proxy_dir=args.proxy_dir,
        timeout=args.timeout,
    )
    try:
        store = ObjectStore().connect(options.timeout, options.delete_timeout)
    except ObjectStoreError as e:
        logger.error(f"Could not set up S3 client: {e}")
        return EXIT_SETUP_ERROR

    try:
        outcome = run_cleanup(options, store, logger.getChild("fetch-and-delete"))
    except OSError as e:
        logger.error(f"Could not open {options.input}: {e}")
        return EXIT_SETUP_ERROR
    return EXIT_OK if outcome.succeeded else EXIT_PIPELINE_ERROR


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.debug:
        set_level(logging.DEBUG)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
