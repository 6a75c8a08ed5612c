"""CSV layout of the duplicates report, shared by the writer and the reader."""

from typing import List, Sequence

from holdingpen.core.models import FoundEntry, InvalidEntryUri, LookupResult

REPORT_HEADER = [
    "Source",
    "Duplicates count",
    "Proxy count",
    "Duplicates buckets",
    "Proxy locations",
]
LIST_SEPARATOR = "|"


class ReportRowError(ValueError):
    """A report row could not be interpreted."""


def _split(column: str) -> List[str]:
    if not column:
        return []
    return column.split(LIST_SEPARATOR)


def to_csv_row(result: LookupResult) -> List[str]:
    """Serialise a LookupResult into a report row."""
    return [
        result.requested_file,
        str(result.count),
        str(len(result.proxies)),
        LIST_SEPARATOR.join(result.duplicate_buckets),
        LIST_SEPARATOR.join(proxy.display_uri() for proxy in result.proxies),
    ]


def from_csv_row(row: Sequence[str]) -> LookupResult:
    """Rebuild a LookupResult from a report row.

    The report does not carry file sizes, so ``requested_file_size`` is 0 and
    duplicate entries share the source path.
    """
    if row is None:
        raise ReportRowError("no data was provided")
    if len(row) < len(REPORT_HEADER):
        raise ReportRowError(f"not enough columns, need {len(REPORT_HEADER)}")

    source = row[0]
    try:
        count = int(row[1])
    except ValueError:
        raise ReportRowError(f"duplicates count '{row[1]}' is not a number") from None

    proxies = []
    for index, uri in enumerate(_split(row[4])):
        try:
            proxies.append(FoundEntry.from_uri(uri, is_proxy=True))
        except InvalidEntryUri as e:
            raise ReportRowError(f"could not interpret proxy {index} on {source}: {e}") from e

    entries = [FoundEntry(bucket=bucket, path=source) for bucket in _split(row[3])]

    return LookupResult(
        requested_file=source,
        requested_file_size=0,
        count=count,
        entries=entries,
        proxies=proxies,
    )
