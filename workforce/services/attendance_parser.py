"""
Biometric Export Parser

Reads the tab-delimited text export produced by the biometric devices:

    No	DevNo	UserId	Name	Mode	DateTime
    1	1	10	Nodado A	FP	2025-11-05  05:50:25

The parser is pure (no database access). Malformed rows are skipped and
logged, never fatal; only a file whose header cannot be read at all is
rejected with ImportParseError.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from workforce.core.exceptions import ImportParseError

logger = logging.getLogger(__name__)

EXPECTED_COLUMNS = 6
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_TABS = re.compile(r"\t+")
_WIDE_SPACES = re.compile(r"\s{2,}")
_NOT_DATETIME_CHARS = re.compile(r"[^\d\-\s:]")
_DATETIME_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})")


@dataclass(frozen=True)
class ScanRow:
    """One biometric punch as read from the export."""
    no: Optional[str]
    dev_no: Optional[str]
    user_id: Optional[str]
    name: str
    mode: Optional[str]
    scanned_at: datetime
    normalized_name: str

    @property
    def scan_date(self) -> date:
        return self.scanned_at.date()


def decode_export(raw: bytes) -> str:
    """
    Decode raw upload bytes to clean text.

    Devices write either UTF-8 or Windows-1252. NUL bytes and control
    characters are stripped and all line endings become ``\\n``.
    """
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = raw.decode("cp1252", errors="replace")

    text = text.replace("\0", "")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _CONTROL_CHARS.sub("", text)


def normalize_name(name: str) -> str:
    """Lowercase, drop periods/commas, hyphens to spaces, collapse whitespace."""
    normalized = name.strip().replace(".", "").replace(",", " ").replace("-", " ")
    return re.sub(r"\s+", " ", normalized).strip().lower()


def _split_columns(line: str) -> Optional[List[str]]:
    columns = _TABS.split(line)
    if len(columns) >= EXPECTED_COLUMNS:
        return columns

    # Some exports pad with spaces instead of tabs
    parts = _WIDE_SPACES.split(line)
    if len(parts) >= EXPECTED_COLUMNS:
        # The datetime itself may contain a double space
        return parts[:5] + [" ".join(parts[5:])]
    return None


def _parse_datetime(value: str) -> Optional[datetime]:
    value = _WIDE_SPACES.sub(" ", value)
    value = _NOT_DATETIME_CHARS.sub("", value).strip()

    # Trailing digits are line-number bleed, e.g. "2025-01-13 22:26:181"
    if len(value) > 19:
        match = _DATETIME_PREFIX.match(value)
        if match:
            value = match.group(1)

    try:
        return datetime.strptime(value, DATETIME_FORMAT)
    except ValueError:
        return None


def parse_line(line: str) -> Optional[ScanRow]:
    line = line.replace("\0", "").strip()
    if not line:
        return None

    columns = _split_columns(line)
    if columns is None:
        logger.warning("Skipping biometric row with too few columns", extra={"line": line})
        return None

    name = columns[3].strip()
    raw_datetime = columns[5].strip()
    if not name or not raw_datetime:
        return None

    scanned_at = _parse_datetime(raw_datetime)
    if scanned_at is None:
        logger.warning(
            "Skipping biometric row with unreadable datetime",
            extra={"line": line, "datetime_str": raw_datetime},
        )
        return None

    return ScanRow(
        no=columns[0].strip() or None,
        dev_no=columns[1].strip() or None,
        user_id=columns[2].strip() or None,
        name=name,
        mode=columns[4].strip() or None,
        scanned_at=scanned_at,
        normalized_name=normalize_name(name),
    )


def validate_header(contents: str) -> None:
    """Reject a non-empty export whose header line is not a 6-column row."""
    for line in contents.split("\n"):
        if not line.strip():
            continue
        if _split_columns(line.strip()) is None:
            raise ImportParseError(
                f"Unrecognized export header: expected {EXPECTED_COLUMNS} columns "
                "(No, DevNo, UserId, Name, Mode, DateTime)"
            )
        return


def parse(contents: str) -> List[ScanRow]:
    """Parse decoded export text into scan rows. The first line is the header."""
    lines = contents.split("\n")
    rows = []
    for line in lines[1:]:
        if not line.strip():
            continue
        row = parse_line(line)
        if row is not None:
            rows.append(row)

    skipped = sum(1 for line in lines[1:] if line.strip()) - len(rows)
    if skipped:
        logger.info(f"Parsed {len(rows)} biometric rows, skipped {skipped} malformed")
    return rows


def filter_by_date_range(
    rows: Iterable[ScanRow],
    date_from: Optional[date],
    date_to: Optional[date],
) -> Tuple[List[ScanRow], List[ScanRow]]:
    """
    Split rows into (within, outside) the inclusive date range.

    A missing bound is open-ended.
    """
    within, outside = [], []
    for row in rows:
        day = row.scan_date
        if (date_from and day < date_from) or (date_to and day > date_to):
            outside.append(row)
        else:
            within.append(row)
    return within, outside


def summarize(rows: List[ScanRow]) -> Dict[str, object]:
    return {
        "total_records": len(rows),
        "unique_employees": len({r.normalized_name for r in rows}),
        "date_range": {
            "start": min((r.scanned_at for r in rows), default=None),
            "end": max((r.scanned_at for r in rows), default=None),
        },
    }
