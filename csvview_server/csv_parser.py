"""CSV parsing and serialization shared by uploads, previews and exports.

All reads go through ``parse_csv`` so that multiline quoted fields behave the
same everywhere; ``preview_csv`` is the same parser stopped after N rows.
"""
import csv
import io
import sys
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .errors import ValidationError

Row = Dict[str, str]

# Fields are bounded by the request size limit, not by the csv module.
_limit = sys.maxsize
while True:
    try:
        csv.field_size_limit(_limit)
        break
    except OverflowError:
        _limit = int(_limit / 10)


@dataclass
class ParsedCSV:
    headers: List[str] = field(default_factory=list)
    rows: List[Row] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def decode_csv(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


def _records(text: str) -> Iterator[List[str]]:
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        for record in reader:
            if not record:
                continue
            yield record
    except csv.Error as e:
        raise ValidationError(f"Could not parse CSV (line {reader.line_num}): {e}") from e


def _to_row(headers: List[str], record: List[str]) -> Row:
    values = record[: len(headers)]
    values += [""] * (len(headers) - len(values))
    return dict(zip(headers, values))


def parse_csv(text: str, max_rows: Optional[int] = None) -> ParsedCSV:
    """Split CSV text into its header row and data rows.

    Data rows are padded with empty strings, or truncated, to the header
    length. ``max_rows`` stops reading after that many data rows.
    """
    parsed = ParsedCSV()
    records = _records(text)
    for record in records:
        parsed.headers = record
        break
    else:
        return parsed

    for record in records:
        if max_rows is not None and len(parsed.rows) >= max_rows:
            break
        parsed.rows.append(_to_row(parsed.headers, record))
    return parsed


def preview_csv(text: str, max_rows: int = 10) -> ParsedCSV:
    return parse_csv(text, max_rows=max_rows)


def to_csv(headers: List[str], rows: List[Row]) -> str:
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([row.get(h, "") for h in headers])
    return buf.getvalue()
