import difflib
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from .csv_parser import Row

MAX_COLUMN_VALUES = 50
SEARCH_THRESHOLD = 0.7
ALL = "all"


@dataclass
class TableQuery:
    search: str = ""
    filters: Dict[str, str] = field(default_factory=dict)
    sort: Optional[str] = None
    descending: bool = False
    columns: List[str] = field(default_factory=list)


def natural_key(text: str):
    return [(0, int(part), "") if part.isdigit() else (1, 0, part.lower())
            for part in re.split(r"(\d+)", text) if part != ""]


def column_values(headers: Sequence[str], rows: Sequence[Row], limit: int = MAX_COLUMN_VALUES) -> Dict[str, List[str]]:
    values = {}
    for header in headers:
        unique = {str(row.get(header) or "").strip() for row in rows}
        unique.discard("")
        values[header] = sorted(unique)[:limit]
    return values


def apply_filters(rows: Sequence[Row], filters: Mapping[str, str]) -> List[Row]:
    result = list(rows)
    for column, wanted in filters.items():
        if not wanted or wanted == ALL:
            continue
        needle = wanted.lower()
        result = [row for row in result if needle in str(row.get(column) or "").lower()]
    return result


def _score(query: str, value: str) -> float:
    value = value.lower()
    if not value:
        return 0.0
    if query in value:
        return 1.0
    best = 0.0
    for token in value.split():
        ratio = difflib.SequenceMatcher(None, query, token).ratio()
        if ratio > best:
            best = ratio
    return best


def search_rows(headers: Sequence[str], rows: Sequence[Row], query: str,
                threshold: float = SEARCH_THRESHOLD) -> List[Row]:
    """Fuzzy search across every column, best matches first."""
    query = (query or "").strip().lower()
    if not query:
        return list(rows)
    scored = []
    for position, row in enumerate(rows):
        best = max((_score(query, str(row.get(h) or "")) for h in headers), default=0.0)
        if best >= threshold:
            scored.append((-best, position, row))
    scored.sort(key=lambda item: (item[0], item[1]))
    return [row for _, _, row in scored]


def sort_rows(rows: Sequence[Row], key: Optional[str], descending: bool = False) -> List[Row]:
    if not key:
        return list(rows)
    return sorted(rows, key=lambda row: natural_key(str(row.get(key) or "")), reverse=descending)


def project(rows: Sequence[Row], columns: Sequence[str]) -> List[Row]:
    return [{c: row.get(c, "") for c in columns} for row in rows]


def query_table(headers: Sequence[str], rows: Sequence[Row], query: TableQuery) -> List[Row]:
    result = apply_filters(rows, query.filters)
    result = search_rows(headers, result, query.search)
    return sort_rows(result, query.sort, query.descending)


def display_columns(headers: Sequence[str], query: TableQuery) -> List[str]:
    if not query.columns:
        return list(headers)
    return [c for c in query.columns if c in headers]
