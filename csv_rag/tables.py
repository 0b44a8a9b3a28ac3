from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, List, Mapping, Sequence, Union

from csv_rag.models import TextUnit
from csv_rag.text import DEFAULT_MAX_LENGTH, chunk_text, sanitize

Row = Union[str, Mapping[str, Any]]


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else value


def _records_from_rows(rows: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """First row = headers. Blank rows are skipped, short rows padded with "", long rows truncated."""
    if not rows:
        return []
    headers = [str(h).strip() or f"col_{i}" for i, h in enumerate(rows[0])]
    records = []
    for row in rows[1:]:
        values = [_cell(c) for c in row]
        if all(v == "" for v in values):
            continue
        values += [""] * (len(headers) - len(values))
        records.append(dict(zip(headers, values)))
    return records


def parse_table_input(table: Union[str, List[Any]]) -> List[Dict[str, Any]]:
    """
    Parse an uploaded table into one record dict per row.

    Accepts CSV/TSV text (header row first, Excel BOM tolerated), a JSON
    array of objects or rows, a list of dicts, or a list of rows whose first
    row holds the headers. Anything else parses to ``[]``.
    """
    if isinstance(table, list):
        if not table:
            return []
        first = table[0]
        if isinstance(first, dict):
            return [dict(r) for r in table if isinstance(r, dict)]
        if isinstance(first, (list, tuple)):
            return _records_from_rows([list(r) for r in table if isinstance(r, (list, tuple))])
        return []

    if not isinstance(table, str):
        return []

    text = table.strip().lstrip("\ufeff")
    if not text:
        return []
    if (text.startswith("[") and text.endswith("]")) or text.startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            pass
        else:
            return parse_table_input(data) if isinstance(data, list) else []

    delimiter = "\t" if "\t" in text.split("\n", 1)[0] else ","
    return _records_from_rows(list(csv.reader(io.StringIO(text), delimiter=delimiter)))


def record_to_text(record: Mapping[str, Any]) -> str:
    """Compact "column: value | column: value" rendering; empty values are skipped."""
    parts = []
    for key, value in record.items():
        if value is None or value == "":
            continue
        parts.append(f"{key}: {value}")
    return " | ".join(parts)


def rows_to_units(rows: Sequence[Row], max_length: int = DEFAULT_MAX_LENGTH) -> List[TextUnit]:
    """
    Sanitize and chunk every row. Rows may be plain strings (already extracted
    fields) or records; rows that end up empty produce no units.
    """
    units: List[TextUnit] = []
    for row_index, row in enumerate(rows):
        raw = row if isinstance(row, str) else record_to_text(row)
        text = sanitize(raw)
        if not text:
            continue
        for chunk_index, piece in enumerate(chunk_text(text, max_length)):
            units.append(TextUnit(id=f"{row_index}-{chunk_index}", source_row_ref=row_index, content=piece))
    return units
