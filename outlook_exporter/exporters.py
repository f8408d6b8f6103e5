from __future__ import annotations

import csv
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO

from .ranking import COLUMNS, ExportRow

LOGGER = logging.getLogger(__name__)

# UTF-8 with byte order mark, for Excel
ENCODING = "utf-8-sig"

TABLE_HEADERS = ["Email", "Name", "Type", "Account", "Times Contacted", "Latest Contact", "Own"]
TABLE_WIDTH_CAP = 50
OWN_MARKER = "*"
ELLIPSIS = "..."


def write_csv_rows(path, header: Sequence[str], rows: Sequence[Sequence[str]]) -> int:
    """Write a header and rows; a field is quoted only if it holds a comma, quote or line break."""
    with open(path, "w", encoding=ENCODING, newline="") as f:
        w = csv.writer(f, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
        w.writerow(header)
        for row in rows:
            w.writerow(row)
    return len(rows)


def write_json_objects(path, objects: Sequence[Dict[str, str]]) -> int:
    with open(path, "w", encoding=ENCODING) as f:
        json.dump(list(objects), f, indent=2, ensure_ascii=False)
        f.write("\n")
    return len(objects)


def write_csv(rows: Sequence[ExportRow], path) -> int:
    return write_csv_rows(path, COLUMNS, [r.values() for r in rows])


def write_json(rows: Sequence[ExportRow], path) -> int:
    return write_json_objects(path, [r.as_dict() for r in rows])


def truncate(value: str, width: int) -> str:
    if not value:
        return ""
    if len(value) <= width:
        return value
    return value[:width - len(ELLIPSIS)] + ELLIPSIS


def column_widths(headers: Sequence[str], rows: Sequence[Sequence[str]], cap: int) -> List[int]:
    widths = [len(h) for h in headers]
    for row in rows:
        for c, val in enumerate(row):
            if val:
                widths[c] = max(widths[c], min(len(val), cap))
    return widths


def separator(widths: Sequence[int]) -> str:
    return "+" + "+".join("-" * (w + 2) for w in widths) + "+"


def grid_line(values: Sequence[str], widths: Sequence[int]) -> str:
    return "|" + "|".join(f" {truncate(v, w).ljust(w)} " for v, w in zip(values, widths)) + "|"


def render_grid(headers: Sequence[str], rows: Sequence[Sequence[str]], cap: int) -> List[str]:
    widths = column_widths(headers, rows, cap)
    lines = ["", separator(widths), grid_line(headers, widths), separator(widths)]
    lines.extend(grid_line(row, widths) for row in rows)
    lines.append(separator(widths))
    return lines


def render_table(rows: Sequence[ExportRow], cap: int = TABLE_WIDTH_CAP) -> str:
    if not rows:
        return "No recipients to display."
    own_count = sum(1 for r in rows if r.is_own_account)
    cells = []
    for r in rows:
        values = r.values()
        values[-1] = OWN_MARKER if r.is_own_account else ""
        cells.append(values)
    lines = render_grid(TABLE_HEADERS, cells, cap)
    lines.append("")
    lines.append(f"Total: {len(rows)} unique recipients (sorted by most contacted)")
    if own_count > 0:
        lines.append(f"{OWN_MARKER} = Own account ({own_count} account(s) used for export)")
    return "\n".join(lines)


def print_table(rows: Sequence[ExportRow], stream: Optional[TextIO] = None, cap: int = TABLE_WIDTH_CAP) -> int:
    stream = stream or sys.stdout
    print(render_table(rows, cap), file=stream)
    return len(rows)


# format name -> (file extension or None for console, writer)
FORMATS: Dict[str, tuple] = {
    "csv": (".csv", write_csv),
    "json": (".json", write_json),
    "matrix": (None, print_table),
}


def output_path(base: Optional[str], extension: str) -> Path:
    """``base`` with its extension replaced by (or extended with) ``extension``."""
    if not base:
        return Path(f"output{extension}")
    p = Path(base)
    if p.suffix:
        return p.with_suffix(extension)
    return Path(str(p) + extension)
