"""Export report rows to CSV and JSON formats."""

import csv
import io
import json
from datetime import datetime
from pathlib import Path

from .core import resolve_now

EXPORT_FORMATS = ("csv", "json")


def rows_to_csv(rows: list[dict]) -> str:
    """Serialize rows as CSV with a header taken from the first row.

    Fields containing a comma, quote or newline are double-quoted with inner
    quotes doubled. None becomes an empty field.
    """
    if not rows:
        return ""

    buf = io.StringIO()
    writer = csv.DictWriter(
        buf,
        fieldnames=list(rows[0].keys()),
        lineterminator="\n",
        extrasaction="ignore",
    )
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue().rstrip("\n")


def rows_to_json(rows: list[dict]) -> str:
    """Serialize rows as an indented JSON array."""
    return json.dumps(rows, indent=2, ensure_ascii=False, default=str)


def default_export_filename(export_type: str, fmt: str, now: datetime | None = None) -> str:
    """Build claude-<type>-<YYYY-MM-DD>.<fmt>."""
    now = resolve_now(now)
    return f"claude-{export_type}-{now.strftime('%Y-%m-%d')}.{fmt}"


def write_export(rows: list[dict], fmt: str, path: Path | str) -> Path:
    """Write rows to ``path`` in the given format and return the path."""
    if fmt == "json":
        content = rows_to_json(rows)
    elif fmt == "csv":
        content = rows_to_csv(rows)
    else:
        raise ValueError(f"Unknown export format: {fmt}")

    path = Path(path)
    path.write_text(content, encoding="utf-8")
    return path
