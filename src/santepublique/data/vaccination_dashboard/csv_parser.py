"""Tolerant CSV parsing for the published open-data files.

Rows are kept when they carry at least as many fields as the header;
trailing extra fields are ignored. Double quotes toggle a quoted section in
which commas are literal.
"""

from __future__ import annotations

from collections.abc import Iterator


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line into trimmed fields, honoring double quotes."""
    fields = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def read_header(text: str) -> list[str]:
    """Return the header fields of a CSV document (empty list if none)."""
    lines = text.lstrip("\ufeff").strip().split("\n")
    if not lines or not lines[0].strip():
        return []
    return split_csv_line(lines[0])


def iter_csv_rows(text: str) -> Iterator[dict[str, str]]:
    """Yield one ``{header: value}`` mapping per data line.

    Each call restarts from the first data line. Documents with fewer than
    two lines yield nothing.
    """
    lines = text.lstrip("\ufeff").strip().split("\n")
    if len(lines) < 2:
        return

    header = split_csv_line(lines[0])
    for line in lines[1:]:
        values = split_csv_line(line)
        if len(values) < len(header):
            continue
        yield {name: values[index] for index, name in enumerate(header)}


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse a whole CSV document into a list of row mappings."""
    return list(iter_csv_rows(text))
