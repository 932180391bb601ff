"""Forward-only readers for the delimited input files."""
from __future__ import annotations

import csv
from contextlib import contextmanager
from typing import Iterator, List, Tuple

from .exceptions import MalformedRowError

Row = Tuple[int, List[str]]


@contextmanager
def open_rows(path: str, *, delimiter: str = ",", skip_header: bool = False) -> Iterator[Iterator[Row]]:
    """Yield an iterator of ``(line_number, fields)`` pairs for a delimited file.

    Blank lines are ignored; with `skip_header` the first non-blank row is dropped.
    Line numbers are 1-based and count the header.
    """
    with open(path, newline="", encoding="utf-8") as fh:
        reader = csv.reader(fh, delimiter=delimiter)

        def _rows() -> Iterator[Row]:
            header_pending = skip_header
            for fields in reader:
                if not fields or (len(fields) == 1 and not fields[0].strip()):
                    continue
                if header_pending:
                    header_pending = False
                    continue
                yield reader.line_num, fields

        yield _rows()


def require_columns(path: str, line_number: int, fields: List[str], expected: int) -> List[str]:
    """Return `fields` unchanged, or raise if the row is shorter than `expected`."""
    if len(fields) < expected:
        raise MalformedRowError(path, line_number, expected, len(fields))
    return fields
