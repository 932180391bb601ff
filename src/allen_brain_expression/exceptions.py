"""Errors raised while converting a dataset.

Expected skips (unresolvable genes, probes without a gene) are never raised; everything
here aborts the current dataset directory.
"""
from __future__ import annotations

from typing import Optional


class ConversionError(Exception):
    """Base class for fatal conversion errors."""


class MissingInputFileError(ConversionError, FileNotFoundError):
    def __init__(self, directory: str, filename: str) -> None:
        self.directory = directory
        self.filename = filename
        super().__init__(f"Required file '{filename}' not found in {directory}")


class MalformedRowError(ConversionError):
    """A row has fewer columns than its file layout requires."""

    def __init__(self, path: str, line_number: int, expected: int, actual: int) -> None:
        self.path = path
        self.line_number = line_number
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{path}:{line_number}: expected at least {expected} columns, got {actual}"
        )


class ColumnCountError(ConversionError):
    """A wide-format row does not have one column per sample."""

    def __init__(self, path: str, line_number: int, samples: int, actual: int) -> None:
        self.path = path
        self.line_number = line_number
        self.samples = samples
        self.actual = actual
        super().__init__(
            f"{path}:{line_number}: {actual} data columns but {samples} samples were loaded"
        )


class RowCountError(ConversionError):
    """The expression and call files do not have the same number of rows."""

    def __init__(self, expression_path: str, call_path: str, rows_read: int, exhausted: str) -> None:
        self.expression_path = expression_path
        self.call_path = call_path
        self.rows_read = rows_read
        self.exhausted = exhausted
        super().__init__(
            f"{exhausted} ended after {rows_read} rows; "
            f"{expression_path} and {call_path} must be row-aligned"
        )


class StageOrderError(ConversionError):
    """A loader stage was run before the stage it depends on."""


class ItemValidationError(ConversionError):
    def __init__(self, class_name: str, message: str, identifier: Optional[str] = None) -> None:
        self.class_name = class_name
        self.identifier = identifier
        where = f"{class_name} {identifier}" if identifier else class_name
        super().__init__(f"{where}: {message}")


class InvalidValueError(ConversionError):
    """A cell could not be parsed as the number its column holds."""

    def __init__(self, path: str, line_number: int, column: int, value: str) -> None:
        self.path = path
        self.line_number = line_number
        self.column = column
        self.value = value
        super().__init__(f"{path}:{line_number}: column {column + 1} is not a finite number: '{value}'")
