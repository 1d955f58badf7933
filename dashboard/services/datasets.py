"""Parsing of uploaded spreadsheet and JSON datasets into row records."""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import PurePath
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

Row = dict[str, Any]

_SPREADSHEET_SUFFIXES = frozenset({".xlsx", ".xls"})
_CSV_SUFFIXES = frozenset({".csv"})
_JSON_SUFFIXES = frozenset({".json"})


class DatasetError(ValueError):
    """Raised when an uploaded file cannot be used as a chat dataset."""


class FileTooLargeError(DatasetError):
    """Raised when the file exceeds the upload size limit."""


class UnsupportedFileTypeError(DatasetError):
    """Raised for file extensions other than xlsx/xls/csv/json."""


class DatasetFormatError(DatasetError):
    """Raised when the file content cannot be decoded."""


class EmptyDatasetError(DatasetError):
    """Raised when the file parses to no rows."""


def _frame_to_rows(frame: pd.DataFrame) -> list[Row]:
    """Convert a DataFrame to records with ``null`` gaps and ISO dates."""
    frame.columns = [str(column) for column in frame.columns]
    return json.loads(frame.to_json(orient="records", date_format="iso"))


def _parse_json(content: bytes) -> list[Row]:
    try:
        data = json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DatasetFormatError(f"The uploaded file is not valid JSON: {exc}") from exc

    if not isinstance(data, list) or not data:
        raise EmptyDatasetError(
            "The uploaded file is empty, not a valid JSON array, or could not be parsed correctly."
        )
    if not all(isinstance(row, dict) for row in data):
        raise DatasetFormatError("Every entry of the JSON array must be an object.")
    return data


def _parse_tabular(content: bytes, suffix: str) -> list[Row]:
    buffer = io.BytesIO(content)
    try:
        if suffix in _CSV_SUFFIXES:
            frame = pd.read_csv(buffer)
        else:
            frame = pd.read_excel(buffer, sheet_name=0)
    except pd.errors.EmptyDataError as exc:
        raise EmptyDatasetError("The uploaded file contains no data.") from exc
    except (ValueError, pd.errors.ParserError, OSError, zipfile.BadZipFile) as exc:
        raise DatasetFormatError(f"Could not read the uploaded {suffix} file: {exc}") from exc
    return _frame_to_rows(frame)


def parse_dataset(filename: str, content: bytes, max_bytes: int) -> list[Row]:
    """Parse an uploaded file into an ordered list of row mappings.

    The size limit is enforced before any parsing. Spreadsheets use their
    first sheet.

    Args:
        filename: Original file name; its extension selects the parser.
        content: Raw file bytes.
        max_bytes: Upload size ceiling.

    Returns:
        Non-empty list of rows (column name -> scalar).

    Raises:
        FileTooLargeError: ``content`` is larger than ``max_bytes``.
        UnsupportedFileTypeError: Unknown extension.
        DatasetFormatError: Content cannot be decoded.
        EmptyDatasetError: No rows were found.
    """
    if len(content) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise FileTooLargeError(
            f"File size exceeds the {limit_mb:g}MB limit. Please upload a smaller file."
        )

    suffix = PurePath(filename or "").suffix.lower()
    if suffix in _JSON_SUFFIXES:
        rows = _parse_json(content)
    elif suffix in _SPREADSHEET_SUFFIXES or suffix in _CSV_SUFFIXES:
        rows = _parse_tabular(content, suffix)
    else:
        raise UnsupportedFileTypeError(
            "Invalid file type. Please upload an Excel (.xlsx, .xls), .csv, or .json file."
        )

    if not rows:
        raise EmptyDatasetError("The uploaded file is empty or could not be parsed correctly.")

    logger.info("Parsed %s into %d row(s)", filename, len(rows))
    return rows


def dataset_columns(rows: list[Row]) -> list[str]:
    """Return column names in first-seen order across all rows."""
    columns: dict[str, None] = {}
    for row in rows:
        for column in row:
            columns.setdefault(column, None)
    return list(columns)
