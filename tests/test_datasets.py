"""Dataset upload parsing tests."""

import io
import json

import pandas as pd
import pytest

from dashboard.services.datasets import (
    DatasetError,
    DatasetFormatError,
    EmptyDatasetError,
    FileTooLargeError,
    UnsupportedFileTypeError,
    dataset_columns,
    parse_dataset,
)

_MAX = 2 * 1024 * 1024


def test_parse_json_array_of_objects() -> None:
    content = json.dumps([{"name": "Ann", "status": "Bench"}, {"name": "Bob"}]).encode()

    rows = parse_dataset("bench.json", content, _MAX)

    assert rows == [{"name": "Ann", "status": "Bench"}, {"name": "Bob"}]


def test_parse_json_extension_is_case_insensitive() -> None:
    assert parse_dataset("DATA.JSON", b'[{"a": 1}]', _MAX) == [{"a": 1}]


@pytest.mark.parametrize("content", [b"[]", b'{"a": 1}', b'"text"'])
def test_parse_json_requires_non_empty_array(content: bytes) -> None:
    with pytest.raises(EmptyDatasetError):
        parse_dataset("data.json", content, _MAX)


def test_parse_json_rejects_non_object_rows() -> None:
    with pytest.raises(DatasetFormatError):
        parse_dataset("data.json", b"[1, 2, 3]", _MAX)


def test_parse_json_invalid_content() -> None:
    with pytest.raises(DatasetFormatError):
        parse_dataset("data.json", b"[{broken", _MAX)


def test_parse_csv_with_missing_cells() -> None:
    content = b"name,age\nAnn,30\nBob,\n"

    rows = parse_dataset("people.csv", content, _MAX)

    assert rows[0]["name"] == "Ann"
    assert rows[0]["age"] == 30
    assert rows[1]["age"] is None


def test_parse_xlsx_first_sheet() -> None:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(
            {"Name": ["Ann", "Bob"], "Start": pd.to_datetime(["2025-01-02", "2025-02-03"])}
        ).to_excel(writer, sheet_name="RMG", index=False)
        pd.DataFrame({"Other": [1]}).to_excel(writer, sheet_name="Ignored", index=False)

    rows = parse_dataset("bench.xlsx", buffer.getvalue(), _MAX)

    assert [row["Name"] for row in rows] == ["Ann", "Bob"]
    assert rows[0]["Start"].startswith("2025-01-02")
    assert "Other" not in rows[0]


def test_parse_corrupt_spreadsheet() -> None:
    with pytest.raises(DatasetFormatError):
        parse_dataset("bench.xlsx", b"definitely not a zip file", _MAX)


@pytest.mark.parametrize("content", [b"", b"name,age\n"])
def test_parse_empty_csv(content: bytes) -> None:
    with pytest.raises(EmptyDatasetError):
        parse_dataset("empty.csv", content, _MAX)


def test_size_limit_checked_before_type() -> None:
    with pytest.raises(FileTooLargeError) as exc_info:
        parse_dataset("notes.txt", b"x" * (_MAX + 1), _MAX)

    assert "2MB" in str(exc_info.value)


def test_unsupported_extension() -> None:
    with pytest.raises(UnsupportedFileTypeError):
        parse_dataset("notes.txt", b"hello", _MAX)


def test_errors_share_a_base() -> None:
    for error_type in (
        FileTooLargeError,
        UnsupportedFileTypeError,
        DatasetFormatError,
        EmptyDatasetError,
    ):
        assert issubclass(error_type, DatasetError)


def test_dataset_columns_first_seen_order() -> None:
    rows = [{"b": 1, "a": 2}, {"a": 3, "c": 4}]

    assert dataset_columns(rows) == ["b", "a", "c"]
